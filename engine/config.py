import json
import os
from dataclasses import dataclass, field
from typing import Optional

from config.settings import (
    CONFIG_PATH_ENV_KEY,
    DEFAULT_BIND_ADDRESS,
    DEFAULT_CONFIG_PATH,
    DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
    DEFAULT_DOWNLOADER,
    DEFAULT_FTP_PORT,
    DEFAULT_FTP_REMOTE_DIR,
    DEFAULT_LOG_DIR,
    DEFAULT_LOG_LEVEL,
    DEFAULT_UPLOAD_TIMEOUT_SECONDS,
    DOWNLOADER_DEFAULT_ARGS,
)
from engine.errors import ConfigError

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
_UNSET = object()


@dataclass(frozen=True)
class RelayConfig:
    download_dir: str
    listen_port: int
    bind_address: str = DEFAULT_BIND_ADDRESS
    downloader: str = DEFAULT_DOWNLOADER
    downloader_args: tuple = ()
    ftp_remote_dir: str = DEFAULT_FTP_REMOTE_DIR
    ftp_port: int = DEFAULT_FTP_PORT
    download_timeout_seconds: Optional[float] = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS
    upload_timeout_seconds: Optional[float] = DEFAULT_UPLOAD_TIMEOUT_SECONDS
    log_dir: str = DEFAULT_LOG_DIR
    log_level: str = DEFAULT_LOG_LEVEL
    telegram: dict = field(default_factory=dict)


def resolve_config_path(path=None):
    if not path:
        path = os.environ.get(CONFIG_PATH_ENV_KEY) or DEFAULT_CONFIG_PATH
    return os.path.abspath(os.path.expanduser(path))


def load_config(path):
    try:
        with open(path, "r") as f:
            return json.load(f)
    except FileNotFoundError as exc:
        raise ConfigError(f"Config file not found: {path}") from exc
    except (OSError, json.JSONDecodeError) as exc:
        raise ConfigError(f"Can't read config file {path}: {exc}") from exc


def _is_port(value):
    return isinstance(value, int) and not isinstance(value, bool) and 1 <= value <= 65535


def _is_timeout(value):
    if value is None:
        return True
    return isinstance(value, (int, float)) and not isinstance(value, bool) and value > 0


def validate_config(config):
    errors = []
    if not isinstance(config, dict):
        return ["config must be a JSON object"]

    download_dir = config.get("download_dir")
    if not download_dir or not isinstance(download_dir, str):
        errors.append("download_dir is required")
    elif not os.path.isabs(download_dir):
        errors.append("download_dir must be an absolute path")
    elif not os.path.isdir(download_dir):
        errors.append(f"Download dir does not exist: {download_dir}")

    if "port" not in config:
        errors.append("port is required")
    elif not _is_port(config.get("port")):
        errors.append("port must be an integer between 1 and 65535")

    if "ftp_port" in config and not _is_port(config.get("ftp_port")):
        errors.append("ftp_port must be an integer between 1 and 65535")

    downloader = config.get("downloader", DEFAULT_DOWNLOADER)
    if not isinstance(downloader, str) or not downloader.strip():
        errors.append("downloader must be a non-empty string")

    downloader_args = config.get("downloader_args")
    if downloader_args is not None:
        if not isinstance(downloader_args, list) or not all(isinstance(a, str) for a in downloader_args):
            errors.append("downloader_args must be a list of strings")

    remote_dir = config.get("ftp_remote_dir")
    if remote_dir is not None and (not isinstance(remote_dir, str) or not remote_dir.strip()):
        errors.append("ftp_remote_dir must be a non-empty string")

    for key in ("download_timeout_seconds", "upload_timeout_seconds"):
        if key in config and not _is_timeout(config.get(key)):
            errors.append(f"{key} must be a positive number or null")

    log_level = config.get("log_level")
    if log_level is not None and str(log_level).upper() not in _LOG_LEVELS:
        errors.append(f"log_level must be one of {', '.join(sorted(_LOG_LEVELS))}")

    telegram = config.get("telegram")
    if telegram is not None and not isinstance(telegram, dict):
        errors.append("telegram must be an object")

    return errors


def build_relay_config(config):
    """Validate a parsed config mapping and freeze it into a ``RelayConfig``.

    Raises:
        ConfigError: listing every validation problem found.
    """
    errors = validate_config(config)
    if errors:
        raise ConfigError("Invalid config: " + "; ".join(errors))

    downloader = config.get("downloader", DEFAULT_DOWNLOADER).strip()
    downloader_args = config.get("downloader_args")
    if downloader_args is None:
        downloader_args = DOWNLOADER_DEFAULT_ARGS.get(os.path.basename(downloader), [])

    def _timeout(key, default):
        value = config.get(key, _UNSET)
        return default if value is _UNSET else value

    return RelayConfig(
        download_dir=os.path.abspath(config["download_dir"]),
        listen_port=config["port"],
        bind_address=config.get("bind_address") or DEFAULT_BIND_ADDRESS,
        downloader=downloader,
        downloader_args=tuple(downloader_args),
        ftp_remote_dir=config.get("ftp_remote_dir") or DEFAULT_FTP_REMOTE_DIR,
        ftp_port=config.get("ftp_port", DEFAULT_FTP_PORT),
        download_timeout_seconds=_timeout("download_timeout_seconds", DEFAULT_DOWNLOAD_TIMEOUT_SECONDS),
        upload_timeout_seconds=_timeout("upload_timeout_seconds", DEFAULT_UPLOAD_TIMEOUT_SECONDS),
        log_dir=config.get("log_dir") or DEFAULT_LOG_DIR,
        log_level=str(config.get("log_level") or DEFAULT_LOG_LEVEL).upper(),
        telegram=dict(config.get("telegram") or {}),
    )


def read_relay_config(path=None):
    resolved = resolve_config_path(path)
    return build_relay_config(load_config(resolved))
