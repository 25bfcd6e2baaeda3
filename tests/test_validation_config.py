from __future__ import annotations

import json
from pathlib import Path

import pytest

from config.settings import DEFAULT_DOWNLOAD_TIMEOUT_SECONDS, DOWNLOADER_DEFAULT_ARGS
from engine.config import build_relay_config, load_config, read_relay_config, resolve_config_path, validate_config
from engine.errors import ConfigError


def _write_config(path: Path, payload) -> str:
    path.write_text(json.dumps(payload))
    return str(path)


def test_read_relay_config_applies_defaults(tmp_path: Path, scratch_dir: Path) -> None:
    config_path = _write_config(tmp_path / "config.json", {"download_dir": str(scratch_dir), "port": 9000})

    config = read_relay_config(config_path)

    assert config.download_dir == str(scratch_dir)
    assert config.listen_port == 9000
    assert config.bind_address == "0.0.0.0"
    assert config.downloader == "yt-dlp"
    assert config.downloader_args == tuple(DOWNLOADER_DEFAULT_ARGS["yt-dlp"])
    assert config.ftp_remote_dir == "TvFromPi"
    assert config.ftp_port == 21
    assert config.download_timeout_seconds == DEFAULT_DOWNLOAD_TIMEOUT_SECONDS
    assert config.telegram == {}


def test_svtplay_downloader_gets_its_own_default_args(scratch_dir: Path) -> None:
    config = build_relay_config({"download_dir": str(scratch_dir), "port": 9000, "downloader": "svtplay-dl"})

    assert config.downloader_args == ("-q", "2200", "-Q", "600", "--remux", "--silent-semi")


def test_explicit_args_and_null_timeout_are_kept(scratch_dir: Path) -> None:
    config = build_relay_config(
        {
            "download_dir": str(scratch_dir),
            "port": 9000,
            "downloader_args": ["-f", "best"],
            "upload_timeout_seconds": None,
            "log_level": "debug",
        }
    )

    assert config.downloader_args == ("-f", "best")
    assert config.upload_timeout_seconds is None
    assert config.log_level == "DEBUG"


def test_validate_config_collects_all_errors(tmp_path: Path) -> None:
    errors = validate_config(
        {
            "download_dir": str(tmp_path / "missing"),
            "port": 70000,
            "downloader_args": "nope",
            "download_timeout_seconds": 0,
            "log_level": "loud",
        }
    )

    assert any("Download dir does not exist" in e for e in errors)
    assert any(e.startswith("port") for e in errors)
    assert any(e.startswith("downloader_args") for e in errors)
    assert any(e.startswith("download_timeout_seconds") for e in errors)
    assert any(e.startswith("log_level") for e in errors)


@pytest.mark.parametrize(
    "payload",
    [
        [],
        {"port": 9000},
        {"download_dir": "relative/dir", "port": 9000},
        {"download_dir": "/", "port": "9000"},
        {"download_dir": "/", "port": True},
        {"download_dir": "/"},
    ],
)
def test_build_relay_config_rejects_invalid_payloads(payload) -> None:
    with pytest.raises(ConfigError):
        build_relay_config(payload)


def test_load_config_missing_file_is_config_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_config(str(tmp_path / "config.json"))


def test_load_config_invalid_json_is_config_error(tmp_path: Path) -> None:
    path = tmp_path / "config.json"
    path.write_text("{not json")

    with pytest.raises(ConfigError, match="Can't read config file"):
        load_config(str(path))


def test_resolve_config_path_prefers_argument_then_env(monkeypatch, tmp_path: Path) -> None:
    monkeypatch.setenv("RELAY_CONFIG", str(tmp_path / "from-env.json"))

    assert resolve_config_path(str(tmp_path / "arg.json")) == str(tmp_path / "arg.json")
    assert resolve_config_path(None) == str(tmp_path / "from-env.json")

    monkeypatch.delenv("RELAY_CONFIG")
    monkeypatch.chdir(tmp_path)
    assert resolve_config_path(None) == str(Path.cwd() / "config.json")
