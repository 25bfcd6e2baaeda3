"""FTP upload of the job artifact through lftp."""

from __future__ import annotations

import logging
from typing import Optional, Protocol

from config.settings import DEFAULT_FTP_PORT, DEFAULT_FTP_REMOTE_DIR, DEFAULT_UPLOAD_TIMEOUT_SECONDS, UPLOADER
from engine.errors import UploadFailed
from engine.process import ToolError, run_tool

logger = logging.getLogger(__name__)


class Uploader(Protocol):
    def upload(self, artifact: str, host: str, cwd: str) -> None:
        """Send ``cwd/artifact`` to ``host`` or raise ``UploadFailed``."""


def lftp_quote(value: str) -> str:
    """Quote a word for the lftp command language."""
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_lftp_script(artifact: str, remote_dir: str) -> str:
    # "./" keeps a name starting with "-" from being read as a put option;
    # the remote name is still the basename.
    local = artifact if artifact.startswith(("/", "./")) else f"./{artifact}"
    return f"cd {lftp_quote(remote_dir)}; put {lftp_quote(local)}; exit 0"


def build_upload_argv(
    artifact: str,
    host: str,
    *,
    remote_dir: str = DEFAULT_FTP_REMOTE_DIR,
    port: int = DEFAULT_FTP_PORT,
    executable: str = UPLOADER,
) -> list[str]:
    """Return the lftp argv.

    No login or password appears here: lftp looks the host up in
    ``~/.netrc`` on its own, and argv is visible in process listings.
    """
    return [executable, f"{host}:{port}", "-e", build_lftp_script(artifact, remote_dir)]


class LftpUploader:
    def __init__(
        self,
        remote_dir: str = DEFAULT_FTP_REMOTE_DIR,
        port: int = DEFAULT_FTP_PORT,
        timeout: Optional[float] = DEFAULT_UPLOAD_TIMEOUT_SECONDS,
        executable: str = UPLOADER,
    ) -> None:
        self.remote_dir = remote_dir
        self.port = port
        self.timeout = timeout
        self.executable = executable

    def upload(self, artifact: str, host: str, cwd: str) -> None:
        argv = build_upload_argv(
            artifact,
            host,
            remote_dir=self.remote_dir,
            port=self.port,
            executable=self.executable,
        )
        logger.info("Uploading %s to ftp %s:%s/%s", artifact, host, self.port, self.remote_dir)
        try:
            completed = run_tool(argv, cwd=cwd, timeout=self.timeout)
        except ToolError as exc:
            raise UploadFailed(artifact, host, reason=exc.reason, stdout=exc.stdout, stderr=exc.stderr) from exc

        if completed.returncode != 0:
            raise UploadFailed(
                artifact,
                host,
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
            )
        logger.info("Upload complete: %s", artifact)
