"""Downloader invocation for relay jobs."""

from __future__ import annotations

import logging
from typing import Optional, Protocol, Sequence

from config.settings import DEFAULT_DOWNLOAD_TIMEOUT_SECONDS, DEFAULT_DOWNLOADER
from engine.errors import DownloadFailed
from engine.process import ToolError, run_tool

logger = logging.getLogger(__name__)


class Downloader(Protocol):
    def download(self, url: str, cwd: str) -> None:
        """Fetch ``url`` into ``cwd`` or raise ``DownloadFailed``."""


def build_download_argv(executable: str, url: str, extra_args: Sequence[str] = ()) -> list[str]:
    """Return the downloader argv; the URL is always the last argument.

    ``--`` ends option parsing, so a URL starting with ``-`` is never read
    as a downloader option.
    """
    return [executable, *extra_args, "--", url]


class CliDownloader:
    """Runs an external downloader (yt-dlp, svtplay-dl) with the URL as argument.

    Success is exit status 0. The tool is expected to leave exactly one
    file in the working directory.
    """

    def __init__(
        self,
        executable: str = DEFAULT_DOWNLOADER,
        extra_args: Sequence[str] = (),
        timeout: Optional[float] = DEFAULT_DOWNLOAD_TIMEOUT_SECONDS,
    ) -> None:
        self.executable = executable
        self.extra_args = tuple(extra_args)
        self.timeout = timeout

    def download(self, url: str, cwd: str) -> None:
        argv = build_download_argv(self.executable, url, self.extra_args)
        logger.info("Downloading %s with %s", url, self.executable)
        try:
            completed = run_tool(argv, cwd=cwd, timeout=self.timeout)
        except ToolError as exc:
            raise DownloadFailed(url, reason=exc.reason, stdout=exc.stdout, stderr=exc.stderr) from exc

        if completed.returncode != 0:
            raise DownloadFailed(
                url,
                returncode=completed.returncode,
                stdout=completed.stdout,
                stderr=completed.stderr,
            )
        logger.info("Download complete: %s", url)
