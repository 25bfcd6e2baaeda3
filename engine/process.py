"""Blocking execution of external command-line tools."""

from __future__ import annotations

import logging
import os
import signal
import subprocess
from typing import Optional, Sequence

logger = logging.getLogger(__name__)

_DRAIN_TIMEOUT_SECONDS = 5


class ToolError(Exception):
    """Raised when a tool could not be launched or did not finish in time."""

    def __init__(self, reason: str, stdout: str = "", stderr: str = "") -> None:
        self.reason = reason
        self.stdout = stdout
        self.stderr = stderr
        super().__init__(reason)


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return value


def _kill_process_group(proc: subprocess.Popen) -> None:
    # The tool leads its own session, so its pgid is its pid.
    try:
        os.killpg(proc.pid, signal.SIGKILL)
    except ProcessLookupError:
        pass


def run_tool(argv: Sequence[str], *, cwd: str, timeout: Optional[float] = None) -> subprocess.CompletedProcess:
    """Run ``argv`` in ``cwd``, wait for it and capture its output as text.

    The tool runs in a new session. When it outlives ``timeout``, or the
    wait is interrupted, its whole process group is killed, including
    helpers it started itself such as ffmpeg.

    A non-zero exit status is returned, not raised; callers interpret it.

    Raises:
        ToolError: If the executable is missing or not executable, or the
            process outlived ``timeout`` and was killed.
    """
    argv = list(argv)
    logger.debug("Running %s in %s", argv, cwd)
    try:
        proc = subprocess.Popen(
            argv,
            cwd=cwd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            errors="replace",
            start_new_session=True,
        )
    except FileNotFoundError as exc:
        raise ToolError(f"{argv[0]} is not installed or not available in PATH") from exc
    except PermissionError as exc:
        raise ToolError(f"{argv[0]} could not be executed: {exc}") from exc
    except OSError as exc:
        raise ToolError(f"{argv[0]} could not be started: {exc}") from exc

    with proc:
        try:
            stdout, stderr = proc.communicate(timeout=timeout)
        except subprocess.TimeoutExpired as exc:
            _kill_process_group(proc)
            try:
                stdout, stderr = proc.communicate(timeout=_DRAIN_TIMEOUT_SECONDS)
            except subprocess.TimeoutExpired:
                # A helper that left the process group still holds the pipes.
                stdout, stderr = exc.stdout, exc.stderr
            raise ToolError(
                f"{argv[0]} timed out after {timeout}s and was killed",
                stdout=_as_text(stdout),
                stderr=_as_text(stderr),
            ) from exc
        except BaseException:
            _kill_process_group(proc)
            raise
    return subprocess.CompletedProcess(argv, proc.returncode, stdout, stderr)
