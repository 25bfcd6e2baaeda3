"""Request listener and job loop.

One request is accepted at a time. Each iteration clears the scratch
directory, waits for a request, downloads the requested URL, answers the
caller (200 on download success, 500 otherwise) and then uploads the
artifact. Errors end the current job, never the loop.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from enum import Enum
from http.server import BaseHTTPRequestHandler, HTTPServer
from typing import Callable, Optional
from urllib.parse import unquote_to_bytes, urlsplit

from config.settings import APP_NAME, REQUEST_READ_TIMEOUT_SECONDS
from download.downloader import Downloader
from engine.errors import (
    BadRequest,
    BindError,
    DirectoryCleanupFailed,
    DownloadFailed,
    JobError,
    UploadFailed,
)
from engine.job_dir import JobDirectory
from upload.credentials import CredentialRecord
from upload.ftp import Uploader

logger = logging.getLogger(__name__)

_BAD_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class JobPhase(str, Enum):
    IDLE = "idle"
    PARSING = "parsing"
    DOWNLOADING = "downloading"
    UPLOADING = "uploading"


@dataclass
class JobResult:
    ok: bool
    phase: JobPhase
    error: Optional[JobError] = None

    @property
    def diagnostic(self) -> str:
        return str(self.error) if self.error else ""


@dataclass
class Job:
    """State of the request being served during one loop iteration."""

    request_target: str
    source_url: Optional[str] = None
    phase: JobPhase = JobPhase.IDLE
    artifact: Optional[str] = None
    downloaded: bool = False
    result: Optional[JobResult] = None

    def fail(self, error: JobError) -> None:
        self.result = JobResult(ok=False, phase=self.phase, error=error)

    def succeed(self) -> None:
        self.result = JobResult(ok=True, phase=self.phase)


def parse_target_url(request_target: str) -> str:
    """Return the percent-decoded ``url`` query parameter of a request target.

    ``+`` is kept literally; only ``%XX`` escapes are decoded, and the
    result must be valid UTF-8.

    Raises:
        BadRequest: If the parameter is missing or empty, or its encoding
            is malformed.
    """
    query = urlsplit(request_target).query
    for pair in query.split("&"):
        key, sep, value = pair.partition("=")
        if key != "url" or not sep:
            continue
        if _BAD_ESCAPE_RE.search(value):
            raise BadRequest(f"Malformed percent-encoding in url parameter: {value!r}")
        try:
            decoded = unquote_to_bytes(value).decode("utf-8")
        except UnicodeDecodeError as exc:
            raise BadRequest(f"Failed percent decode of url parameter: {value!r}") from exc
        if not decoded.strip():
            raise BadRequest("Empty url parameter")
        return decoded
    raise BadRequest(f"No url parameter in request: {request_target!r}")


class RelayRequestHandler(BaseHTTPRequestHandler):
    server_version = APP_NAME
    timeout = REQUEST_READ_TIMEOUT_SECONDS

    def do_GET(self):
        self.server.job_loop.serve_request(self)

    do_HEAD = do_GET
    do_POST = do_GET

    def respond(self, status: int) -> None:
        self.send_response(status)
        self.send_header("Content-Length", "0")
        self.end_headers()

    def send_error(self, code, message=None, explain=None):
        """Answer HTTP-level errors (bad request line, oversized URI) with an empty 500."""
        logger.warning("Rejected malformed request %r: %s %s", getattr(self, "requestline", ""), code, message or "")
        # The version is still the HTTP/0.9 default when the request line
        # failed to parse; a status line is written regardless.
        if self.request_version == "HTTP/0.9":
            self.request_version = self.protocol_version
        self.close_connection = True
        self.respond(500)

    def log_message(self, format, *args):
        logger.info("%s - %s", self.address_string(), format % args)


class RelayHTTPServer(HTTPServer):
    allow_reuse_address = True

    def __init__(self, server_address, job_loop: "JobLoop") -> None:
        self.job_loop = job_loop
        super().__init__(server_address, RelayRequestHandler)

    def handle_error(self, request, client_address):
        logger.exception("Unhandled error while serving %s", client_address)


class JobLoop:
    def __init__(
        self,
        directory: JobDirectory,
        downloader: Downloader,
        uploader: Uploader,
        credentials: CredentialRecord,
        *,
        notify: Optional[Callable[[str], object]] = None,
    ) -> None:
        self.directory = directory
        self.downloader = downloader
        self.uploader = uploader
        self.credentials = credentials
        self.notify = notify
        self.server: Optional[RelayHTTPServer] = None
        self._job: Optional[Job] = None

    def bind(self, address: str, port: int) -> RelayHTTPServer:
        try:
            self.server = RelayHTTPServer((address, port), self)
        except OSError as exc:
            raise BindError(f"Can't listen on {address}:{port}: {exc}") from exc
        return self.server

    @property
    def port(self) -> int:
        if self.server is None:
            raise RuntimeError("JobLoop is not bound")
        return self.server.server_address[1]

    def close(self) -> None:
        if self.server is not None:
            self.server.server_close()
            self.server = None

    def run_forever(self) -> None:
        while True:
            try:
                self.run_once()
            except Exception:
                logger.exception("Job loop iteration failed")

    def run_once(self) -> Optional[Job]:
        """Serve a single request end to end and return its job.

        ``None`` is returned when no request reached the handler, e.g. a
        malformed HTTP request line or a dropped connection.
        """
        if self.server is None:
            raise RuntimeError("JobLoop is not bound")
        self._clear_directory()
        self._job = None
        logger.info("Listen for incoming urls on %s", self.port)
        try:
            self.server.handle_request()
            job = self._job
            if job is not None and job.downloaded:
                self._upload(job)
        finally:
            if self._job is not None:
                self._job.phase = JobPhase.IDLE
            self._job = None
        return job

    def serve_request(self, handler: RelayRequestHandler) -> None:
        """Parse and download for one request, then answer the caller."""
        job = Job(request_target=handler.path)
        self._job = job
        status = 500
        try:
            job.phase = JobPhase.PARSING
            job.source_url = parse_target_url(job.request_target)
            logger.info("Received request for downloading: %s", job.source_url)

            job.phase = JobPhase.DOWNLOADING
            self.downloader.download(job.source_url, self.directory.path)
            job.downloaded = True
            status = 200
        except BadRequest as exc:
            logger.warning("Rejected request %r: %s", job.request_target, exc)
            job.fail(exc)
        except DownloadFailed as exc:
            logger.error("%s", exc)
            job.fail(exc)
            self._alert(f"Download failed: {job.source_url}\n{exc.stderr.strip()}")
        except JobError as exc:
            logger.error("Job failed during %s: %s", job.phase.value, exc)
            job.fail(exc)
        except Exception as exc:
            logger.exception("Unexpected error during %s for %r", job.phase.value, job.request_target)
            job.fail(JobError(str(exc)))

        try:
            handler.respond(status)
        except OSError:
            logger.warning("Could not send %s response for %r", status, job.request_target, exc_info=True)

    def _upload(self, job: Job) -> None:
        job.phase = JobPhase.UPLOADING
        try:
            job.artifact = self.directory.single_artifact_name()
            self.uploader.upload(job.artifact, self.credentials.host, self.directory.path)
        except UploadFailed as exc:
            logger.error("Upload failed: %s", exc)
            job.fail(exc)
            self._alert(f"Upload failed: {job.artifact} -> {exc.host}\n{exc.stderr.strip()}")
        except JobError as exc:
            logger.error("Upload failed for %s: %s", job.source_url, exc)
            job.fail(exc)
            self._alert(f"Upload failed: {job.source_url}\n{exc}")
        else:
            job.succeed()

    def _clear_directory(self) -> None:
        try:
            self.directory.clear()
        except DirectoryCleanupFailed as exc:
            logger.error("%s", exc)

    def _alert(self, message: str) -> None:
        if self.notify is None:
            return
        try:
            self.notify(message)
        except Exception:
            logger.exception("Failure alert could not be sent")
