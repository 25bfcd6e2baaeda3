"""Exception taxonomy for the relay.

``StartupError`` subclasses abort the process before the job loop starts.
``JobError`` subclasses end the current job early; the loop logs them and
keeps serving.
"""

from __future__ import annotations


class RelayError(Exception):
    pass


class StartupError(RelayError):
    pass


class ConfigError(StartupError):
    """Missing/invalid config file or download directory."""


class CredentialsUnavailable(StartupError):
    """The netrc file is missing, unreadable, unparsable or has no hosts."""


class BindError(StartupError):
    """The listening socket could not be bound."""


class JobError(RelayError):
    pass


class BadRequest(JobError):
    """The request target carried no usable ``url`` parameter."""


class DirectoryCleanupFailed(JobError):
    def __init__(self, directory, failures):
        self.directory = directory
        self.failures = list(failures)
        names = ", ".join(f"{name} ({err})" for name, err in self.failures)
        super().__init__(f"Failed to clear {directory}: {names}")


class NoArtifactFound(JobError):
    def __init__(self, directory):
        self.directory = directory
        super().__init__(f"No file was found in {directory}")


class MultipleArtifactsFound(JobError):
    def __init__(self, directory, names):
        self.directory = directory
        self.names = list(names)
        super().__init__(f"Expected one file in {directory}, found {len(self.names)}: {', '.join(self.names)}")


class _ProcessFailed(JobError):
    """Common shape for failures of an external tool."""

    tool_label = "process"

    def __init__(self, subject, *, returncode=None, stdout="", stderr="", reason=None):
        self.subject = subject
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        self.reason = reason
        super().__init__(self._describe())

    def _describe(self):
        if self.reason:
            head = f"{self.tool_label} failed for {self.subject}: {self.reason}"
        else:
            head = f"{self.tool_label} exited with status {self.returncode} for {self.subject}"
        return f"{head}\nStdout: {self.stdout.strip()}\nStderr: {self.stderr.strip()}"


class DownloadFailed(_ProcessFailed):
    tool_label = "Downloader"

    @property
    def url(self):
        return self.subject


class UploadFailed(_ProcessFailed):
    tool_label = "Uploader"

    def __init__(self, artifact, host, **kwargs):
        self.artifact = artifact
        self.host = host
        super().__init__(f"{artifact} -> {host}", **kwargs)
