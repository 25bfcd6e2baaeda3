from .config import RelayConfig, build_relay_config, load_config, read_relay_config, validate_config
from .errors import (
    BadRequest,
    BindError,
    ConfigError,
    CredentialsUnavailable,
    DirectoryCleanupFailed,
    DownloadFailed,
    JobError,
    MultipleArtifactsFound,
    NoArtifactFound,
    RelayError,
    StartupError,
    UploadFailed,
)
from .job_dir import JobDirectory
from .runtime import get_runtime_info
