"""Application settings constants."""

from __future__ import annotations

APP_NAME = "relay"

# Config file used when neither --config nor RELAY_CONFIG is given.
DEFAULT_CONFIG_PATH = "config.json"
CONFIG_PATH_ENV_KEY = "RELAY_CONFIG"

DEFAULT_BIND_ADDRESS = "0.0.0.0"
DEFAULT_LOG_DIR = "logs"
DEFAULT_LOG_LEVEL = "INFO"
LOG_FORMAT = "%(asctime)s [%(levelname)s] %(message)s"

# Downloader executables and the arguments placed before the URL.
DEFAULT_DOWNLOADER = "yt-dlp"
DOWNLOADER_DEFAULT_ARGS = {
    "yt-dlp": ["--no-playlist", "--no-progress", "--remux-video", "mkv"],
    "svtplay-dl": ["-q", "2200", "-Q", "600", "--remux", "--silent-semi"],
}

# Upload target: lftp reads credentials from ~/.netrc itself.
UPLOADER = "lftp"
DEFAULT_FTP_PORT = 21
DEFAULT_FTP_REMOTE_DIR = "TvFromPi"

# Upper bounds on external tool runtime; None disables the bound.
DEFAULT_DOWNLOAD_TIMEOUT_SECONDS = 4 * 60 * 60
DEFAULT_UPLOAD_TIMEOUT_SECONDS = 60 * 60

TELEGRAM_TIMEOUT_SECONDS = 15

# Socket timeout while reading an incoming request.
REQUEST_READ_TIMEOUT_SECONDS = 60
