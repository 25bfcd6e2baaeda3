import os
import shutil
import sys

from yt_dlp.version import __version__ as ytdlp_version


def get_runtime_info():
    return {
        "app_version": os.environ.get("RELAY_VERSION", "0.0.0"),
        "python_version": sys.version.split()[0],
        "yt_dlp_version": ytdlp_version,
    }


def missing_tools(*executables):
    """Return the executables that cannot be found on PATH."""
    return [name for name in executables if shutil.which(name) is None]
