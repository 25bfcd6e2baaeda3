"""Scratch directory shared by the downloader and the uploader.

The directory holds at most one artifact between jobs: it is cleared at
the start of every loop iteration and the downloader leaves exactly one
file in it on success.
"""

from __future__ import annotations

import logging
import os

from engine.errors import DirectoryCleanupFailed, MultipleArtifactsFound, NoArtifactFound

logger = logging.getLogger(__name__)


class JobDirectory:
    def __init__(self, path: str) -> None:
        self.path = os.path.abspath(path)

    def __repr__(self) -> str:
        return f"JobDirectory({self.path!r})"

    def _entries(self) -> list[os.DirEntry]:
        with os.scandir(self.path) as it:
            return sorted(it, key=lambda entry: entry.name)

    def list_artifacts(self) -> list[str]:
        """Return the sorted names of the regular files in the directory."""
        return [entry.name for entry in self._entries() if entry.is_file(follow_symlinks=False)]

    def clear(self) -> None:
        """Remove every non-directory entry directly inside the directory.

        Each entry is attempted even if an earlier removal failed. Any
        failure is reported afterwards as ``DirectoryCleanupFailed``.
        Subdirectories are left in place.
        """
        try:
            entries = self._entries()
        except OSError as exc:
            raise DirectoryCleanupFailed(self.path, [(".", exc)]) from exc

        failures = []
        for entry in entries:
            if entry.is_dir(follow_symlinks=False):
                logger.warning("Leaving subdirectory in scratch dir: %s", entry.path)
                continue
            try:
                os.remove(entry.path)
            except FileNotFoundError:
                continue
            except OSError as exc:
                failures.append((entry.name, exc))
            else:
                logger.debug("Removed %s", entry.path)
        if failures:
            raise DirectoryCleanupFailed(self.path, failures)

    def single_artifact_name(self) -> str:
        names = self.list_artifacts()
        if not names:
            raise NoArtifactFound(self.path)
        if len(names) > 1:
            raise MultipleArtifactsFound(self.path, names)
        return names[0]
