from __future__ import annotations

import os
from pathlib import Path

import pytest

from engine.errors import DirectoryCleanupFailed, MultipleArtifactsFound, NoArtifactFound
from engine.job_dir import JobDirectory


def test_clear_on_empty_directory_is_noop(scratch_dir: Path) -> None:
    directory = JobDirectory(str(scratch_dir))

    directory.clear()
    directory.clear()

    assert list(scratch_dir.iterdir()) == []


def test_clear_removes_files_and_symlinks_but_keeps_subdirectories(scratch_dir: Path, tmp_path: Path) -> None:
    (scratch_dir / "a.mp4").write_bytes(b"video")
    (scratch_dir / "a.mp4.part").write_bytes(b"partial")
    (scratch_dir / "nested").mkdir()
    (scratch_dir / "nested" / "keep.txt").write_text("x")
    outside = tmp_path / "outside.txt"
    outside.write_text("outside")
    os.symlink(outside, scratch_dir / "link")

    JobDirectory(str(scratch_dir)).clear()

    assert sorted(p.name for p in scratch_dir.iterdir()) == ["nested"]
    assert (scratch_dir / "nested" / "keep.txt").exists()
    assert outside.exists()


def test_clear_attempts_every_entry_and_reports_failures(monkeypatch, scratch_dir: Path) -> None:
    for name in ("a.mp4", "b.srt", "c.nfo"):
        (scratch_dir / name).write_text(name)
    real_remove = os.remove

    def _remove(path):
        if path.endswith("b.srt"):
            raise PermissionError("denied")
        real_remove(path)

    monkeypatch.setattr("engine.job_dir.os.remove", _remove)

    with pytest.raises(DirectoryCleanupFailed) as excinfo:
        JobDirectory(str(scratch_dir)).clear()

    assert [name for name, _err in excinfo.value.failures] == ["b.srt"]
    assert sorted(p.name for p in scratch_dir.iterdir()) == ["b.srt"]


def test_clear_of_missing_directory_raises_cleanup_failed(tmp_path: Path) -> None:
    with pytest.raises(DirectoryCleanupFailed):
        JobDirectory(str(tmp_path / "gone")).clear()


def test_single_artifact_name_returns_only_file(scratch_dir: Path) -> None:
    (scratch_dir / "a.mp4").write_bytes(b"video")
    (scratch_dir / "subdir").mkdir()

    assert JobDirectory(str(scratch_dir)).single_artifact_name() == "a.mp4"


def test_single_artifact_name_fails_when_directory_is_empty(scratch_dir: Path) -> None:
    with pytest.raises(NoArtifactFound):
        JobDirectory(str(scratch_dir)).single_artifact_name()


def test_single_artifact_name_refuses_to_pick_between_files(scratch_dir: Path) -> None:
    (scratch_dir / "b.mp4").write_bytes(b"1")
    (scratch_dir / "a.srt").write_bytes(b"2")

    with pytest.raises(MultipleArtifactsFound) as excinfo:
        JobDirectory(str(scratch_dir)).single_artifact_name()

    assert excinfo.value.names == ["a.srt", "b.mp4"]
