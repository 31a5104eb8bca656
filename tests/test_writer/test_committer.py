"""Unit tests for shipwright_gen.writer."""

from __future__ import annotations

import errno
from pathlib import Path

import pytest

from shipwright_gen.descriptor import parse
from shipwright_gen.errors import ConflictError, PartialWriteError, WriteError
from shipwright_gen.rendering import ArtifactKind, GenerationPlan, RenderedArtifact
from shipwright_gen.writer import commit, committer, write_artifact
from tests._fixtures.clock import FIXED_STAMP

pytestmark = pytest.mark.unit


def _artifact(path: Path, text: str = "content\n", kind: str = "model") -> RenderedArtifact:
    return RenderedArtifact(unit=kind, artifact=kind, path=path, text=text, package="pkg")


def _plan(*artifacts: RenderedArtifact) -> GenerationPlan:
    return GenerationPlan(
        resource=parse("note", ["body:text"]), timestamp=FIXED_STAMP, artifacts=artifacts
    )


class _DiskFull:
    """Open file whose writes stop halfway, as on a full disk."""

    def __init__(self, handle):
        self._handle = handle

    def write(self, text: str) -> int:
        self._handle.write(text[: len(text) // 2])
        self._handle.flush()
        raise OSError(errno.ENOSPC, "No space left on device")

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self._handle.close()


def _fill_disk_on(monkeypatch: pytest.MonkeyPatch, failing: Path) -> None:
    """Make the writer's writes to *failing* fail after the file is created."""
    real_open = open

    def fake_open(path, *args, **kwargs):
        handle = real_open(path, *args, **kwargs)
        return _DiskFull(handle) if Path(path) == failing else handle

    monkeypatch.setattr(committer, "open", fake_open, raising=False)


class TestCommit:
    def test_writes_every_artifact_in_order(self, comment_plan):
        report = commit(comment_plan)
        assert report.paths == comment_plan.paths
        for artifact in comment_plan.artifacts:
            assert artifact.path.read_text(encoding="utf-8") == artifact.text

    def test_report_by_kind(self, comment_plan):
        report = commit(comment_plan)
        assert report.migrations == [comment_plan.artifacts[0].path]
        assert report.by_kind("handler") == [comment_plan.artifacts[2].path]
        assert [c.package for c in report.created] == ["blog-db", "blog-db", "blog-web"]
        assert report.resource.table == "comments"

    def test_creates_missing_directories(self, tmp_path):
        target = tmp_path / "a" / "b" / "c.txt"
        commit(_plan(_artifact(target)))
        assert target.read_text(encoding="utf-8") == "content\n"

    def test_writes_lf_line_endings(self, tmp_path):
        target = tmp_path / "lf.txt"
        commit(_plan(_artifact(target, text="one\ntwo\n")))
        assert target.read_bytes() == b"one\ntwo\n"


class TestConflicts:
    def test_existing_file_blocks_everything(self, comment_plan):
        existing = comment_plan.artifacts[2].path
        existing.parent.mkdir(parents=True, exist_ok=True)
        existing.write_text("keep me\n", encoding="utf-8")

        with pytest.raises(ConflictError) as exc_info:
            commit(comment_plan)

        assert exc_info.value.paths == [existing]
        assert existing.read_text(encoding="utf-8") == "keep me\n"
        assert not comment_plan.artifacts[0].path.exists()
        assert not comment_plan.artifacts[1].path.exists()

    def test_file_created_after_render_is_detected(self, comment_plan):
        path = comment_plan.artifacts[0].path
        path.write_text("-- racing migration\n", encoding="utf-8")
        with pytest.raises(ConflictError):
            commit(comment_plan)
        assert path.read_text(encoding="utf-8") == "-- racing migration\n"

    def test_duplicate_paths(self, tmp_path):
        target = tmp_path / "dup.txt"
        with pytest.raises(ConflictError) as exc_info:
            commit(_plan(_artifact(target), _artifact(target)))
        assert exc_info.value.paths == [target]
        assert not target.exists()

    def test_write_artifact_never_overwrites(self, tmp_path):
        target = tmp_path / "exists.txt"
        target.write_text("old\n", encoding="utf-8")
        with pytest.raises(FileExistsError):
            write_artifact(_artifact(target))
        assert target.read_text(encoding="utf-8") == "old\n"


class TestWriteFailures:
    def test_first_write_failure(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        target = blocker / "child.txt"

        with pytest.raises(WriteError) as exc_info:
            commit(_plan(_artifact(target), _artifact(tmp_path / "later.txt")))

        assert not isinstance(exc_info.value, PartialWriteError)
        assert exc_info.value.path == target
        assert isinstance(exc_info.value.cause, OSError)
        assert not (tmp_path / "later.txt").exists()

    def test_partial_write_reports_written_and_pending(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("", encoding="utf-8")
        first = tmp_path / "first.txt"
        failing = blocker / "second.txt"
        third = tmp_path / "third.txt"

        with pytest.raises(PartialWriteError) as exc_info:
            commit(
                _plan(
                    _artifact(first, kind="migration"),
                    _artifact(failing),
                    _artifact(third, kind="handler"),
                )
            )

        error = exc_info.value
        assert error.written == [first]
        assert error.pending == [failing, third]
        assert first.exists()
        assert not third.exists()
        assert "remove manually" in str(error)

    def test_failed_write_leaves_no_truncated_file(self, tmp_path, monkeypatch):
        target = tmp_path / "out" / "full.txt"
        _fill_disk_on(monkeypatch, target)

        with pytest.raises(WriteError) as exc_info:
            commit(_plan(_artifact(target, text="x" * 64), _artifact(tmp_path / "later.txt")))

        assert exc_info.value.cause.errno == errno.ENOSPC
        assert not target.exists()
        assert not (tmp_path / "later.txt").exists()

    def test_partial_write_removes_only_the_failed_file(self, tmp_path, monkeypatch):
        first, failing = tmp_path / "first.txt", tmp_path / "second.txt"
        _fill_disk_on(monkeypatch, failing)

        with pytest.raises(PartialWriteError) as exc_info:
            commit(_plan(_artifact(first), _artifact(failing, text="y" * 64)))

        assert exc_info.value.written == [first]
        assert exc_info.value.pending == [failing]
        assert first.read_text(encoding="utf-8") == "content\n"
        assert not failing.exists()

    def test_write_artifact_reraises_after_cleanup(self, tmp_path, monkeypatch):
        target = tmp_path / "full.txt"
        _fill_disk_on(monkeypatch, target)
        with pytest.raises(OSError):
            write_artifact(_artifact(target))
        assert not target.exists()

    def test_artifact_kind_round_trip(self, tmp_path):
        report = commit(_plan(_artifact(tmp_path / "m.sql", kind="migration")))
        assert report.created[0].artifact is ArtifactKind.MIGRATION
