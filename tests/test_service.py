"""Tests for hunk_resolver.service module."""

import os
import threading
from unittest.mock import patch

import pytest

from hunk_resolver.errors import (
    ExternalFailureError,
    InvalidInputError,
    NotFoundError,
    StaleContentError,
    UnreadableError,
    WriteFailedError,
)
from hunk_resolver.models import (
    FileSide,
    FileStrategyRequest,
    ResolutionRequest,
    Strategy,
)
from hunk_resolver.scanner import compute_fingerprint
from hunk_resolver.service import ConflictService, write_atomic

from conftest import FakeVCS, TWO_HUNKS, TWO_WAY


@pytest.fixture
def vcs():
    return FakeVCS([
        ("UU", "two_hunks.txt"),
        ("AA", "single.txt"),
        ("UU", "src/diff3.py"),
    ])


@pytest.fixture
def service(work_tree, vcs):
    return ConflictService(work_tree, vcs)


class TestListConflicts:
    """Tests for ConflictService.list_conflicts."""

    def test_list_conflicts(self, service):
        summary = service.list_conflicts()

        assert summary.total_conflicts == 4
        assert summary.to_dict()["files"][2]["hunks"][0]["baseText"] == "C"


class TestResolveHunk:
    """Tests for ConflictService.resolve_hunk."""

    def test_partial_resolution_not_staged(self, service, work_tree, vcs):
        result = service.resolve_hunk(
            ResolutionRequest("two_hunks.txt", 0, Strategy.KEEP_CURRENT)
        )

        assert result.success is True
        assert result.has_remaining_conflicts is True
        assert result.message == "Hunk resolved, more conflicts remain"
        assert vcs.staged == []
        content = (work_tree / "two_hunks.txt").read_text()
        assert content.startswith("header\nours one\nmiddle\n<<<<<<< HEAD\n")

    def test_full_resolution_stages_once(self, service, work_tree, vcs):
        service.resolve_hunk(ResolutionRequest("two_hunks.txt", 0, Strategy.KEEP_CURRENT))
        result = service.resolve_hunk(
            ResolutionRequest("two_hunks.txt", 0, Strategy.KEEP_INCOMING)
        )

        assert result.has_remaining_conflicts is False
        assert result.message == "File fully resolved and staged"
        assert vcs.staged == ["two_hunks.txt"]
        assert (work_tree / "two_hunks.txt").read_text() == (
            "header\nours one\nmiddle\ntheirs two\nfooter\n"
        )

    def test_single_hunk_file_resolved_and_staged(self, service, work_tree, vcs):
        result = service.resolve_hunk(
            ResolutionRequest("single.txt", 0, Strategy.KEEP_BOTH)
        )

        assert result.has_remaining_conflicts is False
        assert (work_tree / "single.txt").read_text() == "A\n\nB\n"
        assert vcs.staged == ["single.txt"]

    def test_manual_resolution(self, service, work_tree):
        service.resolve_hunk(
            ResolutionRequest("src/diff3.py", 0, Strategy.MANUAL, manual_text="merged")
        )
        assert (work_tree / "src" / "diff3.py").read_text() == "merged\n"

    def test_result_fingerprint_matches_new_content(self, service, work_tree):
        result = service.resolve_hunk(
            ResolutionRequest("single.txt", 0, Strategy.KEEP_CURRENT)
        )
        assert result.fingerprint == compute_fingerprint((work_tree / "single.txt").read_bytes())

    def test_matching_fingerprint_accepted(self, service, work_tree):
        fingerprint = service.list_conflicts().files[0].fingerprint
        result = service.resolve_hunk(ResolutionRequest(
            "two_hunks.txt", 1, Strategy.KEEP_CURRENT, fingerprint=fingerprint
        ))
        assert result.success is True

    def test_stale_fingerprint_rejected(self, service, work_tree, vcs):
        fingerprint = service.list_conflicts().files[0].fingerprint
        (work_tree / "two_hunks.txt").write_text(TWO_HUNKS + "edited\n")

        with pytest.raises(StaleContentError):
            service.resolve_hunk(ResolutionRequest(
                "two_hunks.txt", 0, Strategy.KEEP_CURRENT, fingerprint=fingerprint
            ))
        assert (work_tree / "two_hunks.txt").read_text() == TWO_HUNKS + "edited\n"
        assert vcs.staged == []

    def test_missing_hunk_is_not_found(self, service, work_tree, vcs):
        service.resolve_hunk(ResolutionRequest("single.txt", 0, Strategy.KEEP_CURRENT))

        with pytest.raises(NotFoundError):
            service.resolve_hunk(ResolutionRequest("single.txt", 0, Strategy.KEEP_CURRENT))
        assert vcs.staged == ["single.txt"]

    def test_missing_hunk_leaves_file_untouched(self, service, work_tree):
        with pytest.raises(NotFoundError):
            service.resolve_hunk(ResolutionRequest("two_hunks.txt", 5, Strategy.KEEP_CURRENT))
        assert (work_tree / "two_hunks.txt").read_text() == TWO_HUNKS

    def test_missing_file_is_not_found(self, service):
        with pytest.raises(NotFoundError):
            service.resolve_hunk(ResolutionRequest("missing.txt", 0, Strategy.KEEP_CURRENT))

    def test_directory_is_unreadable(self, service):
        with pytest.raises(UnreadableError):
            service.resolve_hunk(ResolutionRequest("src", 0, Strategy.KEEP_CURRENT))

    def test_undecodable_file_is_unreadable(self, service, work_tree):
        (work_tree / "binary.bin").write_bytes(b"\xff\xfe<<<<<<<")
        with pytest.raises(UnreadableError):
            service.resolve_hunk(ResolutionRequest("binary.bin", 0, Strategy.KEEP_CURRENT))

    def test_missing_path_is_invalid(self, service):
        with pytest.raises(InvalidInputError):
            service.resolve_hunk(ResolutionRequest("", 0, Strategy.KEEP_CURRENT))

    def test_manual_without_text_is_invalid(self, service, work_tree):
        with pytest.raises(InvalidInputError):
            service.resolve_hunk(ResolutionRequest("single.txt", 0, Strategy.MANUAL))
        assert (work_tree / "single.txt").read_text() == TWO_WAY

    def test_path_outside_repo_is_invalid(self, service):
        with pytest.raises(InvalidInputError):
            service.resolve_hunk(ResolutionRequest("../x.txt", 0, Strategy.KEEP_CURRENT))

    def test_stage_failure_propagates(self, service, work_tree, vcs):
        vcs.fail_stage = ExternalFailureError("git add failed: index.lock exists")

        with pytest.raises(ExternalFailureError) as exc_info:
            service.resolve_hunk(ResolutionRequest("single.txt", 0, Strategy.KEEP_INCOMING))
        assert (work_tree / "single.txt").read_text() == "B\n"
        assert "resolved but not staged; run git add" in exc_info.value.detail
        assert "index.lock" in exc_info.value.detail

    def test_stage_failure_still_journaled(self, work_tree, vcs, journal):
        service = ConflictService(work_tree, vcs, journal=journal)
        vcs.fail_stage = ExternalFailureError("git add failed: index.lock exists")

        with pytest.raises(ExternalFailureError):
            service.resolve_hunk(ResolutionRequest("single.txt", 0, Strategy.KEEP_INCOMING))

        entries = journal.history("single.txt")
        assert len(entries) == 1
        assert entries[0].strategy == "keep-incoming"
        assert entries[0].staged is False
        assert entries[0].fingerprint_after == compute_fingerprint(b"B\n")

    def test_partial_resolution_never_stages(self, service, vcs):
        vcs.fail_stage = ExternalFailureError("git add failed")

        result = service.resolve_hunk(
            ResolutionRequest("two_hunks.txt", 0, Strategy.KEEP_CURRENT)
        )
        assert result.has_remaining_conflicts is True

    def test_write_failure_leaves_file_intact(self, service, work_tree):
        with patch("hunk_resolver.service.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(WriteFailedError):
                service.resolve_hunk(
                    ResolutionRequest("single.txt", 0, Strategy.KEEP_INCOMING)
                )

        assert (work_tree / "single.txt").read_text() == TWO_WAY
        assert sorted(p.name for p in work_tree.iterdir()) == [
            "single.txt", "src", "two_hunks.txt"
        ]

    def test_same_path_shares_lock(self, service, work_tree):
        first = service._lock_for(work_tree / "single.txt")
        second = service._lock_for(work_tree / "single.txt")
        other = service._lock_for(work_tree / "two_hunks.txt")

        assert first is second
        assert first is not other

    def test_concurrent_resolves_on_same_file(self, service, work_tree):
        errors = []

        def resolve():
            try:
                service.resolve_hunk(
                    ResolutionRequest("two_hunks.txt", 0, Strategy.KEEP_CURRENT)
                )
            except NotFoundError as e:
                errors.append(e)

        threads = [threading.Thread(target=resolve) for _ in range(3)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        # Three hunk-0 resolves against two hunks: the last one finds nothing
        assert len(errors) == 1
        assert (work_tree / "two_hunks.txt").read_text() == (
            "header\nours one\nmiddle\nours two\nfooter\n"
        )


class TestResolveFile:
    """Tests for ConflictService.resolve_file."""

    def test_resolve_file(self, service, vcs):
        result = service.resolve_file(FileStrategyRequest("single.txt", "theirs"))

        assert result.success is True
        assert result.message == "File resolved using theirs strategy"
        assert vcs.checkouts == [("single.txt", FileSide.THEIRS)]
        assert vcs.staged == ["single.txt"]

    def test_resolve_file_missing_path(self, service):
        with pytest.raises(InvalidInputError):
            service.resolve_file(FileStrategyRequest("", "ours"))

    def test_resolve_file_checkout_failure(self, service, vcs):
        vcs.fail_checkout = ExternalFailureError("git checkout failed")
        with pytest.raises(ExternalFailureError):
            service.resolve_file(FileStrategyRequest("single.txt", "ours"))


class TestJournaling:
    """Tests for journal integration."""

    def test_resolutions_recorded(self, work_tree, vcs, journal):
        service = ConflictService(work_tree, vcs, journal=journal)
        service.resolve_hunk(ResolutionRequest("two_hunks.txt", 1, Strategy.KEEP_BOTH))
        service.resolve_file(FileStrategyRequest("single.txt", "ours"))

        entries = journal.history()
        assert [(e.path, e.hunk_id, e.strategy, e.staged) for e in entries] == [
            ("two_hunks.txt", 1, "keep-both", False),
            ("single.txt", None, "ours", True),
        ]
        assert entries[0].fingerprint_before == compute_fingerprint(TWO_HUNKS.encode())
        assert entries[0].fingerprint_after != entries[0].fingerprint_before

    def test_failed_resolution_not_recorded(self, work_tree, vcs, journal):
        service = ConflictService(work_tree, vcs, journal=journal)
        with pytest.raises(NotFoundError):
            service.resolve_hunk(ResolutionRequest("single.txt", 3, Strategy.KEEP_BOTH))
        assert journal.count() == 0


class TestWriteAtomic:
    """Tests for write_atomic function."""

    def test_replaces_content(self, temp_dir):
        target = temp_dir / "f.txt"
        target.write_text("old")
        write_atomic(target, b"new")
        assert target.read_bytes() == b"new"

    @pytest.mark.skipif(os.name == "nt", reason="POSIX permissions")
    def test_preserves_mode(self, temp_dir):
        target = temp_dir / "script.sh"
        target.write_text("old")
        target.chmod(0o755)
        write_atomic(target, b"new")
        assert target.stat().st_mode & 0o777 == 0o755
