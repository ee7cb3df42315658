"""Shared test fixtures."""

import tempfile
from pathlib import Path

import pytest

from hunk_resolver.journal import JournalEntry, ResolutionJournal
from hunk_resolver.models import FileSide


TWO_WAY = "<<<<<<< HEAD\nA\n=======\nB\n>>>>>>> branch\n"

DIFF3 = "<<<<<<< HEAD\nA\n||||||| merged\nC\n=======\nB\n>>>>>>> branch\n"

TWO_HUNKS = (
    "header\n"
    "<<<<<<< HEAD\n"
    "ours one\n"
    "=======\n"
    "theirs one\n"
    ">>>>>>> feature\n"
    "middle\n"
    "<<<<<<< HEAD\n"
    "ours two\n"
    "||||||| base\n"
    "base two\n"
    "=======\n"
    "theirs two\n"
    ">>>>>>> feature\n"
    "footer\n"
)


class FakeVCS:
    """In-memory VCS collaborator that records every call."""

    def __init__(self, entries=None, merge_in_progress=True):
        self.entries = list(entries or [])
        self.merge_in_progress = merge_in_progress
        self.staged = []
        self.checkouts = []
        self.fail_stage = None
        self.fail_checkout = None

    def list_conflicted_paths(self):
        return list(self.entries)

    def is_merge_in_progress(self):
        return self.merge_in_progress

    def stage_path(self, path):
        if self.fail_stage is not None:
            raise self.fail_stage
        self.staged.append(path)

    def checkout_side(self, path, side):
        if self.fail_checkout is not None:
            raise self.fail_checkout
        self.checkouts.append((path, FileSide(side)))


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def fake_vcs():
    return FakeVCS()


@pytest.fixture
def work_tree(temp_dir):
    """Create a working tree with a few conflicted files."""
    (temp_dir / "two_hunks.txt").write_text(TWO_HUNKS)
    (temp_dir / "single.txt").write_text(TWO_WAY)
    (temp_dir / "src").mkdir()
    (temp_dir / "src" / "diff3.py").write_text(DIFF3)
    return temp_dir


@pytest.fixture
def journal_path(temp_dir):
    """Create a temporary journal path."""
    return temp_dir / "test_journal.db"


@pytest.fixture
def journal(journal_path):
    """Create a ResolutionJournal instance."""
    db = ResolutionJournal(journal_path)
    yield db
    try:
        db.close()
    except Exception:
        pass


@pytest.fixture
def sample_entry():
    """Create a sample JournalEntry for testing."""
    return JournalEntry(
        path="src/app.py",
        hunk_id=1,
        strategy="keep-both",
        fingerprint_before="abc123def4567890",
        fingerprint_after="0987654fed321cba",
        staged=False,
        resolved_at="2024-01-01T12:00:00"
    )
