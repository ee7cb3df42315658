"""The list / resolve-hunk / resolve-file operations over a working tree."""

import logging
import os
import shutil
import tempfile
import threading
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from .errors import (
    ExternalFailureError,
    NotFoundError,
    StaleContentError,
    UnreadableError,
    WriteFailedError,
)
from .journal import JournalEntry, ResolutionJournal
from .models import (
    ConflictSummary,
    FileStrategyRequest,
    FileStrategyResult,
    ResolutionRequest,
    ResolveResult,
)
from .resolver import resolve_hunk
from .scanner import compute_fingerprint, resolve_in_repo, scan_conflicts
from .staging import StagingCoordinator
from .vcs import VCSBackend

logger = logging.getLogger(__name__)


def read_bytes(full_path: Path, relative_path: str) -> bytes:
    """Read a resolve target, mapping OS errors onto engine errors."""
    try:
        return full_path.read_bytes()
    except FileNotFoundError:
        raise NotFoundError(f"File not found: {relative_path}") from None
    except OSError as e:
        raise UnreadableError(f"Could not read {relative_path}: {e}") from e


def decode_text(data: bytes, relative_path: str) -> str:
    try:
        return data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise UnreadableError(f"{relative_path} is not valid UTF-8: {e}") from e


def write_atomic(full_path: Path, data: bytes) -> None:
    """Replace a file's content in one step so readers never see a partial write."""
    fd, tmp_name = tempfile.mkstemp(dir=full_path.parent, prefix=f".{full_path.name}.")
    try:
        with os.fdopen(fd, 'wb') as f:
            f.write(data)
        shutil.copymode(full_path, tmp_name)
        os.replace(tmp_name, full_path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


class ConflictService:
    """
    Entry point for hosts: list conflicts, resolve one hunk, resolve a file.

    At most one resolve per path runs at a time within this process. Across
    processes, callers pass the fingerprint they got from ``list_conflicts``
    and a resolve against changed content fails with StaleContentError.
    """

    def __init__(
        self,
        root: Union[Path, str],
        vcs: VCSBackend,
        journal: Optional[ResolutionJournal] = None,
        progress: bool = False
    ):
        self.root = Path(root)
        self.vcs = vcs
        self.staging = StagingCoordinator(vcs)
        self.journal = journal
        self.progress = progress
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, full_path: Path) -> threading.Lock:
        key = str(full_path)
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def list_conflicts(self) -> ConflictSummary:
        """Scan the working tree for conflicted files and their hunks."""
        return scan_conflicts(self.root, self.vcs, progress=self.progress)

    def resolve_hunk(self, request: ResolutionRequest) -> ResolveResult:
        """
        Resolve a single hunk and write the file back.

        The file is staged once no conflict markers remain in it.

        Raises:
            InvalidInputError: missing path, hunk id or manual text
            NotFoundError: file or hunk does not exist
            UnreadableError: file cannot be read or decoded
            StaleContentError: request fingerprint does not match the file
            WriteFailedError: the new content could not be written
            ExternalFailureError: staging failed
        """
        request.validate()
        full_path = resolve_in_repo(self.root, request.path)

        with self._lock_for(full_path):
            data = read_bytes(full_path, request.path)
            before = compute_fingerprint(data)
            if request.fingerprint is not None and request.fingerprint != before:
                raise StaleContentError(
                    f"{request.path} changed since it was scanned; rescan and retry"
                )

            text = decode_text(data, request.path)
            resolved = resolve_hunk(
                text, request.hunk_id, request.strategy, request.manual_text
            )
            new_data = resolved.text.encode("utf-8")
            try:
                write_atomic(full_path, new_data)
            except OSError as e:
                raise WriteFailedError(f"Could not write {request.path}: {e}") from e
            logger.info(
                "Resolved hunk %d of %s with %s",
                request.hunk_id, request.path, request.strategy.value,
            )

            after = compute_fingerprint(new_data)
            try:
                staged = self.staging.finalize(request.path, resolved.has_remaining_conflicts)
            except ExternalFailureError as e:
                # The write already happened; only staging is left to redo
                self._record(request.path, request.hunk_id, request.strategy.value,
                             before, after, False)
                raise ExternalFailureError(
                    f"{request.path} resolved but not staged; run git add: {e.detail}"
                ) from e
            self._record(request.path, request.hunk_id, request.strategy.value,
                         before, after, staged)

        return ResolveResult(
            success=True,
            has_remaining_conflicts=resolved.has_remaining_conflicts,
            message=(
                "Hunk resolved, more conflicts remain"
                if resolved.has_remaining_conflicts
                else "File fully resolved and staged"
            ),
            fingerprint=after,
        )

    def resolve_file(self, request: FileStrategyRequest) -> FileStrategyResult:
        """Resolve a whole file by taking one side through the VCS, then stage it."""
        request.validate()
        full_path = resolve_in_repo(self.root, request.path)

        with self._lock_for(full_path):
            side = self.staging.apply_file_strategy(request.path, request.strategy)
            self._record(request.path, None, side.value, None, None, True)

        logger.info("Resolved %s using %s", request.path, side.value)
        return FileStrategyResult(
            success=True,
            message=f"File resolved using {side.value} strategy",
        )

    def _record(self, path, hunk_id, strategy, before, after, staged) -> None:
        if self.journal is None:
            return
        self.journal.record(JournalEntry(
            path=path,
            hunk_id=hunk_id,
            strategy=strategy,
            fingerprint_before=before,
            fingerprint_after=after,
            staged=staged,
            resolved_at=datetime.now().isoformat(),
        ))
