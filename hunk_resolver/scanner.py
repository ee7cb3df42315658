"""Conflict discovery across the working tree."""

import logging
from pathlib import Path
from typing import Union

import xxhash
from tqdm import tqdm

from .errors import InvalidInputError
from .models import ConflictFile, ConflictSummary, ScanError
from .parser import parse_file
from .vcs import CONFLICT_STATUS_CODES, VCSBackend

logger = logging.getLogger(__name__)


def compute_fingerprint(data: bytes) -> str:
    """Fingerprint file content using xxhash (fast hashing algorithm)."""
    return xxhash.xxh64(data).hexdigest()


def resolve_in_repo(root: Path, relative_path: str) -> Path:
    """Join a repository-relative path onto the root, refusing paths that escape it."""
    if not relative_path:
        raise InvalidInputError("File path required")
    root = Path(root).resolve()
    full_path = (root / relative_path).resolve()
    if full_path != root and root not in full_path.parents:
        raise InvalidInputError(f"Path is outside the repository: {relative_path}")
    return full_path


def read_conflict_file(root: Path, relative_path: str) -> ConflictFile:
    """
    Read and parse one conflicted file.

    Raises OSError or UnicodeDecodeError if the content cannot be read.
    """
    full_path = resolve_in_repo(root, relative_path)
    data = full_path.read_bytes()
    text = data.decode("utf-8")
    hunks, malformed = parse_file(text)
    return ConflictFile(
        path=relative_path,
        hunks=hunks,
        fingerprint=compute_fingerprint(data),
        malformed_lines=malformed,
    )


def scan_conflicts(
    root: Union[Path, str],
    vcs: VCSBackend,
    progress: bool = False
) -> ConflictSummary:
    """
    List conflicted files in a working tree and parse their hunks.

    Args:
        root: Working tree root that status paths are relative to
        vcs: Collaborator providing short-status entries and the merge flag
        progress: Show a progress bar while reading files

    Returns:
        ConflictSummary. A file that cannot be read is listed with no hunks
        and recorded in ``errors``; it never aborts the scan.
    """
    root = Path(root)
    has_merge = vcs.is_merge_in_progress()
    conflicted = [
        path for status, path in vcs.list_conflicted_paths()
        if status in CONFLICT_STATUS_CODES
    ]

    summary = ConflictSummary(has_merge_in_progress=has_merge)
    with tqdm(conflicted, desc="Scanning conflicts", unit="file",
              disable=not progress) as pbar:
        for rel_path in pbar:
            try:
                conflict_file = read_conflict_file(root, rel_path)
            except (OSError, UnicodeDecodeError, InvalidInputError) as e:
                # One side may have deleted the file
                logger.warning("Could not read conflicted file %s: %s", rel_path, e)
                summary.errors.append(ScanError(rel_path, str(e)))
                conflict_file = ConflictFile(path=rel_path)
            summary.files.append(conflict_file)

    logger.info(
        "Found %d conflicted files with %d hunks",
        len(summary.files), summary.total_conflicts,
    )
    return summary

