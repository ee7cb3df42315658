"""Version control collaborator used by the scanner and the staging coordinator."""

import logging
import subprocess
from pathlib import Path
from typing import Protocol, Union

from .errors import ExternalFailureError
from .models import FileSide

logger = logging.getLogger(__name__)

# Short-status codes of paths with a two-sided conflict
CONFLICT_STATUS_CODES = frozenset({"UU", "AA", "DU", "UD"})

DEFAULT_TIMEOUT = 30.0


class VCSBackend(Protocol):
    """Capabilities the engine needs from the version control system."""

    def list_conflicted_paths(self) -> list[tuple[str, str]]:
        """Return (status_code, path) short-status entries."""
        ...

    def is_merge_in_progress(self) -> bool:
        ...

    def stage_path(self, path: str) -> None:
        ...

    def checkout_side(self, path: str, side: FileSide) -> None:
        ...


def parse_porcelain_z(output: str) -> list[tuple[str, str]]:
    """Parse `git status --porcelain -z` output into (status, path) pairs."""
    entries = []
    fields = output.split("\0")
    i = 0
    while i < len(fields):
        entry = fields[i]
        i += 1
        if len(entry) < 4:
            continue
        status, path = entry[:2], entry[3:]
        entries.append((status, path))
        if status[0] in ("R", "C"):
            # Renames and copies carry the original path as an extra field
            i += 1
    return entries


class GitBackend:
    """VCSBackend implemented with the git command line.

    Every command runs with an argument list (no shell) and is bounded by
    ``timeout`` seconds.
    """

    def __init__(self, repo_path: Union[Path, str], git: str = "git",
                 timeout: float = DEFAULT_TIMEOUT):
        self.repo_path = Path(repo_path)
        self.git = git
        self.timeout = timeout

    @classmethod
    def discover(cls, path: Union[Path, str], git: str = "git",
                 timeout: float = DEFAULT_TIMEOUT) -> "GitBackend":
        """Return a backend rooted at the top level of the work tree containing ``path``.

        Status paths are relative to the top level, so the backend and any
        file access built on it must use that directory, not ``path``.
        """
        start = cls(path, git=git, timeout=timeout)
        return cls(start.show_toplevel(), git=git, timeout=timeout)

    def show_toplevel(self) -> Path:
        result = self._run("rev-parse", "--show-toplevel")
        return Path(result.stdout.strip())

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        command = [self.git, *args]
        logger.debug("Running %s in %s", " ".join(command), self.repo_path)
        try:
            result = subprocess.run(
                command,
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                timeout=self.timeout,
            )
        except subprocess.TimeoutExpired:
            raise ExternalFailureError(
                f"git {args[0]} timed out after {self.timeout:g}s"
            ) from None
        except OSError as e:
            raise ExternalFailureError(f"Could not run git: {e}") from e

        if check and result.returncode != 0:
            stderr = result.stderr.strip() or f"exit code {result.returncode}"
            raise ExternalFailureError(f"git {args[0]} failed: {stderr}")
        return result

    def list_conflicted_paths(self) -> list[tuple[str, str]]:
        result = self._run("status", "--porcelain", "-z")
        return parse_porcelain_z(result.stdout)

    def is_merge_in_progress(self) -> bool:
        result = self._run("rev-parse", "-q", "--verify", "MERGE_HEAD", check=False)
        return result.returncode == 0

    def stage_path(self, path: str) -> None:
        self._run("add", "--", path)
        logger.info("Staged %s", path)

    def checkout_side(self, path: str, side: FileSide) -> None:
        side = FileSide(side)
        self._run("checkout", f"--{side.value}", "--", path)
        logger.info("Checked out %s side of %s", side.value, path)
