"""Staging of resolved files and the whole-file strategy shortcut."""

import logging

from .errors import InvalidInputError
from .models import FileSide
from .vcs import VCSBackend

logger = logging.getLogger(__name__)


class StagingCoordinator:
    """Marks files resolved through the VCS collaborator."""

    def __init__(self, vcs: VCSBackend):
        self.vcs = vcs

    def finalize(self, path: str, has_remaining_conflicts: bool) -> bool:
        """Stage the file if it has no conflict markers left. Returns True if staged."""
        if has_remaining_conflicts:
            logger.info("%s still has conflicts; leaving it unstaged", path)
            return False
        self.vcs.stage_path(path)
        return True

    def apply_file_strategy(self, path: str, side) -> FileSide:
        """
        Resolve a whole file by taking one side, then stage it.

        No hunk parsing happens here; the VCS's own checkout decides the
        content.
        """
        if not path:
            raise InvalidInputError("File path required")
        try:
            side = FileSide(side)
        except ValueError:
            raise InvalidInputError(f"Invalid strategy: {side!r}") from None
        self.vcs.checkout_side(path, side)
        self.vcs.stage_path(path)
        return side
