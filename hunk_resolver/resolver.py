"""Single-hunk resolution."""

import logging
from dataclasses import dataclass
from typing import Optional

from .errors import InvalidInputError, NotFoundError
from .models import Strategy
from .parser import Segment, has_conflict_markers, split_segments

logger = logging.getLogger(__name__)


@dataclass
class ResolvedText:
    """New file content after resolving one hunk."""
    text: str
    has_remaining_conflicts: bool


def resolved_lines(
    segment: Segment,
    strategy: Strategy,
    manual_text: Optional[str] = None
) -> list[str]:
    """Return the lines that replace a conflict block under a strategy."""
    if strategy is Strategy.KEEP_CURRENT:
        return list(segment.current_lines)
    if strategy is Strategy.KEEP_INCOMING:
        return list(segment.incoming_lines)
    if strategy is Strategy.KEEP_BOTH:
        lines = list(segment.current_lines)
        if segment.current_lines and segment.incoming_lines:
            lines.append("")
        lines.extend(segment.incoming_lines)
        return lines
    if strategy is Strategy.MANUAL:
        if manual_text is None:
            raise InvalidInputError("Manual resolution requires manual text")
        return manual_text.split("\n")
    raise InvalidInputError(f"Unknown strategy: {strategy!r}")


def resolve_hunk(
    text: str,
    hunk_id: int,
    strategy: Strategy,
    manual_text: Optional[str] = None
) -> ResolvedText:
    """
    Resolve one hunk of a file's text and return the new full text.

    The text is re-parsed here rather than taken from an earlier scan so the
    hunk ids match what a fresh scan of the same content reports. Every line
    outside the target hunk, including the markers of other hunks and any
    unterminated block, is copied through unchanged.

    Raises:
        InvalidInputError: unknown strategy, or manual without manual_text
        NotFoundError: no hunk with this id in the text
    """
    try:
        strategy = Strategy(strategy)
    except ValueError:
        raise InvalidInputError(f"Unknown strategy: {strategy!r}") from None
    if strategy is Strategy.MANUAL and manual_text is None:
        raise InvalidInputError("Manual resolution requires manual text")

    output: list[str] = []
    found = False
    for segment in split_segments(text.split("\n")):
        if segment.hunk is not None and segment.hunk.id == hunk_id:
            output.extend(resolved_lines(segment, strategy, manual_text))
            found = True
        else:
            output.extend(segment.lines)

    if not found:
        raise NotFoundError(f"Conflict hunk {hunk_id} not found")

    new_text = "\n".join(output)
    logger.debug("Resolved hunk %d with %s", hunk_id, strategy.value)
    return ResolvedText(
        text=new_text,
        has_remaining_conflicts=has_conflict_markers(new_text),
    )
