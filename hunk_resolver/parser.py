"""Conflict marker parsing.

The file is split into segments by a single left-to-right state machine.
A segment is either a run of ordinary lines or one complete conflict block.
Both the parser and the resolver consume the same segments, so the hunk
numbering a caller sees in a scan is the numbering the resolver applies.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, Optional

from .models import Hunk

logger = logging.getLogger(__name__)

OPEN_MARKER = "<<<<<<<"
BASE_MARKER = "|||||||"
SEPARATOR_MARKER = "======="
CLOSE_MARKER = ">>>>>>>"


class ParseState(Enum):
    """Which section of a conflict block the scanner is in."""
    NONE = "none"
    IN_CURRENT = "in_current"
    IN_BASE = "in_base"
    IN_INCOMING = "in_incoming"


@dataclass
class Segment:
    """A run of raw lines, optionally carrying the hunk they encode.

    ``lines`` always holds the original text of the span, markers included.
    ``hunk`` is set for complete conflict blocks. ``malformed`` is set for a
    block that was opened but never closed; its lines are kept verbatim.
    """
    lines: list[str]
    hunk: Optional[Hunk] = None
    current_lines: list[str] = field(default_factory=list)
    incoming_lines: list[str] = field(default_factory=list)
    malformed: bool = False
    start_line: int = 0


class _OpenBlock:
    """Buffers for the conflict block currently being read."""

    def __init__(self, start_line: int, marker_line: str):
        self.start_line = start_line
        self.raw = [marker_line]
        self.state = ParseState.IN_CURRENT
        self.current: list[str] = []
        self.base: list[str] = []
        self.incoming: list[str] = []
        self.has_base = False

    def feed(self, line: str) -> None:
        self.raw.append(line)
        if self.state is ParseState.IN_CURRENT and line.startswith(BASE_MARKER):
            # Lines read so far stay as current_text; diff3 keeps "ours" before the base
            self.has_base = True
            self.state = ParseState.IN_BASE
        elif (self.state in (ParseState.IN_CURRENT, ParseState.IN_BASE)
              and line.startswith(SEPARATOR_MARKER)):
            self.state = ParseState.IN_INCOMING
        elif self.state is ParseState.IN_CURRENT:
            self.current.append(line)
        elif self.state is ParseState.IN_BASE:
            self.base.append(line)
        else:
            self.incoming.append(line)

    def close(self, hunk_id: int, end_line: int, marker_line: str) -> Segment:
        self.raw.append(marker_line)
        hunk = Hunk(
            id=hunk_id,
            start_line=self.start_line,
            end_line=end_line,
            current_text="\n".join(self.current),
            incoming_text="\n".join(self.incoming),
            base_text="\n".join(self.base) if self.has_base else None,
        )
        return Segment(
            lines=self.raw,
            hunk=hunk,
            current_lines=self.current,
            incoming_lines=self.incoming,
            start_line=self.start_line,
        )

    def abandon(self) -> Segment:
        logger.warning(
            "Unterminated conflict block starting at line %d; leaving it unparsed",
            self.start_line,
        )
        return Segment(lines=self.raw, malformed=True, start_line=self.start_line)


def split_segments(lines: Iterable[str]) -> Iterator[Segment]:
    """Split file lines into plain runs and conflict blocks, in order."""
    block: Optional[_OpenBlock] = None
    plain: list[str] = []
    next_id = 0

    for line_no, line in enumerate(lines, start=1):
        if line.startswith(OPEN_MARKER):
            if block is not None:
                # A new opening marker before the old block closed
                yield block.abandon()
            elif plain:
                yield Segment(lines=plain)
                plain = []
            block = _OpenBlock(line_no, line)
        elif block is None:
            plain.append(line)
        elif line.startswith(CLOSE_MARKER):
            yield block.close(next_id, line_no, line)
            next_id += 1
            block = None
        else:
            block.feed(line)

    if block is not None:
        yield block.abandon()
    if plain:
        yield Segment(lines=plain)


def parse_file(text: str) -> tuple[list[Hunk], list[int]]:
    """Parse a file's text in one pass.

    Returns:
        Tuple of (hunks in order of appearance, start lines of blocks that
        were opened but never closed)
    """
    hunks = []
    malformed = []
    for segment in split_segments(text.split("\n")):
        if segment.hunk is not None:
            hunks.append(segment.hunk)
        elif segment.malformed:
            malformed.append(segment.start_line)
    return hunks, malformed


def parse_conflicts(text: str) -> list[Hunk]:
    """Return the conflict hunks of a file's text in order of appearance.

    Never raises on malformed input: a block without a closing marker is
    logged and left out of the result.
    """
    hunks, _ = parse_file(text)
    return hunks


def find_malformed_blocks(text: str) -> list[int]:
    """Return the start lines of conflict blocks that never close."""
    _, malformed = parse_file(text)
    return malformed


def has_conflict_markers(text: str) -> bool:
    """Check whether any opening conflict marker remains in the text."""
    return OPEN_MARKER in text
