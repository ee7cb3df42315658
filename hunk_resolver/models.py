"""Data models for conflict hunks, files and resolution requests."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .errors import InvalidInputError


class Strategy(Enum):
    """How to resolve a single hunk."""
    KEEP_CURRENT = "keep-current"
    KEEP_INCOMING = "keep-incoming"
    KEEP_BOTH = "keep-both"
    MANUAL = "manual"


class FileSide(Enum):
    """Which side to take when resolving a whole file."""
    OURS = "ours"
    THEIRS = "theirs"


def _parse_enum(enum_cls, value, field_name: str):
    if isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        choices = ", ".join(member.value for member in enum_cls)
        raise InvalidInputError(
            f"Invalid {field_name}: {value!r} (expected one of: {choices})"
        ) from None


@dataclass
class Hunk:
    """One conflicted region of a file. Line numbers are 1-based and inclusive."""
    id: int
    start_line: int
    end_line: int
    current_text: str
    incoming_text: str
    base_text: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "id": self.id,
            "startLine": self.start_line,
            "endLine": self.end_line,
            "currentText": self.current_text,
            "incomingText": self.incoming_text,
        }
        if self.base_text is not None:
            data["baseText"] = self.base_text
        return data


@dataclass
class ConflictFile:
    """A conflicted path and the hunks found in its current content."""
    path: str
    hunks: list[Hunk] = field(default_factory=list)
    fingerprint: Optional[str] = None
    malformed_lines: list[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            "path": self.path,
            "hunks": [hunk.to_dict() for hunk in self.hunks],
        }
        if self.fingerprint is not None:
            data["fingerprint"] = self.fingerprint
        if self.malformed_lines:
            data["malformedLines"] = list(self.malformed_lines)
        return data


@dataclass
class ScanError:
    """Record of a conflicted file that could not be read during a scan."""
    path: str
    error: str


@dataclass
class ConflictSummary:
    """Result of scanning the working tree for conflicts."""
    has_merge_in_progress: bool
    files: list[ConflictFile] = field(default_factory=list)
    errors: list[ScanError] = field(default_factory=list)

    @property
    def has_conflicts(self) -> bool:
        return len(self.files) > 0

    @property
    def total_conflicts(self) -> int:
        return sum(len(f.hunks) for f in self.files)

    def to_dict(self) -> dict:
        return {
            "hasConflicts": self.has_conflicts,
            "hasMergeInProgress": self.has_merge_in_progress,
            "files": [f.to_dict() for f in self.files],
            "totalConflicts": self.total_conflicts,
        }


@dataclass
class ResolutionRequest:
    """Request to resolve one hunk of one file."""
    path: str
    hunk_id: int
    strategy: Strategy
    manual_text: Optional[str] = None
    fingerprint: Optional[str] = None

    def __post_init__(self):
        self.strategy = _parse_enum(Strategy, self.strategy, "strategy")

    def validate(self) -> None:
        """Raise InvalidInputError if a required field is missing."""
        if not self.path:
            raise InvalidInputError("File path required")
        if self.hunk_id is None:
            raise InvalidInputError("Hunk id required")
        if isinstance(self.hunk_id, bool) or not isinstance(self.hunk_id, int):
            raise InvalidInputError(f"Hunk id must be an integer, got {self.hunk_id!r}")
        if self.hunk_id < 0:
            raise InvalidInputError(f"Hunk id must not be negative, got {self.hunk_id}")
        if self.strategy is Strategy.MANUAL and self.manual_text is None:
            raise InvalidInputError("Manual resolution requires manual text")

    @classmethod
    def from_dict(cls, data: dict) -> "ResolutionRequest":
        if "strategy" not in data:
            raise InvalidInputError("Strategy required")
        request = cls(
            path=data.get("path", ""),
            hunk_id=data.get("hunkId"),
            strategy=data["strategy"],
            manual_text=data.get("manualText"),
            fingerprint=data.get("fingerprint"),
        )
        request.validate()
        return request


@dataclass
class FileStrategyRequest:
    """Request to resolve a whole file by taking one side."""
    path: str
    strategy: FileSide

    def __post_init__(self):
        self.strategy = _parse_enum(FileSide, self.strategy, "strategy")

    def validate(self) -> None:
        if not self.path:
            raise InvalidInputError("File path required")

    @classmethod
    def from_dict(cls, data: dict) -> "FileStrategyRequest":
        if "strategy" not in data:
            raise InvalidInputError("Strategy required")
        request = cls(path=data.get("path", ""), strategy=data["strategy"])
        request.validate()
        return request


@dataclass
class ResolveResult:
    """Outcome of a single-hunk resolution."""
    success: bool
    has_remaining_conflicts: bool
    message: str
    fingerprint: Optional[str] = None

    def to_dict(self) -> dict:
        data = {
            "success": self.success,
            "hasRemainingConflicts": self.has_remaining_conflicts,
            "message": self.message,
        }
        if self.fingerprint is not None:
            data["fingerprint"] = self.fingerprint
        return data


@dataclass
class FileStrategyResult:
    """Outcome of a whole-file resolution."""
    success: bool
    message: str

    def to_dict(self) -> dict:
        return {"success": self.success, "message": self.message}
