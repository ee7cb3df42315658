"""Error kinds raised by the resolution engine."""

from enum import Enum


class ErrorKind(Enum):
    """Categories of failure surfaced to callers."""
    INVALID_INPUT = "invalid_input"
    NOT_FOUND = "not_found"
    UNREADABLE = "unreadable"
    EXTERNAL_FAILURE = "external_failure"
    STALE = "stale"
    WRITE_FAILED = "write_failed"


class ResolverError(Exception):
    """Base class for all engine errors. Carries a kind and a detail string."""

    kind = ErrorKind.EXTERNAL_FAILURE

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict:
        return {"error": self.kind.value, "details": self.detail}


class InvalidInputError(ResolverError):
    """A required field is missing or malformed."""
    kind = ErrorKind.INVALID_INPUT


class NotFoundError(ResolverError):
    """The file or the requested hunk does not exist."""
    kind = ErrorKind.NOT_FOUND


class UnreadableError(ResolverError):
    """The file exists but cannot be read or decoded."""
    kind = ErrorKind.UNREADABLE


class ExternalFailureError(ResolverError):
    """A VCS command failed or timed out."""
    kind = ErrorKind.EXTERNAL_FAILURE


class StaleContentError(ResolverError):
    """The file changed since the caller last scanned it."""
    kind = ErrorKind.STALE


class WriteFailedError(ResolverError):
    """The resolved content could not be written back."""
    kind = ErrorKind.WRITE_FAILED
