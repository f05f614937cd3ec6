"""Errors raised by the lesson progression engine and its collaborators."""

from typing import Optional


class LessonError(Exception):
    """Base class for lesson engine errors."""


class InvalidSessionError(LessonError):
    """Session id is unknown or the stored session state is corrupted."""

    def __init__(self, session_id: Optional[str], reason: str, unknown: bool = False):
        self.session_id = session_id
        self.reason = reason
        self.unknown = unknown
        label = session_id or "<new session>"
        super().__init__(f"Invalid session {label}: {reason}")

    @classmethod
    def not_found(cls, session_id: str) -> "InvalidSessionError":
        return cls(session_id, "session not found", unknown=True)


class OutOfRangeError(LessonError, IndexError):
    """No current stage exists: the session is already complete."""


class ConcurrentUpdateError(LessonError):
    """The stored session changed between load and save."""

    def __init__(self, session_id: str, expected_revision: int):
        self.session_id = session_id
        self.expected_revision = expected_revision
        super().__init__(
            f"Session {session_id} was modified concurrently (expected revision {expected_revision})"
        )


class LessonNotFoundError(LessonError, LookupError):
    """No lesson page exists for the requested topic."""


class UnknownBlockTypeWarning(UserWarning):
    """A content block could not be rendered and was skipped. Collected, never raised."""

    def __init__(self, index: int, block_type: str, reason: str = "unknown block type"):
        self.index = index
        self.block_type = block_type
        self.reason = reason
        super().__init__(f"Skipped block {index} ({block_type!r}): {reason}")
