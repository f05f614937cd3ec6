"""
StageSequencer - Stage pointer and advancement rules.

States are InStage(i) for 0 <= i < len(stages), plus Complete (i == len(stages)).
Transitions only move forward; Complete has no outgoing transitions.
"""

import logging
from enum import Enum
from typing import Optional, Sequence

from kiraquest.schemas import Stage

from .errors import InvalidSessionError, OutOfRangeError

logger = logging.getLogger(__name__)


class Transition(str, Enum):
    """Result of applying a progress event to the stage pointer."""
    STAYED = "stayed"                       # answer recorded, same stage
    ADVANCED = "advanced"                   # moved to the next stage
    COMPLETED = "completed"                 # moved past the last stage
    ALREADY_COMPLETE = "already_complete"   # no-op


class StageSequencer:
    """
    Owns the stage list and the current-stage pointer.

    Both correct and incorrect answers permit moving forward; there is no
    retry-until-correct loop and no backward navigation.
    """

    def __init__(self, stages: Sequence[Stage], current_index: int = 0,
                 session_id: Optional[str] = None):
        """
        Initialize sequencer.

        Args:
            stages: Ordered stages of the lesson
            current_index: 0-based pointer; len(stages) means complete
            session_id: Used in error messages only

        Raises:
            InvalidSessionError: If current_index is out of bounds
        """
        if not 0 <= current_index <= len(stages):
            raise InvalidSessionError(
                session_id,
                f"current stage index {current_index} outside [0, {len(stages)}]",
            )
        self._stages = list(stages)
        self._index = current_index
        self._session_id = session_id

    @property
    def current_index(self) -> int:
        return self._index

    @property
    def total_stages(self) -> int:
        return len(self._stages)

    @property
    def is_complete(self) -> bool:
        return self._index >= len(self._stages)

    @property
    def remaining_stages(self) -> int:
        """Stages not yet left, including the current one."""
        return len(self._stages) - self._index

    @property
    def position(self) -> tuple[int, int]:
        """(1-based current stage, total); current is capped at total when complete."""
        total = len(self._stages)
        return (min(self._index + 1, total), total)

    @property
    def current_stage(self) -> Stage:
        if self.is_complete:
            raise OutOfRangeError(f"Session {self._session_id} is complete; there is no current stage")
        return self._stages[self._index]

    def advance(self) -> Transition:
        """Move to the next stage, or to Complete after the last one."""
        if self.is_complete:
            return Transition.ALREADY_COMPLETE

        self._index += 1
        if self.is_complete:
            logger.debug(f"Session {self._session_id}: left final stage {self._index}")
            return Transition.COMPLETED

        logger.debug(f"Session {self._session_id}: advanced to stage {self._index + 1}/{self.total_stages}")
        return Transition.ADVANCED

    def stay(self) -> Transition:
        """Keep the pointer where it is."""
        if self.is_complete:
            return Transition.ALREADY_COMPLETE
        return Transition.STAYED
