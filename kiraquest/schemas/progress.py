"""
Progress tracking schemas for KiraQuest.

Defines Pydantic models for session progress including:
- Session statistics and summaries
- The lesson session state machine record
- Progress events and outcomes
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Literal, Optional, Union

from pydantic import Field, model_validator

from .lesson import Stage, WireModel


class PersonalityTone(str, Enum):
    """Presentation style chosen when the session is created."""
    HYPE_MAN = "Hype Man"
    SARCASTIC_SAGE = "Sarcastic Sage"
    WISE_MENTOR = "Wise Mentor"
    GAMING_BUDDY = "Gaming Buddy"


class SessionStats(WireModel):
    questions_answered: int = Field(0, ge=0)
    correct_answers: int = Field(0, ge=0)
    xp_earned: int = Field(0, ge=0)
    start_time: datetime

    @model_validator(mode="after")
    def correct_within_answered(self):
        if self.correct_answers > self.questions_answered:
            raise ValueError(
                f"correct answers ({self.correct_answers}) exceed questions answered "
                f"({self.questions_answered})"
            )
        return self


class SessionSummary(WireModel):
    questions_answered: int = 0
    accuracy_percent: int = 0
    xp_earned: int = 0
    elapsed_minutes: int = 0


class BlockAnswer(WireModel):
    """A graded block of the current stage that has already been answered."""
    index: int = Field(..., ge=0)
    selected_answer: Optional[str] = None
    correct: bool = False


class LessonSession(WireModel):
    """
    One user's traversal of a lesson's stage sequence.

    Invariants:
    - 0 <= current_stage_index <= len(stages)
    - is_complete iff current_stage_index == len(stages)
    - completed_at is set iff is_complete
    - answered_blocks name distinct blocks of the current stage (empty once complete)
    """
    session_id: str
    personality_tone: PersonalityTone = PersonalityTone.HYPE_MAN
    topic: Optional[str] = None
    stages: list[Stage] = Field(..., min_length=1)
    current_stage_index: int = 0
    stats: SessionStats
    answered_blocks: list[BlockAnswer] = []
    is_complete: bool = False
    completed_at: Optional[datetime] = None

    @model_validator(mode="after")
    def check_invariants(self):
        total = len(self.stages)
        for position, stage in enumerate(self.stages, start=1):
            if stage.stage_number != position:
                raise ValueError(f"stage at position {position} is numbered {stage.stage_number}")
        if not 0 <= self.current_stage_index <= total:
            raise ValueError(f"current stage index {self.current_stage_index} outside [0, {total}]")
        if self.is_complete != (self.current_stage_index == total):
            raise ValueError(
                f"is_complete={self.is_complete} disagrees with stage index "
                f"{self.current_stage_index} of {total}"
            )
        if self.is_complete != (self.completed_at is not None):
            raise ValueError("completed_at must be set exactly when the session is complete")
        if self.answered_blocks:
            if self.is_complete:
                raise ValueError("a complete session has no answered blocks pending")
            indices = [answer.index for answer in self.answered_blocks]
            block_count = len(self.stages[self.current_stage_index].components)
            if len(set(indices)) != len(indices) or max(indices) >= block_count:
                raise ValueError(f"answered blocks {indices} do not fit the current stage")
        return self

    @property
    def total_stages(self) -> int:
        return len(self.stages)


# -----------------------------------------------------------------------------
# Progress events
# -----------------------------------------------------------------------------

class UngradedEvent(WireModel):
    """An ungraded block was acknowledged ("Continue")."""
    kind: Literal["ungraded"] = "ungraded"


class GradedEvent(WireModel):
    """
    A graded block was answered.

    block_index names the answered block; without it the first unanswered
    graded block of the stage is assumed. advance=False records the answer but
    keeps the session on its stage while other graded blocks are still open.
    """
    kind: Literal["graded"] = "graded"
    selected_answer: Optional[str] = None
    correct_answer: str
    block_index: Optional[int] = Field(None, ge=0)
    xp_reward: int = Field(0, ge=0)
    advance: bool = True


ProgressEvent = Annotated[Union[UngradedEvent, GradedEvent], Field(discriminator="kind")]


class ProgressOutcome(WireModel):
    """Either the stage to show next, or a completion record."""
    completed: bool
    next_stage: Optional[Stage] = None
    stats: Optional[SessionSummary] = None
