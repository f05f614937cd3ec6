"""
Lesson content schemas for KiraQuest.

Defines Pydantic models for lesson content including:
- Content blocks exchanged as {type, props} on the wire
- Typed props for each recognised block kind
- Stages (one ordered step of a lesson)
- Lesson pages supplied by the content-generation collaborator
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model: camelCase on the wire, snake_case in Python."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# -----------------------------------------------------------------------------
# Block kinds and their props
# -----------------------------------------------------------------------------

class BlockType(str, Enum):
    """Recognised content block tags. Any other tag is unknown, not an error."""
    EXPLAINER = "explainer"
    BOSS_BATTLE = "bossBattle"
    LEVEL_MAP = "levelMap"
    VICTORY = "victory"

    @classmethod
    def parse(cls, tag: str) -> Optional["BlockType"]:
        try:
            return cls(tag)
        except ValueError:
            return None


class ExplainerProps(WireModel):
    title: str
    content: str              # markdown
    encouragement: Optional[str] = None


class BossBattleProps(WireModel):
    """Graded multiple-choice challenge."""
    boss_name: str
    boss_health: int = Field(100, gt=0)
    question: str
    options: list[str] = Field(..., min_length=1)
    correct_answer: str
    hint: Optional[str] = None
    xp_reward: int = Field(0, ge=0)

    @model_validator(mode="after")
    def correct_answer_is_an_option(self):
        if self.correct_answer not in self.options:
            raise ValueError(f"correct answer {self.correct_answer!r} is not one of the options")
        return self


class LevelStatus(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    LOCKED = "locked"


class Level(WireModel):
    id: int = Field(..., ge=1)
    name: str
    status: LevelStatus = LevelStatus.LOCKED


class LevelMapProps(WireModel):
    levels: list[Level] = []


class StatsSnapshot(WireModel):
    """Stats as displayed on the victory screen and returned over HTTP."""
    questions_answered: int = Field(0, ge=0)
    accuracy: int = Field(0, ge=0, le=100)
    xp_earned: int = Field(0, ge=0)
    time_spent: str = "0m"    # "<N>m"

    @field_validator("time_spent")
    @classmethod
    def time_spent_in_minutes(cls, v):
        if not v.endswith("m") or not v[:-1].isdigit():
            raise ValueError(f"time spent must look like '<N>m', got {v!r}")
        return v


class VictoryProps(WireModel):
    title: str
    encouragement: str = ""
    stats: StatsSnapshot = StatsSnapshot()


# -----------------------------------------------------------------------------
# Content blocks and stages
# -----------------------------------------------------------------------------

class ContentBlock(WireModel):
    """
    A single typed unit of lesson UI.

    The tag is kept as a plain string so that blocks of unknown kinds survive
    parsing; the dispatcher decides what to do with them.
    """
    model_config = ConfigDict(frozen=True)

    type: str
    props: dict[str, Any] = {}

    @property
    def block_type(self) -> Optional[BlockType]:
        return BlockType.parse(self.type)

    @classmethod
    def of(cls, block_type: BlockType, props: WireModel) -> "ContentBlock":
        """Build a block from typed props."""
        return cls(type=block_type.value, props=props.to_wire())


class Stage(WireModel):
    model_config = ConfigDict(frozen=True)

    stage_number: int = Field(..., ge=1)
    title: str
    components: list[ContentBlock] = []

    def blocks_of(self, block_type: BlockType) -> list[tuple[int, ContentBlock]]:
        """(index, block) pairs for blocks of the given kind, in order."""
        return [
            (idx, block) for idx, block in enumerate(self.components)
            if block.block_type == block_type
        ]

    @property
    def graded_blocks(self) -> list[tuple[int, ContentBlock]]:
        return self.blocks_of(BlockType.BOSS_BATTLE)


# -----------------------------------------------------------------------------
# Lesson page (input from the content-generation collaborator)
# -----------------------------------------------------------------------------

class TeachingSection(WireModel):
    topic: str
    teaching: str
    key_point: str
    example: Optional[str] = None


class LessonQuizQuestion(WireModel):
    question: str
    options: list[str] = Field(..., min_length=2)
    correct_index: int = Field(..., ge=0)
    explanation: str = ""

    @model_validator(mode="after")
    def correct_index_in_range(self):
        if self.correct_index >= len(self.options):
            raise ValueError(
                f"correct_index {self.correct_index} out of range for {len(self.options)} options"
            )
        return self

    @property
    def correct_answer(self) -> str:
        return self.options[self.correct_index]


class LessonPage(WireModel):
    """Teaching material compiled into stages by the stage builder."""
    title: str
    intro: str = ""
    sections: list[TeachingSection] = []
    quiz_questions: list[LessonQuizQuestion] = []
    encouragement: str = ""
