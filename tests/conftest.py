"""Shared fixtures for KiraQuest tests."""

from datetime import datetime, timedelta, timezone

import pytest
import yaml

from kiraquest.classroom import LessonProgressionEngine, LessonService, SessionStore
from kiraquest.schemas import (
    BlockType,
    BossBattleProps,
    ContentBlock,
    ExplainerProps,
    LessonPage,
    LessonQuizQuestion,
    Stage,
    TeachingSection,
    VictoryProps,
)

START_TIME = datetime(2025, 3, 1, 9, 0, tzinfo=timezone.utc)


class FakeClock:
    """Deterministic clock; call tick() to move time forward."""

    def __init__(self, start: datetime = START_TIME):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def tick(self, **kwargs):
        self.now += timedelta(**kwargs)


def explainer_block(title: str = "Intro", content: str = "Some **bold** text") -> ContentBlock:
    return ContentBlock.of(BlockType.EXPLAINER, ExplainerProps(title=title, content=content))


def battle_block(correct: str = "B", options=("A", "B", "C"), xp_reward: int = 100) -> ContentBlock:
    return ContentBlock.of(BlockType.BOSS_BATTLE, BossBattleProps(
        boss_name="Challenge 1",
        question="Pick one",
        options=list(options),
        correct_answer=correct,
        hint="Think!",
        xp_reward=xp_reward,
    ))


def victory_block() -> ContentBlock:
    return ContentBlock.of(BlockType.VICTORY, VictoryProps(title="Done", encouragement="Nice"))


def make_stage(number: int, *blocks: ContentBlock, title: str = None) -> Stage:
    return Stage(stage_number=number, title=title or f"Stage {number}", components=list(blocks))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def engine(clock):
    return LessonProgressionEngine(clock=clock)


@pytest.fixture
def two_stages():
    """Explainer stage followed by a boss battle worth 100 XP (answer "B")."""
    return [
        make_stage(1, explainer_block()),
        make_stage(2, battle_block()),
    ]


@pytest.fixture
def lesson_page():
    return LessonPage(
        title="Capitals",
        intro="World capitals",
        sections=[
            TeachingSection(topic="Europe", teaching="Paris is in France.", key_point="Paris"),
            TeachingSection(topic="Asia", teaching="Tokyo is in Japan.", key_point="Tokyo", example="Shibuya"),
        ],
        quiz_questions=[
            LessonQuizQuestion(question="Capital of France?", options=["Paris", "Rome"], correct_index=0),
        ],
        encouragement="Keep going!",
    )


@pytest.fixture
def lessons_dir(tmp_path, lesson_page):
    path = tmp_path / "lessons"
    path.mkdir()
    with open(path / "capitals.yaml", "w", encoding="utf-8") as f:
        yaml.safe_dump(lesson_page.model_dump(mode="json", exclude_none=True), f)
    return path


@pytest.fixture
def store(tmp_path):
    return SessionStore(tmp_path / "sessions.db")


@pytest.fixture
def service(store, engine, lessons_dir):
    return LessonService(store=store, engine=engine, lessons_dir=lessons_dir)
