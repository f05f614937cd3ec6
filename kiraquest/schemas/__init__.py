"""
KiraQuest Schemas - Pydantic models for the micro-lesson engine.

This module exports all schema classes for:
- Lesson: content blocks, block props, stages, lesson pages
- Progress: session state, statistics, progress events and outcomes
"""

# Lesson schemas
from .lesson import (
    WireModel,
    BlockType,
    ExplainerProps,
    BossBattleProps,
    LevelStatus,
    Level,
    LevelMapProps,
    StatsSnapshot,
    VictoryProps,
    ContentBlock,
    Stage,
    TeachingSection,
    LessonQuizQuestion,
    LessonPage,
)

# Progress schemas
from .progress import (
    PersonalityTone,
    SessionStats,
    SessionSummary,
    BlockAnswer,
    LessonSession,
    UngradedEvent,
    GradedEvent,
    ProgressEvent,
    ProgressOutcome,
)

__all__ = [
    # Lesson
    'WireModel',
    'BlockType',
    'ExplainerProps',
    'BossBattleProps',
    'LevelStatus',
    'Level',
    'LevelMapProps',
    'StatsSnapshot',
    'VictoryProps',
    'ContentBlock',
    'Stage',
    'TeachingSection',
    'LessonQuizQuestion',
    'LessonPage',
    # Progress
    'PersonalityTone',
    'SessionStats',
    'SessionSummary',
    'BlockAnswer',
    'LessonSession',
    'UngradedEvent',
    'GradedEvent',
    'ProgressEvent',
    'ProgressOutcome',
]
