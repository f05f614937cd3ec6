"""
KiraQuest Classroom - Runtime components for running lesson sessions.

This module provides:
- ScoreKeeper functions: grading and session statistics
- StageSequencer: stage pointer and advancement rules
- LessonProgressionEngine: the session state machine
- Stage builder: lesson page -> stages
- SessionStore: SQLite persistence with revision guard
- LessonService: facade used by the API and the app
"""

from .errors import (
    LessonError,
    InvalidSessionError,
    OutOfRangeError,
    ConcurrentUpdateError,
    LessonNotFoundError,
    UnknownBlockTypeWarning,
)

from .scoring import (
    GradeResult,
    grade_answer,
    record_answer,
    summarize,
    to_snapshot,
)

from .sequencer import (
    StageSequencer,
    Transition,
)

from .engine import LessonProgressionEngine

from .builder import (
    build_stages,
    build_levels,
    DEFAULT_XP_REWARD,
    DEFAULT_BOSS_HEALTH,
)

from .store import (
    SessionStore,
    StoredSession,
    DEFAULT_STORE_DIR,
    DEFAULT_STORE_DB,
)

from .service import (
    LessonService,
    build_progress_event,
)

__all__ = [
    # Errors
    "LessonError",
    "InvalidSessionError",
    "OutOfRangeError",
    "ConcurrentUpdateError",
    "LessonNotFoundError",
    "UnknownBlockTypeWarning",
    # Scoring
    "GradeResult",
    "grade_answer",
    "record_answer",
    "summarize",
    "to_snapshot",
    # Sequencer
    "StageSequencer",
    "Transition",
    # Engine
    "LessonProgressionEngine",
    # Builder
    "build_stages",
    "build_levels",
    "DEFAULT_XP_REWARD",
    "DEFAULT_BOSS_HEALTH",
    # Store
    "SessionStore",
    "StoredSession",
    "DEFAULT_STORE_DIR",
    "DEFAULT_STORE_DB",
    # Service
    "LessonService",
    "build_progress_event",
]
