"""
ScoreKeeper - XP awards and running session statistics.

Pure functions only: no I/O, no clock access (callers pass `now`).
"""

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from kiraquest.schemas import SessionStats, SessionSummary, StatsSnapshot


@dataclass(frozen=True)
class GradeResult:
    """Outcome of grading one answer."""
    correct: bool
    xp_awarded: int


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for non-negative values."""
    return int(math.floor(value + 0.5))


# -----------------------------------------------------------------------------
# Grading
# -----------------------------------------------------------------------------

def grade_answer(selected: Optional[str], correct_answer: str, xp_reward: int) -> GradeResult:
    """
    Grade a single answer by exact value match.

    No partial credit and no case or whitespace normalisation:
    "paris" does not match "Paris".
    """
    correct = selected is not None and selected == correct_answer
    return GradeResult(correct=correct, xp_awarded=xp_reward if correct else 0)


def record_answer(stats: SessionStats, correct: bool, xp_awarded: int) -> SessionStats:
    """Return updated stats for one more answered question. Never decreases a counter."""
    return stats.model_copy(update={
        "questions_answered": stats.questions_answered + 1,
        "correct_answers": stats.correct_answers + (1 if correct else 0),
        "xp_earned": stats.xp_earned + max(xp_awarded, 0),
    })


# -----------------------------------------------------------------------------
# Summaries
# -----------------------------------------------------------------------------

def accuracy_percent(correct_answers: int, questions_answered: int) -> int:
    if questions_answered <= 0:
        return 0
    return round_half_up(100 * correct_answers / questions_answered)


def elapsed_minutes(start_time: datetime, now: datetime) -> int:
    seconds = (now - start_time).total_seconds()
    return max(round_half_up(seconds / 60), 0)


def summarize(stats: SessionStats, now: datetime) -> SessionSummary:
    """
    Summarize session statistics at time `now`.

    Args:
        stats: Running session statistics
        now: Reference time for the elapsed-time calculation

    Returns:
        SessionSummary with accuracy (0-100) and elapsed whole minutes
    """
    return SessionSummary(
        questions_answered=stats.questions_answered,
        accuracy_percent=accuracy_percent(stats.correct_answers, stats.questions_answered),
        xp_earned=stats.xp_earned,
        elapsed_minutes=elapsed_minutes(stats.start_time, now),
    )


def to_snapshot(summary: SessionSummary) -> StatsSnapshot:
    """Project a summary onto the wire/display shape."""
    return StatsSnapshot(
        questions_answered=summary.questions_answered,
        accuracy=summary.accuracy_percent,
        xp_earned=summary.xp_earned,
        time_spent=f"{summary.elapsed_minutes}m",
    )


# -----------------------------------------------------------------------------
# Presentation helpers
# -----------------------------------------------------------------------------

def boss_health(initial_health: int, defeated: bool) -> int:
    """Remaining boss health shown in the battle bar. Derived, never stored."""
    return 0 if defeated else initial_health


def health_percent(initial_health: int, defeated: bool) -> int:
    if initial_health <= 0:
        return 0
    return round_half_up(100 * boss_health(initial_health, defeated) / initial_health)
