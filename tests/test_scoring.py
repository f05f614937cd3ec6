"""Tests for the ScoreKeeper functions."""

from datetime import datetime, timedelta, timezone

import pytest

from kiraquest.classroom import scoring
from kiraquest.classroom.scoring import GradeResult
from kiraquest.schemas import SessionStats

START = datetime(2025, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestGradeAnswer:
    """Exact-match grading."""

    def test_correct_answer_awards_xp(self):
        assert scoring.grade_answer("Paris", "Paris", 50) == GradeResult(correct=True, xp_awarded=50)

    def test_case_sensitive(self):
        assert scoring.grade_answer("paris", "Paris", 50) == GradeResult(correct=False, xp_awarded=0)

    def test_no_whitespace_normalisation(self):
        assert not scoring.grade_answer("Paris ", "Paris", 50).correct

    def test_missing_answer_is_incorrect(self):
        assert scoring.grade_answer(None, "Paris", 50) == GradeResult(correct=False, xp_awarded=0)

    def test_zero_reward(self):
        assert scoring.grade_answer("A", "A", 0) == GradeResult(correct=True, xp_awarded=0)


class TestRecordAnswer:
    """Running statistics updates."""

    def test_correct_answer(self):
        stats = scoring.record_answer(SessionStats(start_time=START), True, 100)
        assert (stats.questions_answered, stats.correct_answers, stats.xp_earned) == (1, 1, 100)

    def test_incorrect_answer(self):
        stats = scoring.record_answer(SessionStats(start_time=START), False, 0)
        assert (stats.questions_answered, stats.correct_answers, stats.xp_earned) == (1, 0, 0)

    def test_original_untouched(self):
        original = SessionStats(start_time=START)
        scoring.record_answer(original, True, 10)
        assert original.questions_answered == 0

    def test_negative_xp_never_decreases_total(self):
        stats = SessionStats(questions_answered=1, correct_answers=1, xp_earned=10, start_time=START)
        assert scoring.record_answer(stats, False, -5).xp_earned == 10


class TestSummaries:
    """Accuracy and elapsed time."""

    @pytest.mark.parametrize("correct,answered,expected", [
        (2, 3, 67),
        (1, 3, 33),
        (1, 2, 50),
        (0, 0, 0),
        (0, 4, 0),
        (4, 4, 100),
        (1, 8, 13),   # 12.5 rounds half up
    ])
    def test_accuracy_percent(self, correct, answered, expected):
        assert scoring.accuracy_percent(correct, answered) == expected

    def test_summarize(self):
        stats = SessionStats(questions_answered=3, correct_answers=2, xp_earned=200, start_time=START)
        summary = scoring.summarize(stats, START + timedelta(minutes=4, seconds=40))
        assert summary.accuracy_percent == 67
        assert summary.xp_earned == 200
        assert summary.elapsed_minutes == 5

    def test_summarize_nothing_answered(self):
        summary = scoring.summarize(SessionStats(start_time=START), START)
        assert summary.accuracy_percent == 0
        assert summary.elapsed_minutes == 0

    def test_clock_skew_clamped(self):
        assert scoring.elapsed_minutes(START, START - timedelta(minutes=3)) == 0

    def test_to_snapshot(self):
        stats = SessionStats(questions_answered=2, correct_answers=1, xp_earned=100, start_time=START)
        snapshot = scoring.to_snapshot(scoring.summarize(stats, START + timedelta(minutes=7)))
        assert snapshot.to_wire() == {
            "questionsAnswered": 2,
            "accuracy": 50,
            "xpEarned": 100,
            "timeSpent": "7m",
        }


class TestBossHealth:
    """Presentational health projection."""

    def test_health_before_and_after_defeat(self):
        assert scoring.boss_health(100, defeated=False) == 100
        assert scoring.boss_health(100, defeated=True) == 0

    def test_health_percent(self):
        assert scoring.health_percent(80, defeated=False) == 100
        assert scoring.health_percent(80, defeated=True) == 0
        assert scoring.health_percent(0, defeated=False) == 0
