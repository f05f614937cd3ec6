"""Tests for LessonProgressionEngine."""

import json
import random

import pytest

from kiraquest.classroom import InvalidSessionError, OutOfRangeError
from kiraquest.schemas import GradedEvent, PersonalityTone, UngradedEvent

from conftest import battle_block, explainer_block, make_stage, victory_block


def graded(selected, correct="B", xp=100, advance=True):
    return GradedEvent(selected_answer=selected, correct_answer=correct, xp_reward=xp, advance=advance)


class TestCreateSession:
    """Session creation."""

    def test_initial_state(self, engine, two_stages, clock):
        session = engine.create_session("Gaming Buddy", two_stages, topic="Letters")
        assert session.personality_tone == PersonalityTone.GAMING_BUDDY
        assert session.current_stage_index == 0
        assert not session.is_complete
        assert session.completed_at is None
        assert session.stats.questions_answered == 0
        assert session.stats.start_time == clock.now
        assert len(session.session_id) == 32

    def test_unique_ids(self, engine, two_stages):
        ids = {engine.create_session(PersonalityTone.HYPE_MAN, two_stages).session_id for _ in range(5)}
        assert len(ids) == 5

    def test_empty_stages_rejected(self, engine):
        with pytest.raises(InvalidSessionError):
            engine.create_session(PersonalityTone.HYPE_MAN, [])

    def test_misnumbered_stages_rejected(self, engine):
        with pytest.raises(InvalidSessionError):
            engine.create_session(PersonalityTone.HYPE_MAN, [make_stage(2, explainer_block())])

    def test_unknown_tone_rejected(self, engine, two_stages):
        with pytest.raises(InvalidSessionError):
            engine.create_session("Grumpy Cat", two_stages)


class TestSubmitProgress:
    """Progress events."""

    def test_end_to_end_two_stage_lesson(self, engine, two_stages):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages)

        session, outcome = engine.submit_progress(session, UngradedEvent())
        assert session.current_stage_index == 1
        assert not session.is_complete
        assert not outcome.completed
        assert outcome.next_stage.stage_number == 2

        session, outcome = engine.submit_progress(session, graded("B"))
        assert session.stats.xp_earned == 100
        assert session.stats.questions_answered == 1
        assert session.stats.correct_answers == 1
        assert session.is_complete
        assert outcome.completed
        assert outcome.stats.accuracy_percent == 100

    def test_wrong_answer_still_advances(self, engine, two_stages):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages, session_id="s1")
        session, _ = engine.submit_progress(session)
        session, outcome = engine.submit_progress(session, graded("A"))
        assert outcome.completed
        assert session.stats.questions_answered == 1
        assert session.stats.correct_answers == 0
        assert session.stats.xp_earned == 0

    def test_input_session_not_mutated(self, engine, two_stages):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages)
        updated, _ = engine.submit_progress(session)
        assert session.current_stage_index == 0
        assert updated.current_stage_index == 1

    def test_graded_without_advance_stays(self, engine):
        stages = [make_stage(1, battle_block(), battle_block(correct="A")), make_stage(2, victory_block())]
        session = engine.create_session(PersonalityTone.HYPE_MAN, stages)

        session, outcome = engine.submit_progress(session, graded("B", advance=False))
        assert session.current_stage_index == 0
        assert outcome.next_stage.stage_number == 1
        assert session.stats.questions_answered == 1

        session, outcome = engine.submit_progress(session, graded("A", correct="A"))
        assert session.current_stage_index == 1
        assert session.stats.correct_answers == 2

    def test_wire_dict_event(self, engine, two_stages):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages)
        session, _ = engine.submit_progress(session, {"kind": "ungraded"})
        session, _ = engine.submit_progress(
            session, {"kind": "graded", "selectedAnswer": "B", "correctAnswer": "B", "xpReward": 30}
        )
        assert session.stats.xp_earned == 30

    def test_three_stages_complete_after_three_advances(self, engine):
        stages = [make_stage(n, explainer_block()) for n in (1, 2, 3)]
        session = engine.create_session(PersonalityTone.HYPE_MAN, stages)
        for _ in range(2):
            session, outcome = engine.submit_progress(session)
            assert not session.is_complete
            assert session.current_stage_index < len(stages)
        session, outcome = engine.submit_progress(session)
        assert session.is_complete
        assert session.current_stage_index == len(stages)

    def test_completion_is_idempotent(self, engine, two_stages, clock):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages)
        session, _ = engine.submit_progress(session)
        clock.tick(minutes=3)
        session, first = engine.submit_progress(session, graded("B"))

        clock.tick(minutes=10)
        again, second = engine.submit_progress(session, graded("B"))
        assert again == session
        assert second == first
        assert second.stats.elapsed_minutes == 3
        assert again.stats.xp_earned == 100

    def test_stats_monotonic_over_random_events(self, engine):
        rng = random.Random(7)
        stages = [make_stage(n, battle_block()) for n in range(1, 9)]
        session = engine.create_session(PersonalityTone.HYPE_MAN, stages)
        previous = session.stats

        for _ in range(20):
            if rng.random() < 0.3:
                event = UngradedEvent()
            else:
                event = graded(rng.choice(["A", "B", "C", None]), advance=rng.random() < 0.7)
            session, _ = engine.submit_progress(session, event)
            stats = session.stats
            assert stats.questions_answered >= previous.questions_answered
            assert stats.correct_answers >= previous.correct_answers
            assert stats.xp_earned >= previous.xp_earned
            assert stats.correct_answers <= stats.questions_answered
            previous = stats


class TestAnsweredBlocks:
    """Each graded block is scored once per session."""

    def test_repeated_answer_to_same_block_ignored(self, engine):
        stages = [make_stage(1, battle_block(), battle_block(correct="A")), make_stage(2, victory_block())]
        session = engine.create_session(PersonalityTone.HYPE_MAN, stages)
        event = GradedEvent(selected_answer="B", correct_answer="B", block_index=0, xp_reward=100, advance=False)

        session, _ = engine.submit_progress(session, event)
        assert [answer.index for answer in session.answered_blocks] == [0]

        for _ in range(4):
            again, outcome = engine.submit_progress(session, event)
            assert again is session
            assert outcome.next_stage.stage_number == 1
        assert session.stats.questions_answered == 1
        assert session.stats.xp_earned == 100

    def test_no_advance_on_last_open_block_still_advances(self, engine):
        stages = [make_stage(1, battle_block()), make_stage(2, victory_block())]
        session = engine.create_session(PersonalityTone.HYPE_MAN, stages)

        for _ in range(5):
            session, _ = engine.submit_progress(session, graded("B", advance=False))
            if session.current_stage_index == 1:
                break
        assert session.current_stage_index == 1
        assert session.stats.questions_answered == 1
        assert session.stats.xp_earned == 100

    def test_stage_without_graded_blocks_accepts_graded_event(self, engine, two_stages):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages)
        session, _ = engine.submit_progress(session, graded("B"))
        assert session.current_stage_index == 1
        assert session.stats.questions_answered == 1

    def test_unknown_block_index_ignored(self, engine):
        stages = [make_stage(1, explainer_block(), battle_block()), make_stage(2, victory_block())]
        session = engine.create_session(PersonalityTone.HYPE_MAN, stages)
        event = GradedEvent(selected_answer="B", correct_answer="B", block_index=0, xp_reward=100)

        again, outcome = engine.submit_progress(session, event)
        assert again is session
        assert not outcome.completed

    def test_answers_cleared_on_stage_change(self, engine):
        stages = [make_stage(1, battle_block(), battle_block(correct="A")), make_stage(2, battle_block())]
        session = engine.create_session(PersonalityTone.HYPE_MAN, stages)

        session, _ = engine.submit_progress(session, graded("B", advance=False))
        assert len(session.answered_blocks) == 1
        session, _ = engine.submit_progress(session, graded("A", correct="A"))
        assert session.current_stage_index == 1
        assert session.answered_blocks == []

        session, outcome = engine.submit_progress(session, graded("B"))
        assert outcome.completed
        assert session.stats.questions_answered == 3
        assert session.answered_blocks == []

    def test_answers_survive_reload(self, engine):
        stages = [make_stage(1, battle_block(), battle_block(correct="A")), make_stage(2, victory_block())]
        session = engine.create_session(PersonalityTone.HYPE_MAN, stages)
        session, _ = engine.submit_progress(session, graded("C", advance=False))

        reloaded = engine.load_session(session.to_wire())
        assert reloaded.answered_blocks[0].selected_answer == "C"
        assert reloaded.answered_blocks[0].correct is False

    def test_malformed_event_on_complete_session(self, engine, two_stages):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages)
        session, _ = engine.submit_progress(session)
        session, first = engine.submit_progress(session)

        again, second = engine.submit_progress(session, {"kind": "bogus"})
        assert again is session
        assert second == first


class TestQueries:
    """Current stage and summaries."""

    def test_current_stage_of_complete_session(self, engine, two_stages):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages)
        session, _ = engine.submit_progress(session)
        session, _ = engine.submit_progress(session)
        with pytest.raises(OutOfRangeError):
            engine.get_current_stage(session)

    def test_summary_uses_clock(self, engine, two_stages, clock):
        session = engine.create_session(PersonalityTone.HYPE_MAN, two_stages)
        clock.tick(minutes=2, seconds=31)
        assert engine.summarize_session(session).elapsed_minutes == 3
        assert engine.stats_snapshot(session).time_spent == "3m"


class TestLoadSession:
    """Validation of persisted snapshots."""

    def test_round_trip(self, engine, two_stages):
        session = engine.create_session(PersonalityTone.WISE_MENTOR, two_stages, topic="T")
        assert engine.load_session(session.to_wire()) == session
        assert engine.load_session(session.model_dump_json(by_alias=True)) == session
        assert engine.load_session(session) == session

    def test_index_past_end(self, engine, two_stages):
        data = engine.create_session(PersonalityTone.HYPE_MAN, two_stages).to_wire()
        data["currentStageIndex"] = 5
        with pytest.raises(InvalidSessionError) as exc_info:
            engine.load_session(data)
        assert exc_info.value.session_id == data["sessionId"]

    def test_complete_flag_disagrees(self, engine, two_stages):
        data = engine.create_session(PersonalityTone.HYPE_MAN, two_stages).to_wire()
        data["isComplete"] = True
        with pytest.raises(InvalidSessionError):
            engine.load_session(data)

    def test_correct_exceeds_answered(self, engine, two_stages):
        data = engine.create_session(PersonalityTone.HYPE_MAN, two_stages).to_wire()
        data["stats"]["correctAnswers"] = 1
        with pytest.raises(InvalidSessionError):
            engine.load_session(data)

    def test_answered_block_out_of_range(self, engine, two_stages):
        data = engine.create_session(PersonalityTone.HYPE_MAN, two_stages).to_wire()
        data["answeredBlocks"] = [{"index": 3, "selectedAnswer": "B", "correct": True}]
        with pytest.raises(InvalidSessionError):
            engine.load_session(data)

    def test_duplicate_answered_blocks(self, engine, two_stages):
        data = engine.create_session(PersonalityTone.HYPE_MAN, two_stages).to_wire()
        data["answeredBlocks"] = [{"index": 0}, {"index": 0}]
        with pytest.raises(InvalidSessionError):
            engine.load_session(data)

    def test_garbage_json(self, engine):
        with pytest.raises(InvalidSessionError):
            engine.load_session(json.dumps({"sessionId": "x"}))
