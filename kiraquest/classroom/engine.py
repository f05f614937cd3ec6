"""
LessonProgressionEngine - The session state machine exposed to the UI layer.

Combines StageSequencer (stage pointer) with the ScoreKeeper functions
(grading and statistics). All operations are synchronous state transforms:
the engine never performs I/O and never mutates the session it is given.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Callable, Optional, Sequence, Union

from pydantic import TypeAdapter, ValidationError

from kiraquest.schemas import (
    BlockAnswer,
    GradedEvent,
    LessonSession,
    PersonalityTone,
    ProgressEvent,
    ProgressOutcome,
    SessionStats,
    SessionSummary,
    Stage,
    StatsSnapshot,
    UngradedEvent,
)

from . import scoring
from .errors import InvalidSessionError
from .sequencer import StageSequencer, Transition

logger = logging.getLogger(__name__)

_event_adapter = TypeAdapter(ProgressEvent)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class LessonProgressionEngine:
    """
    Drive lesson sessions from stage to stage.

    Callers must serialise progress calls for a given session: the engine
    assumes at most one in-flight submit_progress per session.
    """

    def __init__(self, clock: Optional[Callable[[], datetime]] = None):
        """
        Initialize engine.

        Args:
            clock: Returns the current time (default: timezone-aware UTC now)
        """
        self._clock = clock or utcnow

    # -------------------------------------------------------------------------
    # Session lifecycle
    # -------------------------------------------------------------------------

    def create_session(
        self,
        personality_tone: Union[PersonalityTone, str],
        stages: Sequence[Stage],
        topic: Optional[str] = None,
        session_id: Optional[str] = None,
    ) -> LessonSession:
        """
        Create a new session positioned on the first stage with zeroed stats.

        Raises:
            InvalidSessionError: If the stages are empty or misnumbered
        """
        try:
            session = LessonSession(
                session_id=session_id or uuid.uuid4().hex,
                personality_tone=PersonalityTone(personality_tone),
                topic=topic,
                stages=list(stages),
                current_stage_index=0,
                stats=SessionStats(start_time=self._clock()),
                is_complete=False,
            )
        except (ValidationError, ValueError) as e:
            raise InvalidSessionError(session_id, str(e)) from e

        logger.info(
            f"Created session {session.session_id} "
            f"({session.total_stages} stages, tone={session.personality_tone.value})"
        )
        return session

    def load_session(self, data: Union[LessonSession, dict[str, Any], str, bytes]) -> LessonSession:
        """
        Validate a persisted session snapshot.

        Raises:
            InvalidSessionError: If the snapshot violates any session invariant
        """
        session_id = None
        if isinstance(data, dict):
            session_id = data.get("sessionId") or data.get("session_id")
        try:
            if isinstance(data, LessonSession):
                return LessonSession.model_validate(data.model_dump())
            if isinstance(data, (str, bytes)):
                return LessonSession.model_validate_json(data)
            return LessonSession.model_validate(data)
        except ValidationError as e:
            logger.warning(f"Rejected corrupt session {session_id}: {e.error_count()} validation error(s)")
            raise InvalidSessionError(session_id, str(e)) from e

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_current_stage(self, session: LessonSession) -> Stage:
        """
        Get the stage the session is on.

        Raises:
            OutOfRangeError: If the session is complete (check is_complete first)
        """
        return self._sequencer(session).current_stage

    def summarize_session(self, session: LessonSession) -> SessionSummary:
        """Current stats; frozen at completed_at once the session is complete."""
        now = session.completed_at if session.is_complete else self._clock()
        return scoring.summarize(session.stats, now)

    def stats_snapshot(self, session: LessonSession) -> StatsSnapshot:
        return scoring.to_snapshot(self.summarize_session(session))

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def submit_progress(
        self,
        session: LessonSession,
        event: Union[ProgressEvent, dict[str, Any], None] = None,
    ) -> tuple[LessonSession, ProgressOutcome]:
        """
        Apply one progress event.

        Graded events are scored and recorded first; then the sequencer
        advances, or stays for advance=False while other graded blocks of the
        stage are still unanswered. Each graded block is scored once: an event
        for a block the session already answered changes nothing.

        Args:
            session: Session to progress (left untouched)
            event: UngradedEvent / GradedEvent or its wire dict; None means ungraded

        Returns:
            Tuple of (updated session, outcome). On an already complete session,
            or for an already answered block, the session is returned unchanged.
        """
        if session.is_complete:
            logger.info(f"Session {session.session_id} already complete; progress ignored")
            return session, self._completion_outcome(session)

        if event is None:
            event = UngradedEvent()
        elif isinstance(event, dict):
            event = _event_adapter.validate_python(event)

        sequencer = self._sequencer(session)
        stage = sequencer.current_stage
        stats = session.stats
        answered = list(session.answered_blocks)

        if isinstance(event, GradedEvent):
            graded = [idx for idx, _ in stage.graded_blocks]
            index = self._target_block(event, graded, {answer.index for answer in answered})
            if graded and index is None:
                logger.info(
                    f"Session {session.session_id}: block {event.block_index} on stage "
                    f"{stage.stage_number} already answered or not graded; ignored"
                )
                return session, ProgressOutcome(completed=False, next_stage=stage)

            result = scoring.grade_answer(event.selected_answer, event.correct_answer, event.xp_reward)
            stats = scoring.record_answer(stats, result.correct, result.xp_awarded)
            logger.info(
                f"Session {session.session_id}: answer {'correct' if result.correct else 'incorrect'}, "
                f"+{result.xp_awarded} XP"
            )
            if index is not None:
                answered.append(BlockAnswer(
                    index=index, selected_answer=event.selected_answer, correct=result.correct
                ))

            done = {answer.index for answer in answered}
            pending = [idx for idx in graded if idx not in done]
            transition = sequencer.stay() if (pending and not event.advance) else sequencer.advance()
        else:
            transition = sequencer.advance()

        if transition != Transition.STAYED:
            answered = []

        update: dict[str, Any] = {
            "stats": stats,
            "current_stage_index": sequencer.current_index,
            "answered_blocks": answered,
        }
        if transition == Transition.COMPLETED:
            update["is_complete"] = True
            update["completed_at"] = self._clock()

        updated = session.model_copy(update=update)

        if transition == Transition.COMPLETED:
            logger.info(f"Session {session.session_id} complete: {updated.stats.xp_earned} XP")
            return updated, self._completion_outcome(updated)

        return updated, ProgressOutcome(completed=False, next_stage=sequencer.current_stage)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _sequencer(self, session: LessonSession) -> StageSequencer:
        return StageSequencer(session.stages, session.current_stage_index, session.session_id)

    @staticmethod
    def _target_block(event: GradedEvent, graded: list[int], done: set[int]) -> Optional[int]:
        """Index of the graded block the event answers, or None if there is no open one."""
        if event.block_index is not None:
            if event.block_index in graded and event.block_index not in done:
                return event.block_index
            return None
        return next((idx for idx in graded if idx not in done), None)

    def _completion_outcome(self, session: LessonSession) -> ProgressOutcome:
        return ProgressOutcome(
            completed=True,
            stats=scoring.summarize(session.stats, session.completed_at),
        )
