"""
LessonService - Collaborator facade over loader, engine and store.

The HTTP API and the Streamlit app talk to this class only. It owns all I/O
(lesson files, SQLite); the engine stays a pure state machine.
"""

import logging
from pathlib import Path
from typing import Collection, Optional, Union

from pydantic import ValidationError

from kiraquest.schemas import (
    BossBattleProps,
    GradedEvent,
    LessonPage,
    LessonSession,
    PersonalityTone,
    ProgressEvent,
    ProgressOutcome,
    Stage,
    UngradedEvent,
)
from kiraquest.utils import lesson_loader

from .builder import build_stages
from .engine import LessonProgressionEngine
from .errors import InvalidSessionError, LessonNotFoundError
from .store import SessionStore

logger = logging.getLogger(__name__)


def build_progress_event(
    stage: Stage,
    selected_answer: Optional[str] = None,
    correct: Optional[bool] = None,
    block_index: Optional[int] = None,
    advance: bool = True,
    answered: Collection[int] = (),
) -> ProgressEvent:
    """
    Translate a client progress request into an engine event.

    A selected answer is graded against the stage's graded block: the one at
    block_index, else the first one not in `answered`. A bare `correct` flag
    counts as a graded answer only if the stage has a graded block; XP always
    comes from the block. Anything else is an ungraded advance.
    """
    if selected_answer is None and correct is None:
        return UngradedEvent()

    graded = stage.graded_blocks
    if block_index is not None:
        graded = [(idx, block) for idx, block in graded if idx == block_index]
    else:
        # Unanswered first; an all-answered stage yields an event the engine ignores
        graded = sorted(graded, key=lambda pair: pair[0] in answered)
    if not graded:
        if selected_answer is not None:
            logger.warning(
                f"Answer submitted for stage {stage.stage_number} which has no graded block"
                + (f" at index {block_index}" if block_index is not None else "")
            )
        return UngradedEvent()

    try:
        battle = BossBattleProps.model_validate(graded[0][1].props)
    except ValidationError as e:
        logger.warning(f"Graded block on stage {stage.stage_number} is malformed, treating as ungraded: {e}")
        return UngradedEvent()

    if selected_answer is None:
        # Client graded locally; only the verdict is trusted.
        selected_answer = battle.correct_answer if correct else None

    return GradedEvent(
        selected_answer=selected_answer,
        correct_answer=battle.correct_answer,
        block_index=graded[0][0],
        xp_reward=battle.xp_reward,
        advance=advance,
    )


class LessonService:
    """
    Create, fetch, progress and end lesson sessions.

    Combines the lesson loader (content), the engine (rules) and the
    session store (persistence).
    """

    def __init__(
        self,
        store: SessionStore,
        engine: Optional[LessonProgressionEngine] = None,
        lessons_dir: Optional[Path] = None,
        default_tone: Union[PersonalityTone, str] = PersonalityTone.HYPE_MAN,
    ):
        self.store = store
        self.engine = engine or LessonProgressionEngine()
        self.lessons_dir = lessons_dir
        self.default_tone = PersonalityTone(default_tone)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def available_topics(self) -> list[str]:
        return lesson_loader.get_available_topics(self.lessons_dir)

    def start_lesson(
        self,
        personality_tone: Union[PersonalityTone, str, None] = None,
        topic: Optional[str] = None,
        lesson_page: Optional[LessonPage] = None,
    ) -> LessonSession:
        """
        Build and store a new session.

        Args:
            personality_tone: Presentation style (default: service default)
            topic: Topic or document reference; looked up when no page is given
            lesson_page: Inline lesson page from the content collaborator

        Raises:
            LessonNotFoundError: If neither a page nor a known topic is given
        """
        if lesson_page is None:
            if not topic:
                raise LessonNotFoundError("A topic or a lesson page is required")
            lesson_page = lesson_loader.load_lesson_page(topic, self.lessons_dir)

        stages = build_stages(lesson_page)
        session = self.engine.create_session(
            personality_tone or self.default_tone,
            stages,
            topic=topic or lesson_page.title,
        )
        self.store.insert(session)
        return session

    def get_session(self, session_id: str) -> LessonSession:
        """
        Raises:
            InvalidSessionError: If the id is unknown or the stored state is corrupt
        """
        session, _ = self._load(session_id)
        return session

    def end_session(self, session_id: str):
        """Abandon or archive a session."""
        if not self.store.delete(session_id):
            raise InvalidSessionError.not_found(session_id)
        logger.info(f"Session {session_id} ended")

    # -------------------------------------------------------------------------
    # Progress
    # -------------------------------------------------------------------------

    def submit_progress(
        self,
        session_id: str,
        event: Optional[ProgressEvent] = None,
    ) -> tuple[LessonSession, ProgressOutcome]:
        """
        Apply one progress event and persist the result.

        Raises:
            InvalidSessionError: Unknown id or corrupt state
            ConcurrentUpdateError: Another writer saved the session first
        """
        session, revision = self._load(session_id)
        updated, outcome = self.engine.submit_progress(session, event)
        if updated is not session:
            self.store.save(updated, revision)
        return updated, outcome

    def submit_result(
        self,
        session_id: str,
        selected_answer: Optional[str] = None,
        correct: Optional[bool] = None,
        block_index: Optional[int] = None,
        advance: bool = True,
    ) -> tuple[LessonSession, ProgressOutcome]:
        """Wire-level progress: builds the event from the current stage first."""
        session, revision = self._load(session_id)
        if session.is_complete:
            return self.engine.submit_progress(session)

        stage = self.engine.get_current_stage(session)
        answered = {answer.index for answer in session.answered_blocks}
        event = build_progress_event(stage, selected_answer, correct, block_index, advance, answered)
        updated, outcome = self.engine.submit_progress(session, event)
        if updated is not session:
            self.store.save(updated, revision)
        return updated, outcome

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _load(self, session_id: str) -> tuple[LessonSession, int]:
        stored = self.store.get(session_id)
        if stored is None:
            raise InvalidSessionError.not_found(session_id)
        return self.engine.load_session(stored.payload), stored.revision
