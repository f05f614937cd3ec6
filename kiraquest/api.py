"""
FastAPI backend for KiraQuest.

Provides REST endpoints for:
- Starting a lesson session from a topic or an inline lesson page
- Fetching the current session snapshot
- Submitting progress (ungraded advance or graded answer)
- Ending a session

Usage:
    kiraquest-api --port 8000
"""

import argparse
import json
import logging
from typing import Any, Optional

import yaml
from fastapi import Depends, FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from pydantic import ValidationError

from kiraquest import __version__
from kiraquest.classroom import (
    ConcurrentUpdateError,
    InvalidSessionError,
    LessonNotFoundError,
    LessonService,
    SessionStore,
)
from kiraquest.config import Settings, configure_logging
from kiraquest.schemas import LessonPage, LessonSession, PersonalityTone, WireModel

logger = logging.getLogger(__name__)

COMPLETION_MESSAGE = "Congratulations! You completed the lesson!"


# ==================== Request Models ====================

class StartLessonRequest(WireModel):
    personality_tone: Optional[PersonalityTone] = None
    topic: Optional[str] = None
    lesson_page: Optional[LessonPage] = None


class ProgressRequest(WireModel):
    correct: Optional[bool] = None
    xp: Optional[int] = None            # accepted for compatibility; XP comes from the block
    selected_answer: Optional[str] = None
    block_index: Optional[int] = None
    advance: bool = True


# ==================== Helpers ====================

def get_service(request: Request) -> LessonService:
    return request.app.state.service


def session_snapshot(service: LessonService, session: LessonSession) -> dict[str, Any]:
    """Wire snapshot of a session; `stage` is null once complete."""
    stage = None
    if not session.is_complete:
        stage = service.engine.get_current_stage(session).to_wire()
    return {
        "sessionId": session.session_id,
        "topic": session.topic,
        "currentStage": session.current_stage_index + 1,
        "totalStages": session.total_stages,
        "personalityTone": session.personality_tone.value,
        "stage": stage,
        "isComplete": session.is_complete,
        "stats": service.engine.stats_snapshot(session).to_wire(),
    }


def to_http_error(error: Exception) -> HTTPException:
    if isinstance(error, InvalidSessionError):
        if error.unknown:
            return HTTPException(status_code=404, detail="Session not found")
        return HTTPException(status_code=422, detail=f"Session state is invalid: {error.reason}")
    if isinstance(error, ConcurrentUpdateError):
        return HTTPException(status_code=409, detail="Session was updated by another request; reload and retry")
    if isinstance(error, LessonNotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    return HTTPException(status_code=500, detail="Failed to process lesson request")


# ==================== App Factory ====================

def create_app(service: Optional[LessonService] = None, settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the API application.

    Args:
        service: Preconfigured LessonService (tests); built from settings otherwise
        settings: Runtime settings (default: from environment)
    """
    settings = settings or Settings.from_env()
    if service is None:
        service = LessonService(
            store=SessionStore(settings.db_path),
            lessons_dir=settings.lessons_dir,
            default_tone=settings.default_tone,
        )

    app = FastAPI(
        title="KiraQuest API",
        description="Gamified micro-lesson progression engine",
        version=__version__,
    )
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/")
    def root():
        """Health check endpoint."""
        return {"status": "ok", "service": "KiraQuest API", "version": __version__}

    @app.get("/api/lesson/topics")
    def list_topics(service: LessonService = Depends(get_service)):
        return {"topics": service.available_topics()}

    @app.post("/api/lesson/start")
    def start_lesson(body: StartLessonRequest, service: LessonService = Depends(get_service)):
        """Create a session and return its first stage."""
        if not body.topic and body.lesson_page is None:
            raise HTTPException(status_code=400, detail="topic or lessonPage is required")

        try:
            session = service.start_lesson(
                personality_tone=body.personality_tone,
                topic=body.topic,
                lesson_page=body.lesson_page,
            )
        except LessonNotFoundError as e:
            raise to_http_error(e)
        except (InvalidSessionError, ValidationError, yaml.YAMLError, json.JSONDecodeError) as e:
            logger.error(f"Failed to build lesson for topic {body.topic!r}: {e}")
            raise HTTPException(status_code=422, detail="Lesson content is invalid")

        logger.info(f"Started session {session.session_id} on {session.topic!r}")
        return {
            "sessionId": session.session_id,
            "topic": session.topic,
            "stage": session.stages[0].to_wire(),
            "currentStage": 1,
            "totalStages": session.total_stages,
            "personalityTone": session.personality_tone.value,
        }

    @app.get("/api/lesson/{session_id}")
    def get_lesson(session_id: str, service: LessonService = Depends(get_service)):
        """Get current lesson state."""
        try:
            session = service.get_session(session_id)
        except InvalidSessionError as e:
            logger.info(f"GET session {session_id} failed: {e.reason}")
            raise to_http_error(e)
        return session_snapshot(service, session)

    @app.post("/api/lesson/{session_id}/progress")
    def submit_progress(
        session_id: str,
        body: Optional[ProgressRequest] = None,
        service: LessonService = Depends(get_service),
    ):
        """Advance the session: ungraded continue or graded answer."""
        body = body or ProgressRequest()
        try:
            session, outcome = service.submit_result(
                session_id,
                selected_answer=body.selected_answer,
                correct=body.correct,
                block_index=body.block_index,
                advance=body.advance,
            )
        except (InvalidSessionError, ConcurrentUpdateError) as e:
            logger.warning(f"Progress on session {session_id} rejected: {e}")
            raise to_http_error(e)

        if outcome.completed:
            return {
                "sessionId": session.session_id,
                "currentStage": session.current_stage_index + 1,
                "isComplete": True,
                "stats": service.engine.stats_snapshot(session).to_wire(),
                "message": COMPLETION_MESSAGE,
            }
        return session_snapshot(service, session)

    @app.delete("/api/lesson/{session_id}", status_code=204)
    def end_lesson(session_id: str, service: LessonService = Depends(get_service)):
        """Abandon or archive a session."""
        try:
            service.end_session(session_id)
        except InvalidSessionError as e:
            raise to_http_error(e)
        return Response(status_code=204)

    return app


def main():
    parser = argparse.ArgumentParser(description="Run the KiraQuest API server")
    parser.add_argument("--host", default="127.0.0.1")
    parser.add_argument("--port", type=int, default=8000)
    parser.add_argument("--reload", action="store_true", help="Reload on code changes (development)")
    args = parser.parse_args()

    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info(f"Sessions stored in {settings.db_path}, lessons read from {settings.lessons_dir}")

    if args.reload:
        uvicorn.run("kiraquest.api:create_app", factory=True, host=args.host, port=args.port, reload=True)
    else:
        uvicorn.run(create_app(settings=settings), host=args.host, port=args.port)


if __name__ == "__main__":
    main()
