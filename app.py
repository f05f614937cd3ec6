"""
KiraQuest - Gamified Micro-Lessons

Streamlit front-end: pick a topic and a personality tone, play through the
lesson stages, and finish on the victory screen.

Usage:
    streamlit run app.py
"""

import json
import logging

import streamlit as st
import yaml
from pydantic import ValidationError

from kiraquest.classroom import (
    ConcurrentUpdateError,
    InvalidSessionError,
    LessonNotFoundError,
    LessonService,
    SessionStore,
)
from kiraquest.config import Settings, configure_logging
from kiraquest.schemas import PersonalityTone, ProgressEvent, UngradedEvent
from kiraquest.viewer import (
    BossBattle,
    DynamicDispatcher,
    ExplainerCard,
    VictoryScreen,
    render_stage,
)

logger = logging.getLogger(__name__)


# -----------------------------------------------------------------------------
# Configuration
# -----------------------------------------------------------------------------

st.set_page_config(
    page_title="KiraQuest",
    page_icon="✨",
    layout="centered",
    initial_sidebar_state="expanded",
)


# -----------------------------------------------------------------------------
# Session State Initialization
# -----------------------------------------------------------------------------

def init_session_state():
    """Initialize session state variables."""
    if "settings" not in st.session_state:
        settings = Settings.from_env()
        configure_logging(settings.log_level)
        st.session_state.settings = settings

    if "service" not in st.session_state:
        settings = st.session_state.settings
        st.session_state.service = LessonService(
            store=SessionStore(settings.db_path),
            lessons_dir=settings.lessons_dir,
            default_tone=settings.default_tone,
        )

    if "dispatcher" not in st.session_state:
        st.session_state.dispatcher = DynamicDispatcher()

    if "session_id" not in st.session_state:
        st.session_state.session_id = None

    if "screen" not in st.session_state:
        st.session_state.screen = "home"  # home, lesson, complete, error

    if "feedback" not in st.session_state:
        st.session_state.feedback = None

    if "error" not in st.session_state:
        st.session_state.error = None


def go_home():
    """Leave the current lesson and return to the start screen."""
    st.session_state.session_id = None
    st.session_state.screen = "home"
    st.session_state.feedback = None
    st.session_state.error = None


def show_error(message: str):
    st.session_state.error = message
    st.session_state.screen = "error"


# -----------------------------------------------------------------------------
# Sidebar
# -----------------------------------------------------------------------------

def render_sidebar():
    """Render the sidebar with session info."""
    st.sidebar.title("✨ KiraQuest")

    session_id = st.session_state.session_id
    if not session_id:
        topics = st.session_state.service.available_topics()
        st.sidebar.markdown(f"**{len(topics)} lessons** available")
        return

    try:
        session = st.session_state.service.get_session(session_id)
    except InvalidSessionError:
        return

    stats = st.session_state.service.engine.stats_snapshot(session)
    st.sidebar.markdown(f"**Topic:** {session.topic}")
    st.sidebar.markdown(f"**Tone:** {session.personality_tone.value}")
    st.sidebar.progress(session.current_stage_index / session.total_stages)
    st.sidebar.markdown(f"**XP:** {stats.xp_earned}")

    st.sidebar.divider()
    if st.sidebar.button("Leave lesson", use_container_width=True):
        go_home()
        st.rerun()


# -----------------------------------------------------------------------------
# Start Screen
# -----------------------------------------------------------------------------

def render_home_view():
    """Topic and personality tone picker."""
    st.title("Start a Quest")

    service = st.session_state.service
    topics = service.available_topics()
    if not topics:
        st.error(f"No lessons found in {service.lessons_dir}.")
        st.code("# Add a lesson page, then check it compiles:\npython scripts/compile_lesson.py lessons/my-topic.yaml")
        return

    topic = st.selectbox("Topic", topics, format_func=lambda t: t.replace("-", " ").title())
    tones = [tone.value for tone in PersonalityTone]
    tone = st.selectbox("Personality", tones, index=tones.index(service.default_tone.value))

    if st.button("Start lesson", type="primary", use_container_width=True):
        start_lesson(topic, tone)


def start_lesson(topic: str, tone: str):
    try:
        session = st.session_state.service.start_lesson(personality_tone=tone, topic=topic)
    except (LessonNotFoundError, InvalidSessionError, ValidationError, yaml.YAMLError, json.JSONDecodeError) as e:
        logger.error(f"Failed to start lesson {topic!r}: {e}")
        show_error(str(e))
        st.rerun()
        return

    st.session_state.session_id = session.session_id
    st.session_state.screen = "lesson"
    st.session_state.feedback = None
    st.rerun()


# -----------------------------------------------------------------------------
# Lesson Screen
# -----------------------------------------------------------------------------

def submit(event: ProgressEvent):
    """Progress hook handed to every rendered block."""
    try:
        st.session_state.service.submit_progress(st.session_state.session_id, event)
    except ConcurrentUpdateError:
        st.session_state.feedback = ("warning", "This lesson was updated elsewhere. Showing the latest stage.")
    except InvalidSessionError as e:
        show_error(e.reason)


def finish_lesson():
    """Teardown hook: the victory screen was acknowledged."""
    st.session_state.screen = "complete"


def render_lesson_view():
    """Render the current stage through the dispatcher."""
    service = st.session_state.service
    try:
        session = service.get_session(st.session_state.session_id)
    except InvalidSessionError as e:
        show_error(e.reason)
        st.rerun()
        return

    if session.is_complete:
        render_completion_view()
        return

    stage = service.engine.get_current_stage(session)
    st.markdown(
        f"<center>Stage {session.current_stage_index + 1} of {session.total_stages}</center>",
        unsafe_allow_html=True,
    )

    feedback = st.session_state.feedback
    if feedback:
        kind, message = feedback
        getattr(st, kind)(message)
        st.session_state.feedback = None

    result = st.session_state.dispatcher.dispatch(
        stage,
        on_progress=submit,
        on_complete=finish_lesson,
        stats=lambda: service.engine.stats_snapshot(session),
        answered=session.answered_blocks,
    )
    st.markdown(render_stage(result), unsafe_allow_html=True)

    render_block_actions(result)


def render_block_actions(result):
    """Buttons for the interactive blocks of a dispatched stage."""
    stage_key = f"{st.session_state.session_id}_{result.stage.stage_number}"
    actionable = False

    for block in result.blocks:
        key = f"{stage_key}_{block.index}"

        if isinstance(block, BossBattle):
            actionable = True
            if block.props.hint:
                with st.expander("Show hint"):
                    st.info(block.reveal_hint())
            for option in block.props.options:
                if st.button(option, key=f"{key}_{option}", use_container_width=True):
                    grade = block.answer(option)
                    if grade.correct:
                        st.session_state.feedback = ("success", f"Correct! +{grade.xp_awarded} XP")
                    else:
                        st.session_state.feedback = (
                            "error", f"Not quite. The answer was {block.props.correct_answer}."
                        )
                    st.rerun()

        elif isinstance(block, ExplainerCard):
            actionable = True
            if st.button("Continue", key=key, type="primary", use_container_width=True):
                block.continue_lesson()
                st.rerun()

        elif isinstance(block, VictoryScreen):
            actionable = True
            if st.button("Finish", key=key, type="primary", use_container_width=True):
                block.acknowledge()
                st.rerun()

    if not actionable:
        # Every block was skipped or informational; let the user move on
        if st.button("Continue", key=f"{stage_key}_skip", use_container_width=True):
            submit(UngradedEvent())
            st.rerun()


# -----------------------------------------------------------------------------
# Completion / Error Screens
# -----------------------------------------------------------------------------

def render_completion_view():
    """Summary stats and the way back home."""
    service = st.session_state.service
    try:
        session = service.get_session(st.session_state.session_id)
    except InvalidSessionError as e:
        show_error(e.reason)
        st.rerun()
        return

    stats = service.engine.stats_snapshot(session)

    st.title("🎉 Lesson Complete!")
    col1, col2, col3, col4 = st.columns(4)
    col1.metric("Questions", stats.questions_answered)
    col2.metric("Accuracy", f"{stats.accuracy}%")
    col3.metric("XP Earned", stats.xp_earned)
    col4.metric("Time", stats.time_spent)

    if st.button("Back to home", type="primary", use_container_width=True):
        go_home()
        st.rerun()


def render_error_view():
    st.error("Failed to load lesson")
    if st.session_state.error:
        st.caption(st.session_state.error)
    if st.button("Back to home"):
        go_home()
        st.rerun()


# -----------------------------------------------------------------------------
# Main App
# -----------------------------------------------------------------------------

def main():
    """Main application entry point."""
    init_session_state()
    render_sidebar()

    screen = st.session_state.screen
    if screen == "lesson":
        render_lesson_view()
    elif screen == "complete":
        render_completion_view()
    elif screen == "error":
        render_error_view()
    else:
        render_home_view()


if __name__ == "__main__":
    main()
