"""KiraQuest utilities."""

from .lesson_loader import load_lesson_page, get_available_topics, slugify_topic

__all__ = ["load_lesson_page", "get_available_topics", "slugify_topic"]
