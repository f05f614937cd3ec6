"""
Lesson loader utility for KiraQuest.

Loads lesson pages (YAML or JSON) from the lessons/ directory. Stands in for
the external content-generation collaborator.
"""

import json
import re
from pathlib import Path
from typing import Any

import yaml

from kiraquest.classroom.errors import LessonNotFoundError
from kiraquest.schemas import LessonPage


# Default lessons directory (relative to project root)
LESSONS_DIR = Path(__file__).parent.parent.parent / "lessons"

LESSON_SUFFIXES = (".yaml", ".yml", ".json")


def slugify_topic(topic: str) -> str:
    """
    Turn a topic or document reference into a file stem.

    "Photosynthesis Basics" -> "photosynthesis-basics"
    """
    slug = re.sub(r"[^a-z0-9]+", "-", topic.strip().lower())
    return slug.strip("-")


def read_lesson_file(file_path: Path) -> dict[str, Any]:
    """
    Read a raw lesson page file.

    Raises:
        yaml.YAMLError / json.JSONDecodeError: If parsing fails
    """
    with open(file_path, "r", encoding="utf-8") as f:
        if file_path.suffix == ".json":
            return json.load(f)
        return yaml.safe_load(f)


def load_lesson_page(topic: str, lessons_dir: Path | None = None) -> LessonPage:
    """
    Load the lesson page for a topic.

    Args:
        topic: Topic name or document reference (e.g., "Photosynthesis")
        lessons_dir: Optional custom lessons directory

    Returns:
        Validated LessonPage

    Raises:
        LessonNotFoundError: If no lesson file exists for the topic
        pydantic.ValidationError: If the file is not a valid lesson page
        yaml.YAMLError / json.JSONDecodeError: If the file cannot be parsed
    """
    dir_path = lessons_dir or LESSONS_DIR
    slug = slugify_topic(topic)
    if not slug:
        raise LessonNotFoundError(f"Empty topic: {topic!r}")

    for suffix in LESSON_SUFFIXES:
        file_path = dir_path / f"{slug}{suffix}"
        if file_path.exists():
            return LessonPage.model_validate(read_lesson_file(file_path))

    raise LessonNotFoundError(f"Lesson not found for topic {topic!r} in {dir_path}")


def get_available_topics(lessons_dir: Path | None = None) -> list[str]:
    """
    List all available lesson topics.

    Args:
        lessons_dir: Optional custom lessons directory

    Returns:
        Sorted list of topic slugs (file names without extension)
    """
    dir_path = lessons_dir or LESSONS_DIR
    if not dir_path.exists():
        return []
    return sorted({p.stem for p in dir_path.iterdir() if p.suffix in LESSON_SUFFIXES})
