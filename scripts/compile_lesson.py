#!/usr/bin/env python3
"""
compile_lesson.py - Compile lesson pages into stage lists.

Reads lesson page files (YAML or JSON), builds the stage sequence, checks that
every block renders, and writes the stages as JSON.

Usage:
  python scripts/compile_lesson.py lessons/photosynthesis.yaml
  python scripts/compile_lesson.py --all --output-dir data/compiled
  python scripts/compile_lesson.py lessons/python-basics.yaml --xp-reward 50 --print
"""

import argparse
import json
import logging
import sys
from pathlib import Path

PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

import yaml
from pydantic import ValidationError

from kiraquest.classroom import DEFAULT_XP_REWARD, build_stages
from kiraquest.schemas import LessonPage, Stage
from kiraquest.utils.lesson_loader import LESSON_SUFFIXES, LESSONS_DIR, read_lesson_file
from kiraquest.viewer import DynamicDispatcher

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


def compile_file(file_path: Path, xp_reward: int) -> list[Stage]:
    """
    Load one lesson page and build its stages.

    Raises:
        pydantic.ValidationError: If the file is not a valid lesson page
    """
    page = LessonPage.model_validate(read_lesson_file(file_path))
    return build_stages(page, xp_reward=xp_reward)


def check_stages(stages: list[Stage]) -> int:
    """Dispatch every stage without hooks; return the number of skipped blocks."""
    dispatcher = DynamicDispatcher()
    skipped = 0
    for stage in stages:
        result = dispatcher.dispatch(stage, on_progress=lambda event: None, on_complete=lambda: None)
        skipped += len(result.warnings)
    return skipped


def print_summary(file_path: Path, stages: list[Stage]):
    print(f"\n{file_path.name}: {len(stages)} stages")
    for stage in stages:
        kinds = ", ".join(block.type for block in stage.components)
        print(f"  {stage.stage_number:>2}. {stage.title:<40} [{kinds}]")


def main():
    parser = argparse.ArgumentParser(
        description="Compile lesson pages into stage lists",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    parser.add_argument(
        "inputs",
        nargs="*",
        type=Path,
        help="Lesson page files (YAML or JSON)"
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Compile every lesson page in the lessons directory"
    )
    parser.add_argument(
        "--lessons-dir",
        type=Path,
        default=LESSONS_DIR,
        help="Lessons directory used with --all"
    )
    parser.add_argument(
        "--output-dir",
        type=Path,
        default=PROJECT_ROOT / "data" / "compiled",
        help="Where to write <topic>.stages.json"
    )
    parser.add_argument(
        "--xp-reward",
        type=int,
        default=DEFAULT_XP_REWARD,
        help="XP per correctly answered quiz question"
    )
    parser.add_argument(
        "--print",
        dest="print_summary",
        action="store_true",
        help="Print a stage summary for each lesson"
    )

    args = parser.parse_args()

    inputs = list(args.inputs)
    if args.all:
        inputs.extend(sorted(p for p in args.lessons_dir.iterdir() if p.suffix in LESSON_SUFFIXES))
    if not inputs:
        parser.error("Pass lesson files or --all")

    args.output_dir.mkdir(parents=True, exist_ok=True)

    failures = 0
    for file_path in inputs:
        logger.info(f"Compiling {file_path}...")
        try:
            stages = compile_file(file_path, args.xp_reward)
        except (OSError, yaml.YAMLError, ValidationError, ValueError) as e:
            logger.error(f"  Failed: {e}")
            failures += 1
            continue

        skipped = check_stages(stages)
        if skipped:
            logger.warning(f"  {skipped} block(s) would be skipped at render time")

        output_path = args.output_dir / f"{file_path.stem}.stages.json"
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump([stage.to_wire() for stage in stages], f, ensure_ascii=False, indent=2)
        logger.info(f"  Wrote {len(stages)} stages to {output_path}")

        if args.print_summary:
            print_summary(file_path, stages)

    logger.info(f"Done: {len(inputs) - failures} compiled, {failures} failed")
    if failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
