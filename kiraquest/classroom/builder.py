"""
Stage builder - Compile a lesson page into the ordered stage list.

Layout:
- One teaching stage per section (level map + explainer)
- One quiz stage per question (level map + boss battle)
- A final victory stage (level map + victory)
"""

from kiraquest.schemas import (
    BlockType,
    BossBattleProps,
    ContentBlock,
    ExplainerProps,
    LessonPage,
    Level,
    LevelMapProps,
    LevelStatus,
    Stage,
    StatsSnapshot,
    VictoryProps,
)


DEFAULT_BOSS_HEALTH = 100
DEFAULT_XP_REWARD = 100
DEFAULT_HINT = "Apply what you learned!"
VICTORY_TITLE = "🎉 Great Job!"


def _status(level_id: int, current: int) -> LevelStatus:
    if level_id < current:
        return LevelStatus.COMPLETED
    if level_id == current:
        return LevelStatus.CURRENT
    return LevelStatus.LOCKED


def build_levels(total_teaching: int, total_quiz: int, current: int) -> list[Level]:
    """
    Build the level map for a lesson as seen from stage `current` (1-based).

    The victory level is only ever current or locked.
    """
    total_stages = total_teaching + total_quiz + 1
    levels = []
    for i in range(total_teaching):
        level_id = i + 1
        levels.append(Level(id=level_id, name=f"Learn {i + 1}", status=_status(level_id, current)))
    for i in range(total_quiz):
        level_id = total_teaching + i + 1
        levels.append(Level(id=level_id, name=f"Quiz {i + 1}", status=_status(level_id, current)))
    victory_status = LevelStatus.CURRENT if current == total_stages else LevelStatus.LOCKED
    levels.append(Level(id=total_stages, name="Victory", status=victory_status))
    return levels


def format_section_content(teaching: str, key_point: str, example: str | None = None) -> str:
    """Markdown body of a teaching explainer."""
    content = f"{teaching}\n\n**Key Point:** {key_point}"
    if example:
        content += f"\n\n**Example:** {example}"
    return content


def build_stages(
    page: LessonPage,
    xp_reward: int = DEFAULT_XP_REWARD,
    boss_health: int = DEFAULT_BOSS_HEALTH,
) -> list[Stage]:
    """
    Convert a lesson page into stages.

    Args:
        page: Lesson page from the content-generation collaborator
        xp_reward: XP for each correctly answered quiz question
        boss_health: Initial health shown on each boss battle

    Returns:
        Stages numbered from 1, ending with the victory stage
    """
    total_teaching = len(page.sections)
    total_quiz = len(page.quiz_questions)
    encouragement = page.encouragement or None

    def level_map(stage_number: int) -> ContentBlock:
        return ContentBlock.of(
            BlockType.LEVEL_MAP,
            LevelMapProps(levels=build_levels(total_teaching, total_quiz, stage_number)),
        )

    stages: list[Stage] = []
    stage_number = 1

    # Teaching
    for section in page.sections:
        explainer = ExplainerProps(
            title=section.topic,
            content=format_section_content(section.teaching, section.key_point, section.example),
            encouragement=encouragement,
        )
        stages.append(Stage(
            stage_number=stage_number,
            title=f"Lesson {stage_number}: {section.topic}",
            components=[level_map(stage_number), ContentBlock.of(BlockType.EXPLAINER, explainer)],
        ))
        stage_number += 1

    # Quiz
    for idx, quiz in enumerate(page.quiz_questions):
        battle = BossBattleProps(
            boss_name=f"Challenge {idx + 1}",
            boss_health=boss_health,
            question=quiz.question,
            options=quiz.options,
            correct_answer=quiz.correct_answer,
            hint=DEFAULT_HINT,
            xp_reward=xp_reward,
        )
        stages.append(Stage(
            stage_number=stage_number,
            title=f"Quiz {idx + 1}",
            components=[level_map(stage_number), ContentBlock.of(BlockType.BOSS_BATTLE, battle)],
        ))
        stage_number += 1

    # Victory (stats are placeholders; the dispatcher overlays live values)
    victory = VictoryProps(
        title=VICTORY_TITLE,
        encouragement=page.encouragement,
        stats=StatsSnapshot(
            questions_answered=total_quiz,
            accuracy=100,
            xp_earned=total_quiz * xp_reward,
            time_spent="0m",
        ),
    )
    stages.append(Stage(
        stage_number=stage_number,
        title="Lesson Complete!",
        components=[level_map(stage_number), ContentBlock.of(BlockType.VICTORY, victory)],
    ))

    return stages
