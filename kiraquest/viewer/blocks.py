"""
Block renderers - HTML and interaction for each content block kind.

Each renderer receives its validated props and the two session hooks:
- progress(event): report an advance event to the engine
- complete(): hand over to the session-teardown collaborator

Variant-specific behavior (single submission, hints, victory acknowledgement)
lives here, not in the dispatcher.
"""

import html
import re
from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Optional

from kiraquest.classroom import scoring
from kiraquest.classroom.scoring import GradeResult
from kiraquest.schemas import (
    BlockAnswer,
    BlockType,
    BossBattleProps,
    ExplainerProps,
    GradedEvent,
    LevelMapProps,
    LevelStatus,
    ProgressEvent,
    UngradedEvent,
    VictoryProps,
    WireModel,
)


@dataclass
class BlockHooks:
    """Session-scoped callbacks handed to every rendered block."""
    progress: Callable[[Optional[ProgressEvent]], Any]
    complete: Callable[[], Any]


LEVEL_STATUS_ICONS = {
    LevelStatus.COMPLETED: "✓",
    LevelStatus.CURRENT: "★",
    LevelStatus.LOCKED: "🔒",
}


def get_blocks_css() -> str:
    """Get CSS styles for lesson blocks."""
    return """
    <style>
    .kq-block {
        margin: 1.5em 0;
        padding: 1.2em 1.5em;
        border-radius: 12px;
        background: white;
        border: 1px solid #e2e8f0;
        box-shadow: 0 1px 3px rgba(0,0,0,0.06);
    }
    .kq-explainer {
        border-left: 4px solid #ec4899;
    }
    .kq-explainer-title {
        font-weight: 700;
        font-size: 1.3em;
        color: #1e293b;
        margin-bottom: 0.6em;
    }
    .kq-encouragement {
        margin-top: 1em;
        color: #db2777;
        font-style: italic;
    }
    .kq-battle {
        border-left: 4px solid #3b82f6;
    }
    .kq-boss-name {
        font-weight: 700;
        color: #1d4ed8;
    }
    .kq-health-bar {
        height: 10px;
        background: #e2e8f0;
        border-radius: 5px;
        overflow: hidden;
        margin: 0.5em 0 1em 0;
    }
    .kq-health-fill {
        height: 100%;
        background: #10b981;
    }
    .kq-option {
        padding: 0.6em 1em;
        margin: 0.4em 0;
        border: 2px solid #e2e8f0;
        border-radius: 8px;
        background: #f8fafc;
    }
    .kq-option-correct {
        border-color: #10b981;
        background: #ecfdf5;
        color: #047857;
    }
    .kq-option-wrong {
        border-color: #ef4444;
        background: #fef2f2;
        color: #b91c1c;
    }
    .kq-hint {
        background: #fff7ed;
        color: #c2410c;
        padding: 0.6em 1em;
        border-radius: 8px;
    }
    .kq-levels {
        display: flex;
        gap: 0.6em;
        flex-wrap: wrap;
    }
    .kq-level {
        padding: 0.3em 0.8em;
        border-radius: 999px;
        font-size: 0.85em;
        background: #f1f5f9;
        color: #94a3b8;
    }
    .kq-level-completed {
        background: #d1fae5;
        color: #047857;
    }
    .kq-level-current {
        background: #fce7f3;
        color: #be185d;
        font-weight: 600;
    }
    .kq-victory {
        text-align: center;
        border-left: 4px solid #facc15;
    }
    .kq-victory-stats {
        display: flex;
        justify-content: space-around;
        margin-top: 1em;
    }
    .kq-stat-value {
        font-size: 1.8em;
        font-weight: 700;
        color: #db2777;
    }
    .kq-stat-label {
        color: #64748b;
        font-size: 0.85em;
    }
    </style>
    """


def render_markdown(text: str) -> str:
    """Minimal markdown: escape, **bold**, line breaks."""
    escaped = html.escape(text)
    escaped = re.sub(r"\*\*(.+?)\*\*", r"<strong>\1</strong>", escaped)
    return escaped.replace("\n", "<br>")


# -----------------------------------------------------------------------------
# Renderer base
# -----------------------------------------------------------------------------

class BlockRenderer:
    """Base class: one instance per block per rendered stage."""
    block_type: ClassVar[BlockType]
    props_model: ClassVar[type[WireModel]]
    graded: ClassVar[bool] = False

    def __init__(self, props: WireModel, hooks: BlockHooks, index: int = 0):
        self.props = props
        self.hooks = hooks
        self.index = index

    def restore(self, answer: BlockAnswer):
        """Replay an answer the session already holds for this block."""

    def render(self) -> str:
        raise NotImplementedError


# -----------------------------------------------------------------------------
# Explainer
# -----------------------------------------------------------------------------

class ExplainerCard(BlockRenderer):
    """Ungraded teaching card; "Continue" always advances."""
    block_type = BlockType.EXPLAINER
    props_model = ExplainerProps

    props: ExplainerProps

    def render(self) -> str:
        parts = ['<div class="kq-block kq-explainer">']
        parts.append(f'<div class="kq-explainer-title">{html.escape(self.props.title)}</div>')
        parts.append(f'<div class="kq-explainer-content">{render_markdown(self.props.content)}</div>')
        if self.props.encouragement:
            parts.append(f'<div class="kq-encouragement">{html.escape(self.props.encouragement)}</div>')
        parts.append('</div>')
        return ''.join(parts)

    def continue_lesson(self):
        return self.hooks.progress(UngradedEvent())


# -----------------------------------------------------------------------------
# Boss battle
# -----------------------------------------------------------------------------

class BossBattle(BlockRenderer):
    """
    Graded multiple-choice challenge.

    Exactly one answer is accepted per block; later answers are no-ops that
    return the first result. An answer already held by the session is
    restored at dispatch time.
    """
    block_type = BlockType.BOSS_BATTLE
    props_model = BossBattleProps
    graded = True

    props: BossBattleProps

    def __init__(self, props: BossBattleProps, hooks: BlockHooks, index: int = 0):
        super().__init__(props, hooks, index)
        self.selected: Optional[str] = None
        self.result: Optional[GradeResult] = None
        self.hint_shown = False

    @property
    def answered(self) -> bool:
        return self.result is not None

    @property
    def defeated(self) -> bool:
        return self.result is not None and self.result.correct

    def restore(self, answer: BlockAnswer):
        self.selected = answer.selected_answer
        self.result = GradeResult(
            correct=answer.correct,
            xp_awarded=self.props.xp_reward if answer.correct else 0,
        )

    def reveal_hint(self) -> Optional[str]:
        self.hint_shown = True
        return self.props.hint

    def answer(self, option: str) -> GradeResult:
        """Grade the first answer and report it; ignore any later one."""
        if self.result is not None:
            return self.result

        self.selected = option
        self.result = scoring.grade_answer(option, self.props.correct_answer, self.props.xp_reward)
        self.hooks.progress(GradedEvent(
            selected_answer=option,
            correct_answer=self.props.correct_answer,
            block_index=self.index,
            xp_reward=self.props.xp_reward,
        ))
        return self.result

    def option_class(self, option: str) -> str:
        if not self.answered:
            return "kq-option"
        if option == self.props.correct_answer:
            return "kq-option kq-option-correct"
        if option == self.selected:
            return "kq-option kq-option-wrong"
        return "kq-option"

    def render(self) -> str:
        health = scoring.health_percent(self.props.boss_health, self.defeated)
        parts = ['<div class="kq-block kq-battle">']
        parts.append(f'<div class="kq-boss-name">{html.escape(self.props.boss_name)}</div>')
        parts.append(
            f'<div class="kq-health-bar"><div class="kq-health-fill" style="width:{health}%"></div></div>'
        )
        parts.append(f'<div class="kq-question">{html.escape(self.props.question)}</div>')

        for option in self.props.options:
            parts.append(f'<div class="{self.option_class(option)}">{html.escape(option)}</div>')

        if self.hint_shown and self.props.hint and not self.answered:
            parts.append(f'<div class="kq-hint">{html.escape(self.props.hint)}</div>')

        if self.result is not None:
            if self.result.correct:
                parts.append(f'<p><strong>Correct!</strong> +{self.result.xp_awarded} XP</p>')
            else:
                parts.append(
                    f'<p>Not quite. The answer was <strong>{html.escape(self.props.correct_answer)}</strong>.</p>'
                )

        parts.append('</div>')
        return ''.join(parts)


# -----------------------------------------------------------------------------
# Level map
# -----------------------------------------------------------------------------

class LevelMap(BlockRenderer):
    """Informational progress strip. Never grades or advances."""
    block_type = BlockType.LEVEL_MAP
    props_model = LevelMapProps

    props: LevelMapProps

    def render(self) -> str:
        if not self.props.levels:
            return ""

        items = []
        for level in self.props.levels:
            icon = LEVEL_STATUS_ICONS[level.status]
            items.append(
                f'<span class="kq-level kq-level-{level.status.value}">'
                f'{icon} {html.escape(level.name)}</span>'
            )
        return f'<div class="kq-block kq-levels">{"".join(items)}</div>'


# -----------------------------------------------------------------------------
# Victory
# -----------------------------------------------------------------------------

class VictoryScreen(BlockRenderer):
    """Terminal summary. Acknowledging it finishes the lesson."""
    block_type = BlockType.VICTORY
    props_model = VictoryProps

    props: VictoryProps

    def __init__(self, props: VictoryProps, hooks: BlockHooks, index: int = 0):
        super().__init__(props, hooks, index)
        self.acknowledged = False

    def acknowledge(self):
        """Advance past the victory stage, then hand over to teardown. Runs once."""
        if self.acknowledged:
            return
        self.acknowledged = True
        self.hooks.progress(UngradedEvent())
        self.hooks.complete()

    def render(self) -> str:
        stats = self.props.stats
        cells = [
            (stats.questions_answered, "Questions"),
            (f"{stats.accuracy}%", "Accuracy"),
            (stats.xp_earned, "XP Earned"),
            (stats.time_spent, "Time"),
        ]
        parts = ['<div class="kq-block kq-victory">']
        parts.append(f'<h2>{html.escape(self.props.title)}</h2>')
        if self.props.encouragement:
            parts.append(f'<p>{html.escape(self.props.encouragement)}</p>')
        parts.append('<div class="kq-victory-stats">')
        for value, label in cells:
            parts.append(
                f'<div><div class="kq-stat-value">{html.escape(str(value))}</div>'
                f'<div class="kq-stat-label">{label}</div></div>'
            )
        parts.append('</div></div>')
        return ''.join(parts)
