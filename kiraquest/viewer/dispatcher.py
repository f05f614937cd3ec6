"""
DynamicDispatcher - Render a stage's blocks through the component registry.

Features:
- Unknown block types and malformed props are skipped with a logged warning
- Victory blocks get live stats overlaid just before rendering
- Every block receives the same progress/complete hooks
"""

import html
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional, Sequence

from pydantic import ValidationError

from kiraquest.classroom.errors import UnknownBlockTypeWarning
from kiraquest.schemas import (
    BlockAnswer,
    BlockType,
    ContentBlock,
    GradedEvent,
    ProgressEvent,
    Stage,
    StatsSnapshot,
    UngradedEvent,
)

from .blocks import BlockHooks, BlockRenderer, get_blocks_css
from .registry import DEFAULT_REGISTRY, ComponentRegistry

logger = logging.getLogger(__name__)


@dataclass
class DispatchResult:
    """Renderers for one stage plus the warnings collected on the way."""
    stage: Stage
    blocks: list[BlockRenderer] = field(default_factory=list)
    warnings: list[UnknownBlockTypeWarning] = field(default_factory=list)

    def find(self, renderer_type: type[BlockRenderer]) -> list[BlockRenderer]:
        return [block for block in self.blocks if isinstance(block, renderer_type)]


class _StageProgress:
    """
    Per-stage progress gate shared by all blocks of one dispatch.

    A graded answer keeps the session on the stage while other graded blocks
    of the stage are still unanswered; the last one advances.
    """

    def __init__(self, forward: Callable[[ProgressEvent], Any], graded_indices: set[int]):
        self._forward = forward
        self._pending = set(graded_indices)

    def report(self, index: int, event: Optional[ProgressEvent]) -> Any:
        if event is None:
            event = UngradedEvent()
        if isinstance(event, GradedEvent) and index in self._pending:
            self._pending.discard(index)
            if self._pending:
                event = event.model_copy(update={"advance": False})
        return self._forward(event)


class DynamicDispatcher:
    """
    Translate a stage's block list into renderer instances.

    The dispatcher knows nothing about what each block does; it only looks up
    renderers, validates props and wires the hooks.
    """

    def __init__(self, registry: Optional[ComponentRegistry] = None):
        self.registry = registry or DEFAULT_REGISTRY

    def dispatch(
        self,
        stage: Stage,
        on_progress: Callable[[ProgressEvent], Any],
        on_complete: Callable[[], Any],
        stats: Optional[Callable[[], StatsSnapshot]] = None,
        answered: Sequence[BlockAnswer] = (),
    ) -> DispatchResult:
        """
        Resolve and instantiate renderers for every block of a stage.

        Args:
            stage: Stage to render
            on_progress: Receives progress events (typically engine submit)
            on_complete: Session-teardown collaborator
            stats: Returns current stats; overlaid onto victory blocks
            answered: Answers the session already holds for this stage

        Returns:
            DispatchResult with renderers in block order and skipped-block warnings
        """
        result = DispatchResult(stage=stage)
        restored = {answer.index: answer for answer in answered}
        graded = {
            idx for idx, block in enumerate(stage.components)
            if self.registry.is_graded(block.type) and idx not in restored
        }
        gate = _StageProgress(on_progress, graded)

        for index, block in enumerate(stage.components):
            renderer_cls = self.registry.resolve(block.type)
            if renderer_cls is None:
                self._skip(result, index, block, "unknown block type")
                continue

            props = self._overlay(block, stats)
            try:
                validated = renderer_cls.props_model.model_validate(props)
            except ValidationError as e:
                self._skip(result, index, block, f"invalid props ({e.error_count()} error(s))")
                continue

            hooks = BlockHooks(
                progress=lambda event=None, _index=index: gate.report(_index, event),
                complete=on_complete,
            )
            renderer = renderer_cls(validated, hooks, index)
            if index in restored:
                renderer.restore(restored[index])
            result.blocks.append(renderer)

        return result

    def _overlay(self, block: ContentBlock, stats: Optional[Callable[[], StatsSnapshot]]) -> dict[str, Any]:
        if stats is None or block.block_type != BlockType.VICTORY:
            return block.props
        return {**block.props, "stats": stats().to_wire()}

    def _skip(self, result: DispatchResult, index: int, block: ContentBlock, reason: str):
        warning = UnknownBlockTypeWarning(index, block.type, reason)
        logger.warning(f"Stage {result.stage.stage_number}: {warning}")
        result.warnings.append(warning)


def render_stage(result: DispatchResult, include_css: bool = True) -> str:
    """
    Render a dispatched stage as HTML.

    Args:
        result: Output of DynamicDispatcher.dispatch
        include_css: Prepend block CSS

    Returns:
        Stage title followed by each rendered block
    """
    parts = [get_blocks_css()] if include_css else []
    parts.append(f'<h1>{html.escape(result.stage.title)}</h1>')
    for block in result.blocks:
        rendered = block.render()
        if rendered:
            parts.append(rendered)
    return ''.join(parts)
