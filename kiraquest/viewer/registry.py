"""
ComponentRegistry - Fixed mapping from block type tag to renderer.

The set of tags is closed (BlockType); lookups of any other tag return None
so the caller can skip the block instead of failing.
"""

from typing import Iterable, Optional

from kiraquest.schemas import BlockType

from .blocks import BlockRenderer, BossBattle, ExplainerCard, LevelMap, VictoryScreen


class ComponentRegistry:
    """Resolve block type tags to renderer classes."""

    def __init__(self, renderers: Iterable[type[BlockRenderer]]):
        self._renderers: dict[BlockType, type[BlockRenderer]] = {}
        for renderer in renderers:
            if renderer.block_type in self._renderers:
                raise ValueError(f"Duplicate renderer for block type {renderer.block_type.value!r}")
            self._renderers[renderer.block_type] = renderer

    def resolve(self, tag: str) -> Optional[type[BlockRenderer]]:
        """Renderer for a tag, or None when the tag is unknown."""
        block_type = BlockType.parse(tag)
        if block_type is None:
            return None
        return self._renderers.get(block_type)

    def is_graded(self, tag: str) -> bool:
        renderer = self.resolve(tag)
        return renderer is not None and renderer.graded

    @property
    def types(self) -> list[BlockType]:
        return list(self._renderers)

    def __contains__(self, tag: str) -> bool:
        return self.resolve(tag) is not None


DEFAULT_REGISTRY = ComponentRegistry([
    ExplainerCard,
    BossBattle,
    LevelMap,
    VictoryScreen,
])
