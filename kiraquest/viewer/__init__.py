"""
KiraQuest Viewer - Rendering components for lesson stages.

This module provides:
- Block renderers (explainer, boss battle, level map, victory)
- ComponentRegistry: block type tag -> renderer
- DynamicDispatcher: stage -> renderers with session hooks
"""

from .blocks import (
    get_blocks_css,
    render_markdown,
    BlockHooks,
    BlockRenderer,
    ExplainerCard,
    BossBattle,
    LevelMap,
    VictoryScreen,
)

from .registry import (
    ComponentRegistry,
    DEFAULT_REGISTRY,
)

from .dispatcher import (
    DispatchResult,
    DynamicDispatcher,
    render_stage,
)

__all__ = [
    # Blocks
    "get_blocks_css",
    "render_markdown",
    "BlockHooks",
    "BlockRenderer",
    "ExplainerCard",
    "BossBattle",
    "LevelMap",
    "VictoryScreen",
    # Registry
    "ComponentRegistry",
    "DEFAULT_REGISTRY",
    # Dispatcher
    "DispatchResult",
    "DynamicDispatcher",
    "render_stage",
]
