"""DM tools: registry, exploration tools and combat tools."""

from __future__ import annotations

from .base import (
    NoArguments,
    ToolDescriptor,
    ToolErrorKind,
    ToolRegistry,
    ToolResult,
    serialize_output,
)
from .combat import END_COMBAT, START_COMBAT, CombatToolContext, create_combat_tools
from .world import WorldToolContext, create_world_tools


__all__ = [
    "NoArguments",
    "ToolDescriptor",
    "ToolErrorKind",
    "ToolRegistry",
    "ToolResult",
    "serialize_output",
    "START_COMBAT",
    "END_COMBAT",
    "CombatToolContext",
    "create_combat_tools",
    "WorldToolContext",
    "create_world_tools",
]
