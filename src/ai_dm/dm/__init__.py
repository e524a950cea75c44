"""Dungeon Master module for the AI Dungeon Master.

This module provides the tool-calling core:
- Context assembly for every model call
- The bounded tool-calling loop
- Session turn management and snapshots
- Streaming replies

The model decides WHAT to do; Python tools do it. Dice are rolled with the
d20 library and world facts come from the world state, never from the model.
"""

from __future__ import annotations

from .context import build_messages
from .events import EventDispatcher, SessionEvents
from .llm import LLMClient, OpenAIChatClient, create_client_from_settings
from .loop import LoopResult, LoopState, ToolCallingLoop, parse_arguments
from .orchestrator import DMOrchestrator
from .streaming import TurnStream
from .tools import ToolDescriptor, ToolErrorKind, ToolRegistry, ToolResult

__all__ = [
    "DMOrchestrator",
    "build_messages",
    "SessionEvents",
    "EventDispatcher",
    "LLMClient",
    "OpenAIChatClient",
    "create_client_from_settings",
    "ToolCallingLoop",
    "LoopResult",
    "LoopState",
    "parse_arguments",
    "TurnStream",
    "ToolDescriptor",
    "ToolErrorKind",
    "ToolRegistry",
    "ToolResult",
]
