"""AI Dungeon Master - tool-calling game master for tabletop RPGs.

ARCHITECTURE:
- Python owns TRUTH (world state, combat tracking, dice rolls via d20)
- The model handles INTERFACE (narration, deciding which tools to call)
- The model NEVER mutates state or invents dice results directly

Example:
    >>> from ai_dm import DMOrchestrator, create_client_from_settings
    >>> from ai_dm.samples import DEFAULT_PERSONA, SAMPLE_STARTING_LOCATION, create_sample_world
    >>>
    >>> dm = DMOrchestrator(
    ...     create_client_from_settings(),
    ...     create_sample_world(),
    ...     DEFAULT_PERSONA,
    ...     starting_location_id=SAMPLE_STARTING_LOCATION,
    ... )
    >>> print(await dm.get_initial_description())

Modules:
    core: Configuration, logging, and base exceptions.
    models: Pydantic V2 schemas for world, session, persona and messages.
    engine: Dice and combat tracking.
    dm: Context builder, tool registry, tool-calling loop and orchestrator.
    cli: Terminal REPL.
"""

from __future__ import annotations

# Core
from ai_dm.core.config import Settings, get_settings
from ai_dm.core.exceptions import AIDMError, ModelCallError
from ai_dm.core.logging import configure_logging, get_logger

# DM
from ai_dm.dm import (
    DMOrchestrator,
    OpenAIChatClient,
    SessionEvents,
    ToolDescriptor,
    ToolRegistry,
    TurnStream,
    create_client_from_settings,
)

# Models
from ai_dm.models import DMPersona, GameSession, GameSnapshot, WorldState


__version__ = "0.1.0"
__all__ = [
    # Version info
    "__version__",
    # Core
    "AIDMError",
    "ModelCallError",
    "Settings",
    "get_settings",
    "configure_logging",
    "get_logger",
    # DM
    "DMOrchestrator",
    "OpenAIChatClient",
    "SessionEvents",
    "ToolDescriptor",
    "ToolRegistry",
    "TurnStream",
    "create_client_from_settings",
    # Models
    "DMPersona",
    "GameSession",
    "GameSnapshot",
    "WorldState",
]
