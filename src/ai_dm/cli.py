"""Terminal REPL for the AI Dungeon Master.

Usage:
    ai-dm                      # play in the sample tavern
    ai-dm --stream             # stream replies as they are generated
    ai-dm --show-tools         # print every tool call the DM makes

Type ``/help`` in the REPL for commands.
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import Any

from ai_dm import __version__
from ai_dm.core.config import get_settings
from ai_dm.core.exceptions import AIDMError, ModelCallError
from ai_dm.core.logging import configure_logging, get_logger
from ai_dm.dm.events import SessionEvents
from ai_dm.dm.llm import create_client_from_settings
from ai_dm.dm.orchestrator import DMOrchestrator
from ai_dm.models.combat import CombatState
from ai_dm.models.session import GameSnapshot, PlayerCharacter
from ai_dm.samples import DEFAULT_PERSONA, SAMPLE_STARTING_LOCATION, create_sample_world


logger = get_logger(__name__)

GENERIC_ERROR = "The DM seems distracted. Try again in a moment."

HELP_TEXT = """Commands:
  /help            Show this help
  /status          Show the combat status
  /save [label]    Take a snapshot of the session
  /load            Return to the most recent snapshot
  /quit            Leave the table
Anything else is said or done by your character."""


class ConsoleEvents(SessionEvents):
    """Print tool and combat activity to stderr."""

    def __init__(self, show_tools: bool) -> None:
        self.show_tools = show_tools

    def tool_called(self, name: str, arguments: dict[str, Any], result: str) -> None:
        if self.show_tools:
            print(f"  [{name}] {arguments}", file=sys.stderr)

    def combat_started(self, state: CombatState) -> None:
        print("  [combat begins]", file=sys.stderr)

    def combat_ended(self) -> None:
        print("  [combat ends]", file=sys.stderr)


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="ai-dm",
        description="AI Dungeon Master - tabletop adventures in your terminal",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--stream",
        action="store_true",
        help="Stream replies (no tool calls are made while streaming)",
    )
    parser.add_argument(
        "--show-tools",
        action="store_true",
        help="Print every tool call the DM makes",
    )
    parser.add_argument(
        "--name",
        default="Adventurer",
        help="Your character's name (default: Adventurer)",
    )
    parser.add_argument(
        "--location",
        default=None,
        help="Starting location id (default: the sample tavern)",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: from settings)",
    )
    return parser.parse_args(argv)


async def _reply(dm: DMOrchestrator, text: str, *, stream: bool) -> None:
    if not stream:
        print(await dm.process_input(text))
        return
    async with dm.stream_input(text) as turn_stream:
        async for fragment in turn_stream:
            print(fragment, end="", flush=True)
    print()


async def run_repl(dm: DMOrchestrator, *, stream: bool) -> None:
    """Read player input until /quit or end of input."""
    snapshots: list[GameSnapshot] = []

    try:
        print(await dm.get_initial_description())
    except ModelCallError:
        print(GENERIC_ERROR)

    while True:
        try:
            line = await asyncio.to_thread(input, "\n> ")
        except EOFError:
            break
        text = line.strip()
        if not text:
            continue

        if text.startswith("/"):
            command, _, argument = text[1:].partition(" ")
            if command in ("quit", "exit", "q"):
                break
            if command == "help":
                print(HELP_TEXT)
            elif command == "status":
                print(dm.combat_manager.summary())
            elif command == "save":
                snapshots.append(dm.create_snapshot(label=argument or None))
                print(f"Snapshot saved ({len(dm.session.conversation_history)} turns).")
            elif command == "load":
                if not snapshots:
                    print("No snapshot to return to.")
                else:
                    dm.restore_from_snapshot(snapshots[-1])
                    print(f"Restored snapshot {snapshots[-1].label or snapshots[-1].id}.")
            else:
                print(f"Unknown command /{command}. Type /help.")
            continue

        try:
            await _reply(dm, text, stream=stream)
        except ModelCallError:
            # The session stays resumable; the player can simply try again.
            print(GENERIC_ERROR)

    print("Farewell, adventurer.")


def main(argv: list[str] | None = None) -> int:
    """Console entry point."""
    args = parse_arguments(argv)
    settings = get_settings()
    configure_logging(level=args.log_level or settings.log_level, json_format=settings.log_json)

    world = create_sample_world()
    starting_location = args.location or settings.game.starting_location_id or SAMPLE_STARTING_LOCATION

    try:
        dm = DMOrchestrator(
            create_client_from_settings(),
            world,
            DEFAULT_PERSONA,
            starting_location_id=starting_location,
            events=ConsoleEvents(args.show_tools),
            player_characters=[PlayerCharacter(id="player_1", name=args.name)],
        )
    except AIDMError as exc:
        logger.error("Cannot start session", error=exc.message)
        print(f"Error: {exc.message}", file=sys.stderr)
        return 1

    try:
        asyncio.run(run_repl(dm, stream=args.stream))
    except KeyboardInterrupt:
        print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
