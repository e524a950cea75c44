"""Session event observers.

SessionEvents is a no-op observer; subclass it and override what you
need. The orchestrator never calls an observer directly but goes through
EventDispatcher, which logs and swallows anything an observer raises so
that a broken UI hook can never abort an exchange.
"""

from __future__ import annotations

from typing import Any, Literal

from ai_dm.core.logging import get_logger
from ai_dm.models.combat import CombatState
from ai_dm.models.session import DMTurn, PlayerTurn, SystemTurn


logger = get_logger(__name__)

TurnOwner = Literal["player", "dm"]


class SessionEvents:
    """Best-effort observer of one session. Every method is a no-op."""

    def turn_started(self, owner: TurnOwner) -> None:
        pass

    def turn_ended(self, turn: SystemTurn | PlayerTurn | DMTurn) -> None:
        pass

    def tool_called(self, name: str, arguments: dict[str, Any], result: str) -> None:
        """A tool ran; ``result`` is the output or error text sent to the model."""

    def stream_chunk(self, chunk: str) -> None:
        pass

    def combat_started(self, state: CombatState) -> None:
        pass

    def combat_ended(self) -> None:
        pass

    def error(self, error: Exception) -> None:
        pass


class EventDispatcher:
    """Invoke a SessionEvents observer, containing its failures."""

    def __init__(self, observer: SessionEvents | None = None) -> None:
        self.observer = observer or SessionEvents()

    def _emit(self, method: str, *args: Any) -> None:
        try:
            getattr(self.observer, method)(*args)
        except Exception:
            logger.exception("Session event observer failed", callback=method)

    def turn_started(self, owner: TurnOwner) -> None:
        self._emit("turn_started", owner)

    def turn_ended(self, turn: SystemTurn | PlayerTurn | DMTurn) -> None:
        self._emit("turn_ended", turn)

    def tool_called(self, name: str, arguments: dict[str, Any], result: str) -> None:
        self._emit("tool_called", name, arguments, result)

    def stream_chunk(self, chunk: str) -> None:
        self._emit("stream_chunk", chunk)

    def combat_started(self, state: CombatState) -> None:
        self._emit("combat_started", state)

    def combat_ended(self) -> None:
        self._emit("combat_ended")

    def error(self, error: Exception) -> None:
        self._emit("error", error)


__all__ = ["TurnOwner", "SessionEvents", "EventDispatcher"]
