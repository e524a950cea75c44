"""Tests for the terminal REPL."""

from __future__ import annotations

import builtins
from collections.abc import Iterator

import pytest

from ai_dm.cli import GENERIC_ERROR, main, parse_arguments, run_repl
from ai_dm.core.exceptions import ModelResponseError
from ai_dm.models.messages import CompletionResponse


def _feed(monkeypatch: pytest.MonkeyPatch, lines: list[str]) -> None:
    remaining: Iterator[str] = iter(lines)

    def fake_input(prompt: str = "") -> str:
        try:
            return next(remaining)
        except StopIteration:
            raise EOFError from None

    monkeypatch.setattr(builtins, "input", fake_input)


class TestParseArguments:
    def test_defaults(self) -> None:
        args = parse_arguments([])

        assert not args.stream
        assert not args.show_tools
        assert args.name == "Adventurer"
        assert args.location is None

    def test_flags(self) -> None:
        args = parse_arguments(["--stream", "--name", "Aria", "--log-level", "DEBUG"])

        assert args.stream
        assert args.name == "Aria"
        assert args.log_level == "DEBUG"


class TestRepl:
    """Tests for run_repl."""

    async def test_save_and_load(self, make_orchestrator, monkeypatch, capsys) -> None:
        dm = make_orchestrator(
            [CompletionResponse(content="Welcome."), CompletionResponse(content="You order an ale.")]
        )
        _feed(monkeypatch, ["/save start", "I order an ale.", "/load", "/quit"])

        await run_repl(dm, stream=False)

        out = capsys.readouterr().out
        assert "Welcome." in out
        assert "You order an ale." in out
        assert "Restored snapshot start." in out
        assert [t.role for t in dm.session.conversation_history] == ["system", "dm"]

    async def test_model_failure_is_reported(self, make_orchestrator, monkeypatch, capsys) -> None:
        dm = make_orchestrator([ModelResponseError("bad gateway"), ModelResponseError("bad gateway")])
        _feed(monkeypatch, ["Hello?"])

        await run_repl(dm, stream=False)

        out = capsys.readouterr().out
        assert out.count(GENERIC_ERROR) == 2
        assert "Farewell, adventurer." in out
        assert dm.session.conversation_history[-1].content == "Hello?"

    async def test_unknown_command(self, make_orchestrator, monkeypatch, capsys) -> None:
        dm = make_orchestrator([CompletionResponse(content="Welcome.")])
        _feed(monkeypatch, ["/dance", "/help"])

        await run_repl(dm, stream=False)

        out = capsys.readouterr().out
        assert "Unknown command /dance" in out
        assert "/save [label]" in out


class TestMain:
    def test_missing_api_key(self, monkeypatch, capsys) -> None:
        monkeypatch.delenv("AI_DM_OPENAI_API_KEY", raising=False)
        monkeypatch.setattr("ai_dm.cli.configure_logging", lambda **kwargs: None)

        assert main([]) == 1
        assert "AI_DM_OPENAI_API_KEY" in capsys.readouterr().err

    def test_log_format_from_settings(self, monkeypatch, capsys) -> None:
        monkeypatch.delenv("AI_DM_OPENAI_API_KEY", raising=False)
        monkeypatch.setenv("AI_DM_LOG_JSON", "true")
        calls: list[dict] = []
        monkeypatch.setattr("ai_dm.cli.configure_logging", lambda **kwargs: calls.append(kwargs))

        main(["--log-level", "WARNING"])

        assert calls == [{"level": "WARNING", "json_format": True}]
