"""Tests for the OpenAI-compatible AI client."""

from __future__ import annotations

from types import SimpleNamespace
from typing import Any, cast

import httpx
import pytest
from openai import AsyncOpenAI

from queryassist.ai.client import AIClient, ChatReply, ClientSettings


class _FakeCompletions:
    def __init__(self, responses: list[Any]) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _response(content: str | None, *, finish_reason: str = "stop") -> SimpleNamespace:
    message = SimpleNamespace(role="assistant", content=content)
    choice = SimpleNamespace(index=0, message=message, finish_reason=finish_reason)
    return SimpleNamespace(model="gpt-3.5-turbo-0125", choices=[choice])


def _make_client(responses: list[Any], **settings: Any) -> tuple[AIClient, _FakeCompletions]:
    completions = _FakeCompletions(responses)
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    base = {"base_url": "http://local", "api_key": "test", "model": "gpt-3.5-turbo", "retry_min_seconds": 0.0}
    base.update(settings)
    client = AIClient(ClientSettings(**base), client=cast(AsyncOpenAI, fake))
    return client, completions


@pytest.mark.asyncio
async def test_complete_chat_returns_first_choice() -> None:
    client, completions = _make_client([_response("up")])

    reply = await client.complete_chat([{"role": "user", "content": "fix up,"}])

    assert reply == ChatReply(content="up", finish_reason="stop", model="gpt-3.5-turbo-0125")
    assert completions.calls[0]["model"] == "gpt-3.5-turbo"
    assert completions.calls[0]["messages"][0]["content"] == "fix up,"


@pytest.mark.asyncio
async def test_model_override_and_optional_params() -> None:
    client, completions = _make_client([_response("up")])

    await client.complete_chat([{"role": "user", "content": "x"}], model="gpt-4o-mini", temperature=0.1)

    call = completions.calls[0]
    assert call["model"] == "gpt-4o-mini"
    assert call["temperature"] == 0.1
    assert "max_tokens" not in call


@pytest.mark.asyncio
async def test_missing_choices_yield_empty_reply() -> None:
    client, _ = _make_client([SimpleNamespace(model="m", choices=[])])

    reply = await client.complete_chat([{"role": "user", "content": "x"}])

    assert reply.content is None


@pytest.mark.asyncio
async def test_requires_messages() -> None:
    client, _ = _make_client([])

    with pytest.raises(ValueError):
        await client.complete_chat([])


@pytest.mark.asyncio
async def test_retries_transient_timeouts() -> None:
    client, completions = _make_client(
        [httpx.ReadTimeout("slow"), _response("up")],
        max_retries=2,
    )

    reply = await client.complete_chat([{"role": "user", "content": "x"}])

    assert reply.content == "up"
    assert len(completions.calls) == 2


@pytest.mark.asyncio
async def test_non_retryable_errors_propagate() -> None:
    client, completions = _make_client([KeyError("bad")], max_retries=3)

    with pytest.raises(KeyError):
        await client.complete_chat([{"role": "user", "content": "x"}])
    assert len(completions.calls) == 1


@pytest.mark.asyncio
async def test_debug_logging_captures_prompt_payload(monkeypatch: pytest.MonkeyPatch) -> None:
    client, _ = _make_client([_response("up")], debug_logging=True)
    captured: dict[str, Any] = {}
    monkeypatch.setattr(client, "_log_prompt_payload", lambda payload: captured.setdefault("payload", payload))

    await client.complete_chat([{"role": "user", "content": "Hello"}])

    assert captured["payload"]["messages"][0]["content"] == "Hello"


@pytest.mark.asyncio
async def test_aclose_closes_underlying_client() -> None:
    class _StubAsyncOpenAI:
        def __init__(self) -> None:
            self.closed = False

        async def close(self) -> None:
            self.closed = True

    stub = _StubAsyncOpenAI()
    client = AIClient(
        ClientSettings(base_url="http://local", api_key="test", model="m"),
        client=cast(AsyncOpenAI, stub),
    )

    await client.aclose()

    assert stub.closed is True
