"""Shared test helpers and stub collaborators.

Import from here instead of duplicating these classes in individual test files.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Mapping, Sequence

from queryassist.editor.models import Hint


@dataclass
class FakeError:
    message: str | None = None


@dataclass
class FakeData:
    series: list[Any] = field(default_factory=list)
    errors: list[FakeError] = field(default_factory=list)


class StubLanguageProvider:
    """Language provider whose bootstrap can be held open by the test.

    With ``gated=True`` every :meth:`start` call returns a sub-task that waits
    on a gate; release it with :meth:`release`.
    """

    def __init__(
        self,
        *,
        metrics: Sequence[str] | None = None,
        label_keys: Sequence[str] = ("job", "instance"),
        label_values: Mapping[str, Sequence[str]] | None = None,
        gated: bool = False,
        start_error: Exception | None = None,
        initial_hints: Sequence[Hint] = (),
        query_hints: Sequence[Hint] = (),
        suggestions: Sequence[Any] = (),
    ) -> None:
        self._next_metrics = list(metrics) if metrics is not None else None
        self.metrics: list[str] | None = None
        self.label_keys = list(label_keys)
        self.label_values = dict(label_values or {"job": ["node"], "instance": ["localhost:9100"]})
        self.gated = gated
        self.start_error = start_error
        self.initial_hints = list(initial_hints)
        self.query_hints = list(query_hints)
        self.suggestions = list(suggestions)
        self.start_calls = 0
        self.gates: list[asyncio.Event] = []
        self.completion_calls: list[tuple[Mapping[str, Any], Sequence[Any]]] = []
        self.query_hint_calls: list[tuple[str, Sequence[Any]]] = []

    async def start(self) -> Sequence[Awaitable[Any]]:
        self.start_calls += 1
        gate = asyncio.Event()
        self.gates.append(gate)
        if not self.gated:
            gate.set()
        return [self._load_metrics(gate)]

    async def _load_metrics(self, gate: asyncio.Event) -> None:
        await gate.wait()
        if self.start_error is not None:
            raise self.start_error
        self.metrics = list(self._next_metrics) if self._next_metrics is not None else None

    def release(self, index: int = -1) -> None:
        self.gates[index].set()

    def set_metrics(self, metrics: Sequence[str] | None) -> None:
        self._next_metrics = list(metrics) if metrics is not None else None

    async def provide_completion_items(
        self, context: Mapping[str, Any], *, history: Sequence[Any]
    ) -> Mapping[str, Any]:
        self.completion_calls.append((context, history))
        return {"suggestions": list(self.suggestions), "context": context.get("context")}

    def get_initial_hints(self) -> Sequence[Hint]:
        return list(self.initial_hints)

    def get_query_hints(self, query: str, results: Sequence[Any]) -> Sequence[Hint]:
        self.query_hint_calls.append((query, results))
        return list(self.query_hints)


@dataclass
class StubDatasource:
    language_provider: Any = None
    lookups_disabled: bool = False
    modify_calls: list[tuple[str, Any]] = field(default_factory=list)

    def modify_query(self, query: str, action: Any) -> str:
        self.modify_calls.append((query, action))
        if isinstance(action, Mapping) and action.get("type") == "ADD_RATE":
            return f"rate({query}[5m])"
        return query


@dataclass
class RecordingHost:
    changes: list[str] = field(default_factory=list)
    runs: int = 0

    def on_change(self, text: str) -> None:
        self.changes.append(text)

    def on_run_query(self) -> None:
        self.runs += 1


class StubAIClient:
    """AI client stand-in returning a canned reply or raising."""

    def __init__(self, content: str | None = None, *, error: Exception | None = None) -> None:
        self.content = content
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False
        self.gate: asyncio.Event | None = None

    async def complete_chat(self, messages: Sequence[Mapping[str, Any]], **kwargs: Any) -> Any:
        from queryassist.ai.client import ChatReply

        self.calls.append({"messages": list(messages), **kwargs})
        if self.gate is not None:
            await self.gate.wait()
        if self.error is not None:
            raise self.error
        return ChatReply(content=self.content)

    async def aclose(self) -> None:
        self.closed = True
