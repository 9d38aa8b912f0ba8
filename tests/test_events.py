"""Tests for the controller event bus."""

from __future__ import annotations

import gc
import logging

import pytest

from queryassist.editor.events import CatalogReady, EventBus, HintChanged, QueryChanged


class _Listener:
    def __init__(self) -> None:
        self.received: list[object] = []

    def on_query(self, event: QueryChanged) -> None:
        self.received.append(event)


def test_publish_delivers_to_matching_subscribers_only() -> None:
    bus = EventBus()
    queries: list[QueryChanged] = []
    hints: list[HintChanged] = []
    bus.subscribe(QueryChanged, queries.append)
    bus.subscribe(HintChanged, hints.append)

    bus.publish(QueryChanged(text="up"))

    assert [event.text for event in queries] == ["up"]
    assert hints == []


def test_unsubscribe_removes_handler() -> None:
    bus = EventBus()
    listener = _Listener()
    bus.subscribe(QueryChanged, listener.on_query)

    bus.unsubscribe(QueryChanged, listener.on_query)
    bus.publish(QueryChanged(text="up"))

    assert listener.received == []
    assert bus.handler_count(QueryChanged) == 0


def test_bound_methods_are_weakly_held() -> None:
    bus = EventBus()
    listener = _Listener()
    bus.subscribe(QueryChanged, listener.on_query)

    del listener
    gc.collect()
    bus.publish(QueryChanged(text="up"))

    assert bus.handler_count(QueryChanged) == 0


def test_failing_handler_does_not_block_others(caplog: pytest.LogCaptureFixture) -> None:
    bus = EventBus()
    received: list[CatalogReady] = []

    def _explode(event: CatalogReady) -> None:
        raise RuntimeError("render failed")

    bus.subscribe(CatalogReady, _explode)
    bus.subscribe(CatalogReady, received.append)

    with caplog.at_level(logging.ERROR, logger="queryassist.editor.events"):
        bus.publish(CatalogReady(generation=1, has_metrics=True))

    assert len(received) == 1
    assert "render failed" in caplog.text


def test_clear_and_handler_count() -> None:
    bus = EventBus()
    bus.subscribe(QueryChanged, lambda event: None)
    bus.subscribe(HintChanged, lambda event: None)

    assert bus.handler_count() == 2
    bus.clear()
    assert bus.handler_count() == 0


def test_unsubscribe_during_dispatch_keeps_live_handlers() -> None:
    bus = EventBus()
    received: list[QueryChanged] = []

    def _once(event: QueryChanged) -> None:
        bus.unsubscribe(QueryChanged, _once)

    listener = _Listener()
    bus.subscribe(QueryChanged, _once)
    bus.subscribe(QueryChanged, listener.on_query)
    bus.subscribe(QueryChanged, received.append)
    del listener
    gc.collect()

    bus.publish(QueryChanged(text="up"))
    bus.publish(QueryChanged(text="rate(up[5m])"))

    assert [event.text for event in received] == ["up", "rate(up[5m])"]
    assert bus.handler_count(QueryChanged) == 1
