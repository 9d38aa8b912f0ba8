"""Tests for hint selection."""

from __future__ import annotations

from queryassist.editor.hints import HintAdvisory
from queryassist.editor.models import Hint, HintFix
from tests.helpers import FakeData, StubLanguageProvider

INITIAL = Hint(label="Start by selecting a metric")
RATE = Hint(label="Counter metric without rate()", fix=HintFix(label="Add rate", action={"type": "ADD_RATE"}))


def test_no_series_returns_first_initial_hint() -> None:
    provider = StubLanguageProvider(initial_hints=[INITIAL, Hint(label="second")], query_hints=[RATE])

    hint = HintAdvisory().compute_hint(provider, "up", FakeData(series=[]))

    assert hint == INITIAL
    assert provider.query_hint_calls == []


def test_no_data_and_no_initial_hints_returns_none() -> None:
    provider = StubLanguageProvider()

    assert HintAdvisory().compute_hint(provider, "", None) is None


def test_result_hint_wins_over_initial_hint() -> None:
    provider = StubLanguageProvider(initial_hints=[INITIAL], query_hints=[RATE, Hint(label="other")])
    series = [{"metric": "node_cpu_seconds_total"}]

    hint = HintAdvisory().compute_hint(provider, "node_cpu_seconds_total", FakeData(series=series))

    assert hint == RATE
    assert provider.query_hint_calls == [("node_cpu_seconds_total", series)]


def test_falls_back_to_initial_hint_without_result_hints() -> None:
    provider = StubLanguageProvider(initial_hints=[INITIAL])

    hint = HintAdvisory().compute_hint(provider, "up", FakeData(series=[{"metric": "up"}]))

    assert hint == INITIAL


def test_missing_provider_yields_no_hint() -> None:
    assert HintAdvisory().compute_hint(None, "up", FakeData(series=[1])) is None


def test_series_changed_tracks_identity() -> None:
    advisory = HintAdvisory()
    series = [{"metric": "up"}]
    data = FakeData(series=series)

    assert advisory.series_changed(data) is True
    assert advisory.series_changed(FakeData(series=series)) is False
    assert advisory.series_changed(FakeData(series=list(series))) is True
