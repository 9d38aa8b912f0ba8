"""Shared pytest fixtures."""

from __future__ import annotations

import pytest

from tests.helpers import RecordingHost, StubDatasource, StubLanguageProvider


@pytest.fixture
def provider() -> StubLanguageProvider:
    return StubLanguageProvider(metrics=["up", "node_cpu_seconds_total"])


@pytest.fixture
def datasource(provider: StubLanguageProvider) -> StubDatasource:
    return StubDatasource(language_provider=provider)


@pytest.fixture
def host() -> RecordingHost:
    return RecordingHost()
