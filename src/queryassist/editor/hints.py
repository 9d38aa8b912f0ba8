"""Selection of the single hint shown beneath the query field."""

from __future__ import annotations

from typing import Any, Sequence

from .contracts import LanguageProvider, QueryData
from .models import Hint


class HintAdvisory:
    """Picks at most one hint for the current query and results.

    Results-derived hints win over the provider's initial hint; the initial
    hint is the fallback when there are no results or no derived hints.
    """

    def __init__(self) -> None:
        self._last_series: Sequence[Any] | None = None
        self._seen = False

    def compute_hint(
        self,
        provider: LanguageProvider | None,
        query: str,
        data: QueryData | None,
    ) -> Hint | None:
        if provider is None:
            return None
        initial_hints = provider.get_initial_hints() or ()
        initial_hint = initial_hints[0] if initial_hints else None

        series = list(data.series or ()) if data is not None else []
        if not series:
            return initial_hint

        query_hints = provider.get_query_hints(query, series) or ()
        if query_hints:
            return query_hints[0]
        return initial_hint

    def series_changed(self, data: QueryData | None) -> bool:
        """Record ``data.series`` and report whether its identity changed."""

        series = data.series if data is not None else None
        changed = not self._seen or series is not self._last_series
        self._seen = True
        self._last_series = series
        return changed

__all__ = ["HintAdvisory"]
