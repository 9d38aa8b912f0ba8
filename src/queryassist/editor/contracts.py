"""Protocols describing the collaborators the query field controller talks to.

None of these are implemented here: the host application supplies the
language provider, the datasource, and the editor widget bindings.
"""

from __future__ import annotations

from typing import Any, Awaitable, Mapping, Protocol, Sequence, runtime_checkable

from .models import Hint


class QueryError(Protocol):
    message: str | None


class QueryData(Protocol):
    """Result of the most recent query execution."""

    series: Sequence[Any]
    errors: Sequence[QueryError]


@runtime_checkable
class LanguageProvider(Protocol):
    """Catalog bootstrap, completion and hint generation for the query language."""

    metrics: Sequence[str] | None
    label_keys: Sequence[str]
    label_values: Mapping[str, Sequence[str]]

    async def start(self) -> Sequence[Awaitable[Any]]:
        """Begin bootstrapping; return the sub-tasks that must finish first."""
        ...

    async def provide_completion_items(
        self, context: Mapping[str, Any], *, history: Sequence[Any]
    ) -> Mapping[str, Any]:
        """Return ``{"suggestions": [...]}`` groups for the typeahead context."""
        ...

    def get_initial_hints(self) -> Sequence[Hint]:
        ...

    def get_query_hints(self, query: str, results: Sequence[Any]) -> Sequence[Hint]:
        ...


class Datasource(Protocol):
    language_provider: LanguageProvider | None
    lookups_disabled: bool

    def modify_query(self, query: str, action: Any) -> str:
        """Apply a hint fix action and return the rewritten query text."""
        ...


class HostEditor(Protocol):
    """Callbacks the controller invokes on the hosting editor widget."""

    def on_change(self, text: str) -> None:
        ...

    def on_run_query(self) -> None:
        ...
