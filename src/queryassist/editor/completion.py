"""Typeahead completion: delegate to the language provider, then tune insertions."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Sequence

from .contracts import LanguageProvider

LOGGER = logging.getLogger(__name__)

LABELS_CONTEXT = "context-labels"
LABEL_VALUES_CONTEXT = "context-label-values"
_TYPED_QUOTE = re.compile(r'^(!?=~?"|")')


@dataclass(slots=True, frozen=True)
class TypeaheadInput:
    """Cursor state reported by the editor when suggestions are requested."""

    prefix: str
    text: str
    value: Any = None
    wrapper_classes: Sequence[str] = ()
    label_key: str | None = None

    def as_context(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "value": self.value,
            "prefix": self.prefix,
            "wrapper_classes": list(self.wrapper_classes),
            "label_key": self.label_key,
        }


@dataclass(slots=True)
class TypeaheadOutput:
    """Suggestion groups returned for one typeahead request.

    Iterating yields the individual suggestion items of every group; each
    iteration starts over from the first group.
    """

    suggestions: Sequence[Any] = ()
    context: str | None = None
    generation: int = 0
    stale: bool = False

    def __iter__(self) -> Iterator[Any]:
        for group in self.suggestions:
            items = _group_items(group)
            if items is None:
                yield group
            else:
                yield from items

    def __bool__(self) -> bool:
        return any(True for _ in self)


@dataclass(slots=True, frozen=True)
class SuggestionsState:
    """Editor state at the moment a suggestion is accepted."""

    typeahead_context: str | None = None
    typeahead_text: str = ""
    next_char: str | None = None

    @classmethod
    def at_cursor(
        cls,
        text: str,
        offset: int,
        *,
        typeahead_context: str | None = None,
        typeahead_text: str = "",
    ) -> "SuggestionsState":
        """Capture the state for a suggestion inserted at ``offset`` in ``text``."""

        return cls(
            typeahead_context=typeahead_context,
            typeahead_text=typeahead_text,
            next_char=_next_character(text, offset),
        )


@dataclass(slots=True)
class CompletionEngine:
    """Routes typeahead requests to the language provider."""

    history: Sequence[Any] = field(default_factory=list)

    async def complete(
        self,
        provider: LanguageProvider | None,
        typeahead: TypeaheadInput,
        *,
        history: Sequence[Any] | None = None,
    ) -> TypeaheadOutput:
        if provider is None:
            return TypeaheadOutput()
        result = await provider.provide_completion_items(
            typeahead.as_context(),
            history=list(self.history if history is None else history),
        )
        return _to_output(result)

    def will_apply_suggestion(self, suggestion: str, state: SuggestionsState) -> str:
        return will_apply_suggestion(suggestion, state)


def will_apply_suggestion(suggestion: str, state: SuggestionsState) -> str:
    """Adjust ``suggestion`` for the syntactic position it is inserted at."""

    if state.typeahead_context == LABELS_CONTEXT:
        # Label name: pre-empt the "=" the user would type next.
        if not state.next_char or state.next_char in ("}", ","):
            suggestion += "="
    elif state.typeahead_context == LABEL_VALUES_CONTEXT:
        if not _TYPED_QUOTE.match(state.typeahead_text or ""):
            suggestion = f'"{suggestion}'
        if state.next_char != '"':
            suggestion = f'{suggestion}"'
    return suggestion


def _next_character(text: str, offset: int) -> str | None:
    """Return the character right after the cursor, if any."""

    if 0 <= offset < len(text):
        return text[offset]
    return None


def _to_output(result: Mapping[str, Any] | Any) -> TypeaheadOutput:
    if isinstance(result, TypeaheadOutput):
        return result
    if isinstance(result, Mapping):
        return TypeaheadOutput(
            suggestions=list(result.get("suggestions") or ()),
            context=result.get("context"),
        )
    LOGGER.debug("Language provider returned unexpected completion payload %r", type(result))
    return TypeaheadOutput(
        suggestions=list(getattr(result, "suggestions", None) or ()),
        context=getattr(result, "context", None),
    )


def _group_items(group: Any) -> Sequence[Any] | None:
    if isinstance(group, Mapping):
        items = group.get("items")
    else:
        items = getattr(group, "items", None)
        if callable(items):
            return None
    return items if isinstance(items, (list, tuple)) else None


__all__ = [
    "CompletionEngine",
    "LABELS_CONTEXT",
    "LABEL_VALUES_CONTEXT",
    "SuggestionsState",
    "TypeaheadInput",
    "TypeaheadOutput",
    "will_apply_suggestion",
]
