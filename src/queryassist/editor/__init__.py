"""Query editor assistance: catalog refresh, typeahead, hints and AI repair."""

from .catalog import CatalogLoader, LoadHandle, LoadOutcome, LoadStatus
from .completion import CompletionEngine, SuggestionsState, TypeaheadInput, TypeaheadOutput, will_apply_suggestion
from .controller import CatalogLoadError, FieldViewState, QueryFieldController, chooser_text
from .events import EventBus
from .hints import HintAdvisory
from .models import AiRepairSession, Catalog, Hint, HintFix, IdentifierKind, RepairStatus, TimeWindow
from .refresh import RefreshEvent, RefreshScheduler, RefreshTrigger, round_ms_to_min
from .repair import RepairBridge, RepairStateError, RepairUnavailableError

__all__ = [
    "AiRepairSession",
    "Catalog",
    "CatalogLoadError",
    "CatalogLoader",
    "CompletionEngine",
    "EventBus",
    "FieldViewState",
    "Hint",
    "HintAdvisory",
    "HintFix",
    "IdentifierKind",
    "LoadHandle",
    "LoadOutcome",
    "LoadStatus",
    "QueryFieldController",
    "RefreshEvent",
    "RefreshScheduler",
    "RefreshTrigger",
    "RepairBridge",
    "RepairStateError",
    "RepairStatus",
    "RepairUnavailableError",
    "SuggestionsState",
    "TimeWindow",
    "TypeaheadInput",
    "TypeaheadOutput",
    "chooser_text",
    "round_ms_to_min",
    "will_apply_suggestion",
]
