"""Configuration and persistence services."""

from .label_store import LAST_USED_LABELS_KEY, LabelHistoryStore
from .settings import AssistOptions, SecretVault, Settings, SettingsStore

__all__ = [
    "AssistOptions",
    "LAST_USED_LABELS_KEY",
    "LabelHistoryStore",
    "SecretVault",
    "Settings",
    "SettingsStore",
]
