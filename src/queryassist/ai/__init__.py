"""AI client and prompt wiring for query repair."""

from .client import AIClient, ChatReply, ClientSettings
from .prompts import REPAIR_SYSTEM_PROMPT, build_repair_messages, format_query_and_error

__all__ = [
    "AIClient",
    "ChatReply",
    "ClientSettings",
    "REPAIR_SYSTEM_PROMPT",
    "build_repair_messages",
    "format_query_and_error",
]
