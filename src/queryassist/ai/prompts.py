"""Prompt text sent to the AI completion service for query repair."""

from __future__ import annotations

from typing import Any

REPAIR_SYSTEM_PROMPT = """
You are an AI code assistant in Grafana for the Prometheus data source. The user calls on you by clicking Get AI Help. Adjust the query to run successfully.

You will receive both the query and the error of the user query.

Your response will be placed directly in the user's query field.

Your response MUST be PromQL only, no text
All PromQL should be correctly formatted and indented. All comments must be prefixed with the `#` character.

e.g.

Request:
```
Query: 
```
node_context_switches_total,_
```
Error:
```
bad_data: 1:28: parse error: unexpected ","
```

# I removed the trailing comma as it was invalid PromQL.
node_context_switches_total
"""


def format_query_and_error(query: str, error: str | None = None) -> str:
    """Render the query (and the error, when there is one) as fenced blocks."""

    error_block = ""
    if error:
        error_block = f"\nError:\n```\n{error}\n```\n    "
    return f"\nRequest:\n```\nQuery: \n```\n{query}\n```{error_block}\n  "


def build_repair_messages(query: str, error: str | None = None) -> list[dict[str, Any]]:
    return [
        {"role": "system", "content": REPAIR_SYSTEM_PROMPT},
        {"role": "assistant", "content": format_query_and_error(query, error)},
    ]


__all__ = ["REPAIR_SYSTEM_PROMPT", "format_query_and_error", "build_repair_messages"]
