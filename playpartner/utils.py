"""Shared utility functions used across PlayPartner modules."""
from __future__ import annotations

import json
from typing import Any

_MISSING = object()


def json_parse(value: str | None, default: Any = _MISSING) -> Any:
    """Safely parse a JSON string, returning *default* on failure.

    If no default is given, returns ``{}`` on parse error.
    """
    try:
        return json.loads(value or "")
    except (json.JSONDecodeError, TypeError):
        return {} if default is _MISSING else default


def json_list(value: str | None) -> list:
    """Parse a JSON array column; anything that is not a list becomes ``[]``."""
    parsed = json_parse(value, [])
    return parsed if isinstance(parsed, list) else []
