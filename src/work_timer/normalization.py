"""Utilities to normalize task names and descriptions."""

from __future__ import annotations

import re
from typing import Optional

_WHITESPACE_PATTERN = re.compile(r"\s+")


def normalize_task_name(value: Optional[str]) -> str:
    """Trim and collapse whitespace; task names may not be empty."""
    normalized = _WHITESPACE_PATTERN.sub(" ", value or "").strip()
    if not normalized:
        raise ValueError("Task name cannot be empty")
    return normalized


def normalize_description(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    normalized = value.strip()
    return normalized or None
