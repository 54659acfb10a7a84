from __future__ import annotations

from typing import Any

from bugbridge.domain.enums import Priority

DEFAULT_PRIORITY_NAME = "not set"
FALLBACK_LABEL = "normal"

PRIORITY_LABELS: dict[int, str] = {p.value: p.label for p in Priority}
PRIORITY_BY_NAME: dict[str, Priority] = {p.label: p for p in Priority}


def resolve_priority(name: str | None) -> Priority:
    """Map a free-text priority name to a tracker priority.

    Matching is case-insensitive. Names outside the priority table resolve
    to ``normal``; callers wanting another default for an empty cell pass
    that name instead.
    """
    key = (name or "").strip().lower()
    return PRIORITY_BY_NAME.get(key, Priority.normal)


def _coerce_priority_id(value: Any) -> int | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


def priority_label(priority_id: Any, fallback: Any = None) -> str:
    """Return the label for a numeric priority id.

    Unknown or missing ids fall back to the free-text priority, then ``normal``.
    """
    pid = _coerce_priority_id(priority_id)
    if pid is not None and pid in PRIORITY_LABELS:
        return PRIORITY_LABELS[pid]
    if isinstance(fallback, dict):
        fallback = fallback.get("name")
    if fallback is not None and str(fallback).strip():
        return str(fallback).strip()
    return FALLBACK_LABEL


def needs_priority_update(priority: Priority) -> bool:
    """Whether a created task needs a separate priority update call.

    New tasks already carry the tracker default (normal); ``not set`` is left alone.
    """
    return priority not in (Priority.normal, Priority.not_set)
