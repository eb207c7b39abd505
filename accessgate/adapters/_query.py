"""Filter matching shared by the document store adapters."""

from __future__ import annotations

import copy
from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from accessgate.core.ports.store import Document, Filter

_OPERATORS = {"$gt", "$gte", "$lt", "$lte", "$ne", "$in"}


def encode(value: Any) -> Any:
    """Convert a value to its JSON document form."""
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {k: encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [encode(v) for v in value]
    return value


def _coerce(stored: Any, probe: Any) -> Any:
    if isinstance(probe, datetime) and isinstance(stored, str):
        try:
            return datetime.fromisoformat(stored)
        except ValueError:
            return stored
    return stored


def _probe(value: Any) -> Any:
    if isinstance(value, (UUID, Enum)):
        return encode(value)
    return value


def _match_operator(stored: Any, op: str, probe: Any) -> bool:
    if op == "$ne":
        return _coerce(stored, probe) != probe
    if op == "$in":
        return stored in [encode(p) for p in probe]
    if stored is None:
        return False
    stored = _coerce(stored, probe)
    try:
        if op == "$gt":
            return bool(stored > probe)
        if op == "$gte":
            return bool(stored >= probe)
        if op == "$lt":
            return bool(stored < probe)
        if op == "$lte":
            return bool(stored <= probe)
    except TypeError:
        return False
    raise ValueError(f"Unsupported filter operator: {op}")


def matches(document: Document, filter: Filter) -> bool:
    """Return True if the document satisfies every clause of the filter."""
    for field, expected in filter.items():
        stored = document.get(field)
        if isinstance(expected, dict) and expected and set(expected) <= _OPERATORS:
            for op, probe in expected.items():
                if not _match_operator(stored, op, _probe(probe)):
                    return False
            continue
        probe = _probe(expected)
        if _coerce(stored, probe) != probe:
            return False
    return True


def apply_update(document: Document, update: Document) -> Document:
    """Return a copy of the document with the update fields assigned."""
    updated = copy.deepcopy(document)
    updated.update(encode(update))
    return updated


def seed_from_filter(filter: Filter) -> Document:
    """Equality clauses of a filter become fields of an upserted document."""
    return {
        k: encode(v)
        for k, v in filter.items()
        if not (isinstance(v, dict) and set(v) <= _OPERATORS)
    }


def _sort_key(value: Any) -> tuple[int, Any]:
    if isinstance(value, str):
        try:
            return (0, datetime.fromisoformat(value))
        except ValueError:
            return (1, value)
    if isinstance(value, (int, float)):
        return (2, value)
    return (1, str(value))


def sort_documents(
    documents: list[Document], sort_by: str | None, descending: bool
) -> list[Document]:
    if sort_by is None:
        return documents
    present = [d for d in documents if d.get(sort_by) is not None]
    missing = [d for d in documents if d.get(sort_by) is None]
    present.sort(key=lambda d: _sort_key(d[sort_by]), reverse=descending)
    return present + missing
