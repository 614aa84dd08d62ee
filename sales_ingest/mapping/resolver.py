from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any

"""Field resolver: pick a raw value out of a heterogeneous row by alias."""

__all__ = [
    "MISSING",
    "resolve",
    "resolve_fields",
]


class _Missing:
    """Sentinel for "no column matched" (distinct from a present None cell)."""

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def resolve(row: Mapping[str, Any] | None, aliases: Iterable[str]) -> Any:
    """Return the value of the first column whose name matches an alias.

    Columns are scanned in the row's own order; names are compared trimmed
    and case-insensitively. Returns MISSING when no column matches or the row
    is None. Never raises for absent columns.
    """
    if not row:
        return MISSING
    wanted = {a.strip().lower() for a in aliases}
    for key, value in row.items():
        if str(key).strip().lower() in wanted:
            return value
    return MISSING


def resolve_fields(
    row: Mapping[str, Any], alias_table: Mapping[str, Iterable[str]]
) -> dict[str, Any]:
    """Resolve every logical field of ``alias_table`` against one row."""
    return {name: resolve(row, aliases) for name, aliases in alias_table.items()}
