"""
Column mapping: locate the semantic fields of a breakdown log in headers
whose spelling, case and presence vary between sheets.

Fields and their accepted aliases are declared in config.COLUMN_ALIASES.
A ColumnMapping is resolved once per dataset and then applied to every row.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Iterable

from .config import COLUMN_ALIASES
from .loaders.utils import looks_like_iso_date, normalise_column_name

logger = logging.getLogger(__name__)

FIELDS = tuple(COLUMN_ALIASES)


def _matches(name: str, aliases: dict) -> bool:
    if any(ex in name for ex in aliases["exclude"]):
        return False
    return any(p in name for p in aliases["patterns"])


def resolve_column(column_names: Iterable[Any], field_name: str) -> str | None:
    """Return the first column name matching ``field_name``'s aliases.

    Exact aliases win over substring patterns; otherwise column order
    decides. Returns None when no column matches.
    """
    aliases = COLUMN_ALIASES[field_name]
    names = list(column_names)
    normalised = [normalise_column_name(n) for n in names]

    for name, norm in zip(names, normalised):
        if norm in aliases["exact"]:
            return name
    for name, norm in zip(names, normalised):
        if _matches(norm, aliases):
            return name
    return None


def resolve_field(row: dict, field_name: str) -> str | None:
    """Per-row lookup: the column of ``row`` holding ``field_name``."""
    return resolve_column(row.keys(), field_name)


@dataclass(frozen=True)
class ColumnMapping:
    """Resolved column name for each canonical field (None if absent)."""

    date: str | None = None
    category: str | None = None
    breakdown_type: str | None = None
    downtime: str | None = None
    uptime: str | None = None
    cause: str | None = None
    unmatched: tuple = field(default_factory=tuple)

    def get(self, row: dict, field_name: str) -> Any:
        """Value of ``field_name`` in ``row``, or None if unmapped/absent."""
        column = getattr(self, field_name)
        if column is None:
            return None
        return row.get(column)

    def as_dict(self) -> dict[str, str | None]:
        return {name: getattr(self, name) for name in FIELDS}


def _column_union(rows: Iterable[dict]) -> list:
    seen: dict = {}
    for row in rows:
        for key in row:
            seen.setdefault(key, None)
    return list(seen)


def _sniff_date_column(rows: list[dict], columns: list) -> str | None:
    """First column whose values look like ISO dates."""
    for row in rows:
        for column in columns:
            if looks_like_iso_date(row.get(column)):
                return column
    return None


def build_column_mapping(rows: Iterable[dict]) -> ColumnMapping:
    """Resolve every canonical field once over the dataset's columns.

    Columns are considered in first-seen order across all rows, so a header
    missing from the first row is still found.
    """
    rows = list(rows)
    columns = _column_union(rows)

    resolved = {name: resolve_column(columns, name) for name in FIELDS}
    if resolved["date"] is None:
        resolved["date"] = _sniff_date_column(rows, columns)
        if resolved["date"] is not None:
            logger.info("Date column inferred from values: %r", resolved["date"])

    used = {c for c in resolved.values() if c is not None}
    unmatched = tuple(c for c in columns if c not in used)

    missing = [name for name, column in resolved.items() if column is None]
    if rows and missing:
        logger.warning("No column found for fields: %s", ", ".join(missing))

    return ColumnMapping(unmatched=unmatched, **resolved)
