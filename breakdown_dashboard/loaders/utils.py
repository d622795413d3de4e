"""
Shared utilities for row ingestion: header normalisation, date parsing,
numeric coercion.
"""

import logging
import re
from typing import Any

import pandas as pd

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")
_LEADING_NUMBER = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def normalise_column_name(name: Any) -> str:
    """Lowercase a header and collapse line breaks and whitespace.

    Sheet headers such as "Machine↵Category" arrive with an embedded line
    break (or the literal ↵ glyph); both become a single space.
    """
    s = str(name).replace("↵", " ").replace("\r", " ").replace("\n", " ")
    s = re.sub(r"\s+", " ", s)
    return s.strip().lower()


def looks_like_iso_date(val: Any) -> bool:
    """True for strings starting with YYYY-MM-DD."""
    return isinstance(val, str) and bool(_ISO_DATE.match(val.strip()))


def normalise_date(val: Any) -> pd.Timestamp | None:
    """Convert a date cell to pd.Timestamp.

    Spreadsheet serial numbers use the 1899-12-30 epoch. Strings are parsed
    by pandas; blanks and unparseable values give None.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, pd.Timestamp):
        return None if pd.isna(val) else val
    if isinstance(val, (int, float)):
        if pd.isna(val) or val <= 0:
            return None
        try:
            return pd.Timestamp("1899-12-30") + pd.Timedelta(days=int(val))
        except (ValueError, OverflowError):
            logger.warning("Could not convert serial number %s to date", val)
            return None
    if isinstance(val, str) and not val.strip():
        return None
    try:
        ts = pd.Timestamp(val)
    except (ValueError, TypeError, OverflowError):
        logger.debug("Could not parse date value: %r", val)
        return None
    if pd.isna(ts):
        return None
    return ts


def safe_float(val: Any) -> float | None:
    """Coerce a cell to float, returning None for non-numeric values.

    Reads the leading numeric token, so "45 min" and "12.5%" both parse.
    """
    if val is None or isinstance(val, bool):
        return None
    if isinstance(val, (int, float)):
        return None if pd.isna(val) else float(val)
    s = str(val).strip().replace(",", "")
    if not s or s.startswith("="):
        return None
    match = _LEADING_NUMBER.match(s)
    if match is None:
        return None
    return float(match.group(0))


def parse_number(val: Any) -> float:
    """Duration for accumulation: unparsable, missing or negative -> 0.0."""
    result = safe_float(val)
    if result is None or result < 0:
        return 0.0
    return result


def cell_text(val: Any) -> str:
    """String form of a cell, blank for None/NaN."""
    if val is None:
        return ""
    if isinstance(val, float) and pd.isna(val):
        return ""
    return str(val).strip()
