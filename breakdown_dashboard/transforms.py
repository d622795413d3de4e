"""
Data transforms: classify breakdown-log rows and bucket them into
week-of-month fact and summary tables.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any

import pandas as pd

from .columns import ColumnMapping, build_column_mapping
from .config import CATEGORIES, CATEGORY_ALIASES, UNKNOWN_CAUSE, WEEK_LABELS, plant_timezone
from .loaders.utils import cell_text, normalise_date, parse_number

logger = logging.getLogger(__name__)

FACT_COLUMNS = [
    "row_index", "week", "category", "is_breakdown",
    "downtime_min", "uptime_min", "cause",
]


@dataclass
class AggregationDiagnostics:
    """What happened to each input row during one aggregation pass."""

    rows_seen: int = 0
    rows_bucketed: int = 0
    breakdown_rows: int = 0
    service_rows: int = 0
    uncategorised_breakdowns: int = 0
    skipped: Counter = field(default_factory=Counter)

    @property
    def rows_skipped(self) -> int:
        return sum(self.skipped.values())

    def as_dict(self) -> dict:
        return {
            "rows_seen": self.rows_seen,
            "rows_bucketed": self.rows_bucketed,
            "breakdown_rows": self.breakdown_rows,
            "service_rows": self.service_rows,
            "uncategorised_breakdowns": self.uncategorised_breakdowns,
            "rows_skipped": self.rows_skipped,
            "skipped": dict(sorted(self.skipped.items())),
        }


def week_of_month(day: int) -> str | None:
    """Week label for a day of month: 1-7 -> Week 1 ... 29-31 -> Week 5."""
    if not isinstance(day, int) or isinstance(day, bool) or not 1 <= day <= 31:
        return None
    return WEEK_LABELS[min((day - 1) // 7, len(WEEK_LABELS) - 1)]


def week_label_for(value: Any, tz: str | None = None) -> str | None:
    """Week label of a date cell, or None if absent/unparsable.

    Timezone-aware values are converted to ``tz`` (default: the plant
    timezone) before the day of month is read; naive values are used as is.
    """
    ts = normalise_date(value)
    if ts is None:
        return None
    if ts.tzinfo is not None:
        ts = ts.tz_convert(tz or plant_timezone())
    return week_of_month(int(ts.day))


def week_number(label: str) -> int:
    """Numeric suffix of a week label ("Week 3" -> 3)."""
    return int(str(label).replace("Week ", "").strip())


def normalise_category(value: Any) -> str | None:
    """Map a machine-category cell to IMM/SPM/ASSY, or None.

    Uppercases the value and fixes the ASSLY misspelling; values such as
    "IMM-02" still resolve to their family.
    """
    text = cell_text(value).upper()
    if not text:
        return None
    for alias, canonical in CATEGORY_ALIASES.items():
        text = text.replace(alias, canonical)
    for category in CATEGORIES:
        if category in text:
            return category
    return None


def is_breakdown(value: Any) -> bool:
    """True if a breakdown-type cell contains "breakdown" (any case)."""
    return "breakdown" in cell_text(value).lower()


def build_fact_breakdowns(
    rows: list[dict],
    mapping: ColumnMapping | None = None,
) -> tuple[pd.DataFrame, AggregationDiagnostics]:
    """Classify every row once, in input order.

    Rows with no parsable date are excluded from all weekly aggregation and
    counted in the diagnostics instead.

    Parameters
    ----------
    rows : Row dicts from the endpoint.
    mapping : Column mapping. Resolved from ``rows`` when omitted.

    Returns
    -------
    (fact DataFrame, diagnostics). The fact table has columns:
        row_index, week, category, is_breakdown, downtime_min, uptime_min,
        cause
    category is None where unresolved. cause is None for service rows or
    when the log has no cause column, and "" for a blank cause cell.
    """
    if mapping is None:
        mapping = build_column_mapping(rows)

    tz = plant_timezone()
    diagnostics = AggregationDiagnostics(rows_seen=len(rows))
    records = []

    for idx, row in enumerate(rows):
        raw_date = mapping.get(row, "date")
        if cell_text(raw_date) == "":
            diagnostics.skipped["missing_date"] += 1
            continue
        week = week_label_for(raw_date, tz)
        if week is None:
            diagnostics.skipped["unparsable_date"] += 1
            continue

        breakdown = (
            mapping.breakdown_type is not None
            and is_breakdown(mapping.get(row, "breakdown_type"))
        )
        category = normalise_category(mapping.get(row, "category"))

        if breakdown:
            diagnostics.breakdown_rows += 1
            if category is None:
                diagnostics.uncategorised_breakdowns += 1
        else:
            diagnostics.service_rows += 1

        cause = None
        if breakdown and mapping.cause is not None:
            cause = cell_text(mapping.get(row, "cause"))

        records.append({
            "row_index": idx,
            "week": week,
            "category": category,
            "is_breakdown": breakdown,
            "downtime_min": parse_number(mapping.get(row, "downtime")),
            "uptime_min": parse_number(mapping.get(row, "uptime")),
            "cause": cause,
        })

    diagnostics.rows_bucketed = len(records)
    df = pd.DataFrame(records, columns=FACT_COLUMNS)

    if diagnostics.rows_skipped:
        logger.warning(
            "Skipped %d of %d rows: %s",
            diagnostics.rows_skipped, diagnostics.rows_seen, dict(diagnostics.skipped),
        )
    if diagnostics.uncategorised_breakdowns:
        logger.warning(
            "%d breakdown rows have no recognised machine category",
            diagnostics.uncategorised_breakdowns,
        )
    logger.info("Built fact_breakdowns with %d rows", len(df))
    return df, diagnostics


def counted_breakdowns(fact: pd.DataFrame) -> pd.DataFrame:
    """Breakdown rows carrying a recognised category."""
    if fact.empty:
        return fact
    return fact[fact["is_breakdown"] & fact["category"].notna()]


def build_weekly_buckets(fact: pd.DataFrame) -> pd.DataFrame:
    """Per-week breakdown counts and downtime/uptime sums by category.

    Returns
    -------
    DataFrame with one row per week present in ``fact`` (sorted Week 1 ..
    Week 5) and columns:
        week, IMM, SPM, ASSY, IMM_downtime, SPM_downtime, ASSY_downtime,
        IMM_uptime, SPM_uptime, ASSY_uptime
    Weeks with only service entries appear with zero counts.
    """
    columns = (
        ["week"]
        + list(CATEGORIES)
        + [f"{c}_downtime" for c in CATEGORIES]
        + [f"{c}_uptime" for c in CATEGORIES]
    )
    if fact.empty:
        return pd.DataFrame(columns=columns)

    weeks = sorted(fact["week"].unique().tolist(), key=week_number)
    counted = counted_breakdowns(fact)

    grouped = counted.groupby(["week", "category"]).agg(
        count=("row_index", "size"),
        downtime=("downtime_min", "sum"),
        uptime=("uptime_min", "sum"),
    ).to_dict(orient="index")

    rows = []
    for week in weeks:
        record: dict = {"week": week}
        for category in CATEGORIES:
            stats = grouped.get((week, category))
            if stats is not None:
                record[category] = int(stats["count"])
                record[f"{category}_downtime"] = float(stats["downtime"])
                record[f"{category}_uptime"] = float(stats["uptime"])
            else:
                record[category] = 0
                record[f"{category}_downtime"] = 0.0
                record[f"{category}_uptime"] = 0.0
        rows.append(record)

    df = pd.DataFrame(rows, columns=columns)
    logger.info("Built weekly buckets for %d weeks", len(df))
    return df


def build_weekly_cause_counts(fact: pd.DataFrame) -> dict[str, dict]:
    """Per-week cause -> occurrence count, overall and per category.

    Returns
    -------
    {week: {"causes": {...}, "IMM_causes": {...}, "SPM_causes": {...},
            "ASSY_causes": {...}}}
    The overall map counts every breakdown with a cause column, blank causes
    as "Unknown". Category maps count only breakdowns with a recognised
    category and a non-blank cause. Causes keep first-encounter order.
    """
    if fact.empty:
        return {}

    weeks = sorted(fact["week"].unique().tolist(), key=week_number)
    counts = {
        week: {"causes": {}, **{f"{c}_causes": {} for c in CATEGORIES}}
        for week in weeks
    }
    with_cause = fact[fact["is_breakdown"] & fact["cause"].notna()]
    for rec in with_cause.itertuples(index=False):
        bucket = counts[rec.week]
        label = rec.cause or UNKNOWN_CAUSE
        bucket["causes"][label] = bucket["causes"].get(label, 0) + 1
        if rec.cause and pd.notna(rec.category):
            per_category = bucket[f"{rec.category}_causes"]
            per_category[rec.cause] = per_category.get(rec.cause, 0) + 1
    return counts
