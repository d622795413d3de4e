"""
KPI computation functions — pure functions with no side effects.

Provides MTTR/MTBF calculation with divide-by-zero guards, display
formatting, weekly metric tables and top-N cause ranking.
"""

import logging

import pandas as pd

from .config import CATEGORIES, TOP_N_CAUSES, UNKNOWN_CAUSE
from .transforms import counted_breakdowns, week_number

logger = logging.getLogger(__name__)


def calc_mean_per_breakdown(total: float, count: int) -> float:
    """Return total / count, or 0.0 when there were no breakdowns."""
    if not count or count <= 0:
        return 0.0
    return float(total) / count


def calc_mttr(downtime_min: float, breakdowns: int) -> float:
    """Mean Time To Repair: downtime minutes per breakdown."""
    return calc_mean_per_breakdown(downtime_min, breakdowns)


def calc_mtbf(uptime_min: float, breakdowns: int) -> float:
    """Mean Time Between Failures: uptime minutes per breakdown."""
    return calc_mean_per_breakdown(uptime_min, breakdowns)


def format_min_per_bd(value: float) -> str:
    """Display label, e.g. 45.0 -> "45.00 min/BD"."""
    return f"{value:.2f} min/BD"


def build_weekly_metrics(weekly: pd.DataFrame) -> pd.DataFrame:
    """Add MTTR/MTBF per category and overall to the weekly buckets.

    Rules
    -----
    - Category MTTR = category downtime / category breakdowns.
    - Category MTBF = category uptime / category breakdowns.
    - Overall figures use sums over IMM, SPM and ASSY with the combined
      breakdown count as denominator.
    - Any zero count gives 0.0, never NaN.

    Parameters
    ----------
    weekly : From transforms.build_weekly_buckets().

    Returns
    -------
    Copy of ``weekly`` sorted by week number, with extra columns:
        total_breakdowns, total_downtime, total_uptime,
        IMM_MTTR, SPM_MTTR, ASSY_MTTR, MTTR,
        IMM_MTBF, SPM_MTBF, ASSY_MTBF, MTBF,
        and a *_formatted string column for each MTTR/MTBF column.
    """
    metric_cols = (
        [f"{c}_MTTR" for c in CATEGORIES] + ["MTTR"]
        + [f"{c}_MTBF" for c in CATEGORIES] + ["MTBF"]
    )
    if weekly.empty:
        extra = ["total_breakdowns", "total_downtime", "total_uptime"] + metric_cols
        extra += [f"{c}_formatted" for c in metric_cols]
        return pd.DataFrame(columns=list(weekly.columns) + extra)

    df = weekly.copy()
    df["total_breakdowns"] = df[list(CATEGORIES)].sum(axis=1).astype(int)
    df["total_downtime"] = df[[f"{c}_downtime" for c in CATEGORIES]].sum(axis=1)
    df["total_uptime"] = df[[f"{c}_uptime" for c in CATEGORIES]].sum(axis=1)

    for category in CATEGORIES:
        df[f"{category}_MTTR"] = [
            calc_mttr(d, n) for d, n in zip(df[f"{category}_downtime"], df[category])
        ]
        df[f"{category}_MTBF"] = [
            calc_mtbf(u, n) for u, n in zip(df[f"{category}_uptime"], df[category])
        ]
    df["MTTR"] = [
        calc_mttr(d, n) for d, n in zip(df["total_downtime"], df["total_breakdowns"])
    ]
    df["MTBF"] = [
        calc_mtbf(u, n) for u, n in zip(df["total_uptime"], df["total_breakdowns"])
    ]

    for col in metric_cols:
        df[f"{col}_formatted"] = df[col].apply(format_min_per_bd)

    df["_order"] = df["week"].map(week_number)
    df = df.sort_values("_order", kind="stable").drop(columns="_order").reset_index(drop=True)

    logger.info("Computed weekly metrics for %d weeks", len(df))
    return df


def rank_top_causes(tallies: pd.Series, n: int = TOP_N_CAUSES) -> list[dict]:
    """Top ``n`` causes, descending by value; ties keep encounter order.

    Parameters
    ----------
    tallies : Series indexed by cause label, in first-encounter order.
    """
    if tallies.empty:
        return []
    ranked = tallies.sort_values(ascending=False, kind="stable").head(n)
    return [{"name": str(name), "value": float(value)} for name, value in ranked.items()]


def plant_cause_downtime(fact: pd.DataFrame) -> pd.Series:
    """Downtime minutes per cause over all breakdown rows with a cause column.

    Blank causes are tallied as "Unknown".
    """
    if fact.empty:
        return pd.Series(dtype=float)
    rows = fact[fact["is_breakdown"] & fact["cause"].notna()]
    causes = rows["cause"].replace("", UNKNOWN_CAUSE)
    return rows["downtime_min"].groupby(causes, sort=False).sum()


def category_cause_counts(fact: pd.DataFrame, category: str) -> pd.Series:
    """Occurrence count per cause for one machine category; blanks skipped."""
    counted = counted_breakdowns(fact)
    if counted.empty:
        return pd.Series(dtype=float)
    rows = counted[
        (counted["category"] == category)
        & counted["cause"].notna()
        & (counted["cause"] != "")
    ]
    return rows.groupby("cause", sort=False).size()
