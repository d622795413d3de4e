"""
Dashboard-ready output functions.

get_dashboard_payload() is the primary entry point for the Streamlit page
and the CLI. It returns plain dicts and lists suitable for rendering bar,
line and pie charts, so the same rows always give an equal payload.
"""

import logging
import math

import pandas as pd

from .columns import build_column_mapping
from .config import (
    BAR_AXIS_FLOOR,
    BAR_AXIS_STEP,
    CATEGORIES,
    MTTR_AXIS_FLOOR,
    MTTR_AXIS_STEP,
    PLANT_NAME,
    TOP_N_CAUSES,
)
from .kpis import (
    build_weekly_metrics,
    category_cause_counts,
    plant_cause_downtime,
    rank_top_causes,
)
from .transforms import (
    build_fact_breakdowns,
    build_weekly_buckets,
    build_weekly_cause_counts,
)

logger = logging.getLogger(__name__)


def _round_up(value: float, step: int, floor: int) -> int:
    return int(math.ceil(max(value, floor) / step) * step)


def bar_axis_max(totals) -> int:
    """Smallest multiple of 5 covering the largest weekly total, at least 10."""
    return _round_up(max(totals, default=0), BAR_AXIS_STEP, BAR_AXIS_FLOOR)


def mttr_axis_max(values) -> int:
    """Smallest multiple of 10 covering the largest MTTR, at least 10."""
    return _round_up(max(values, default=0), MTTR_AXIS_STEP, MTTR_AXIS_FLOOR)


def build_bar_series(metrics: pd.DataFrame) -> list[dict]:
    """Breakdown-count bar series: overall (with sub-values) then per category."""
    overall = {
        "title": f"Overall {PLANT_NAME} B/D",
        "key": "overall-bd",
        "is_overall": True,
        "data": [
            {
                "name": row["week"],
                "value": int(row["total_breakdowns"]),
                **{c: int(row[c]) for c in CATEGORIES},
            }
            for _, row in metrics.iterrows()
        ],
    }
    series = [overall]
    for category in CATEGORIES:
        series.append({
            "title": f"{category} B/D",
            "key": f"{category.lower()}-bd",
            "is_overall": False,
            "data": [
                {"name": row["week"], "value": int(row[category])}
                for _, row in metrics.iterrows()
            ],
        })
    return series


def _line_series(metrics: pd.DataFrame, column: str, title: str, key: str) -> dict:
    return {
        "title": title,
        "key": key,
        "data": [
            {
                "name": row["week"],
                "value": float(row[column]),
                "formattedValue": row[f"{column}_formatted"],
            }
            for _, row in metrics.iterrows()
        ],
    }


def build_mttr_series(metrics: pd.DataFrame) -> list[dict]:
    """MTTR line series: overall then per category."""
    series = [_line_series(metrics, "MTTR", "Overall MTTR", "overall-mttr")]
    for category in CATEGORIES:
        series.append(_line_series(
            metrics, f"{category}_MTTR", f"{category} MTTR", f"{category.lower()}-mttr",
        ))
    return series


def build_mtbf_series(metrics: pd.DataFrame) -> dict:
    """Overall MTBF trend line."""
    return _line_series(metrics, "MTBF", "MTBF Trend", "mtbf-trend")


def build_pie_series(fact: pd.DataFrame, n: int = TOP_N_CAUSES) -> list[dict]:
    """Top-n cause pies.

    The plant pie ranks causes by accumulated downtime minutes; the
    category pies rank by number of occurrences.
    """
    series = [{
        "title": f"{PLANT_NAME} Top {n} B/D",
        "key": "plant-top",
        "metric": "downtime_min",
        "data": rank_top_causes(plant_cause_downtime(fact), n),
    }]
    for category in CATEGORIES:
        series.append({
            "title": f"{category} Top {n} B/D",
            "key": f"{category.lower()}-top",
            "metric": "occurrences",
            "data": rank_top_causes(category_cause_counts(fact, category), n),
        })
    return series


def _weekly_records(metrics: pd.DataFrame, causes: dict[str, dict]) -> list[dict]:
    records = []
    for row in metrics.to_dict(orient="records"):
        record = {
            k: (int(v) if k in CATEGORIES or k == "total_breakdowns" else v)
            for k, v in row.items()
        }
        record.update(causes.get(record["week"], {}))
        records.append(record)
    return records


def get_dashboard_payload(rows: list[dict]) -> dict:
    """Single entry point the front ends call to populate charts.

    Parameters
    ----------
    rows : Row dicts as returned by loaders.fetch_rows().

    Returns
    -------
    Dict with structure:
    {
        "bar_charts": [...],        # overall + IMM/SPM/ASSY breakdown counts
        "line_charts": [...],       # overall + IMM/SPM/ASSY MTTR
        "mtbf_chart": {...},        # overall MTBF trend
        "pie_charts": [...],        # plant + IMM/SPM/ASSY top-3 causes
        "y_axis_max": 10,           # bar-chart scale
        "mttr_y_axis_max": 10,      # MTTR line-chart scale
        "weekly": [...],            # one record per week: every metric plus
                                    # cause -> count maps (causes, IMM_causes, ...)
        "columns": {...},           # resolved column per canonical field
        "diagnostics": {...},       # skipped-row counts and reasons
        "row_count": 0,
        "is_empty": True,           # nothing could be bucketed into a week
    }
    """
    mapping = build_column_mapping(rows)
    fact, diagnostics = build_fact_breakdowns(rows, mapping)
    weekly = build_weekly_buckets(fact)
    metrics = build_weekly_metrics(weekly)

    if metrics.empty:
        logger.warning("No rows could be assigned to a week (%d rows received)", len(rows))
        totals: list = []
        mttrs: list = []
    else:
        totals = metrics["total_breakdowns"].tolist()
        mttrs = metrics[[f"{c}_MTTR" for c in CATEGORIES] + ["MTTR"]].max(axis=1).tolist()

    payload = {
        "bar_charts": build_bar_series(metrics),
        "line_charts": build_mttr_series(metrics),
        "mtbf_chart": build_mtbf_series(metrics),
        "pie_charts": build_pie_series(fact),
        "y_axis_max": bar_axis_max(totals),
        "mttr_y_axis_max": mttr_axis_max(mttrs),
        "weekly": _weekly_records(metrics, build_weekly_cause_counts(fact)),
        "columns": mapping.as_dict(),
        "diagnostics": diagnostics.as_dict(),
        "row_count": len(rows),
        "is_empty": metrics.empty,
    }
    return payload


def connection_status(loaded: bool, error: str | None = None, demo: bool = False) -> str:
    """Status-bar label: Loading until a fetch returns, then Demo/Error/Connected."""
    if not loaded:
        return "Loading"
    if demo:
        return "Demo"
    return "Error" if error else "Connected"


def format_last_updated(timestamp: float | None, now: float) -> str:
    """Relative "last updated" label for the status bar."""
    if not timestamp:
        return "Never"
    elapsed = int(now - timestamp)
    if elapsed < 60:
        return f"{max(elapsed, 0)} seconds ago"
    if elapsed < 3600:
        return f"{elapsed // 60} minutes ago"
    return pd.Timestamp.fromtimestamp(timestamp).strftime("%H:%M:%S")


def summarise_payload(payload: dict) -> list[dict]:
    """Compact per-week summary used by the CLI and the sidebar."""
    return [
        {
            "week": w["week"],
            "breakdowns": w["total_breakdowns"],
            "IMM": w["IMM"],
            "SPM": w["SPM"],
            "ASSY": w["ASSY"],
            "MTTR": w["MTTR_formatted"],
            "MTBF": w["MTBF_formatted"],
        }
        for w in payload["weekly"]
    ]
