"""
Unit tests for MTTR/MTBF math and cause ranking.

Run: python -m pytest tests/test_kpis.py -v
"""

import math

import pandas as pd

from breakdown_dashboard.kpis import (
    build_weekly_metrics,
    calc_mean_per_breakdown,
    calc_mtbf,
    calc_mttr,
    category_cause_counts,
    format_min_per_bd,
    plant_cause_downtime,
    rank_top_causes,
)
from breakdown_dashboard.transforms import build_fact_breakdowns, build_weekly_buckets

from conftest import make_row


def _metrics(rows):
    fact, _ = build_fact_breakdowns(rows)
    return build_weekly_metrics(build_weekly_buckets(fact)).set_index("week")


class TestMeanPerBreakdown:

    def test_simple_division(self):
        assert calc_mttr(90.0, 2) == 45.0
        assert calc_mtbf(600.0, 3) == 200.0

    def test_zero_count_is_zero_not_nan(self):
        assert calc_mean_per_breakdown(100.0, 0) == 0.0
        assert calc_mean_per_breakdown(0.0, 0) == 0.0

    def test_format(self):
        assert format_min_per_bd(45.0) == "45.00 min/BD"
        assert format_min_per_bd(1 / 3) == "0.33 min/BD"


class TestBuildWeeklyMetrics:

    def test_single_row_scenario(self):
        rows = [{
            "DATE": "2024-03-03",
            "Machine↵Category": "IMM",
            "CATEGORY (SERVICE REQUEST / BREAKDOWN)": "Breakdown",
            "TOTAL DOWN TIME (MIN)": "45",
        }]
        week = _metrics(rows).loc["Week 1"]
        assert week["IMM"] == 1
        assert week["IMM_downtime"] == 45.0
        assert week["IMM_MTTR"] == 45.0
        assert week["IMM_MTTR_formatted"] == "45.00 min/BD"
        assert week["MTTR"] == 45.0

    def test_overall_uses_combined_count(self, sheet_rows):
        week = _metrics(sheet_rows).loc["Week 2"]
        # IMM 15 + 25, ASSY 20 over 3 breakdowns
        assert week["total_breakdowns"] == 3
        assert abs(week["MTTR"] - 20.0) < 1e-9
        assert abs(week["IMM_MTTR"] - 20.0) < 1e-9
        # uptime 400 + 200 + 1000 over 3 breakdowns
        assert abs(week["MTBF"] - 1600.0 / 3) < 1e-9
        assert week["MTBF_formatted"] == "533.33 min/BD"

    def test_zero_breakdown_category_is_zero(self, sheet_rows):
        metrics = _metrics(sheet_rows)
        assert metrics.loc["Week 1", "ASSY_MTTR"] == 0.0
        assert metrics.loc["Week 1", "ASSY_MTBF"] == 0.0
        assert metrics.loc["Week 2", "SPM_MTTR"] == 0.0

    def test_never_negative_or_nan(self, sheet_rows):
        metrics = _metrics(sheet_rows)
        for col in ["MTTR", "MTBF", "IMM_MTTR", "SPM_MTTR", "ASSY_MTTR",
                    "IMM_MTBF", "SPM_MTBF", "ASSY_MTBF"]:
            for value in metrics[col]:
                assert not math.isnan(value)
                assert value >= 0

    def test_service_only_week(self):
        rows = [make_row("2024-03-20", "IMM", kind="Service Request", downtime="30")]
        week = _metrics(rows).loc["Week 3"]
        assert week["MTTR"] == 0.0
        assert week["MTTR_formatted"] == "0.00 min/BD"

    def test_sorted_by_week_number(self):
        weekly = pd.DataFrame([
            {"week": w, "IMM": 0, "SPM": 0, "ASSY": 0,
             "IMM_downtime": 0.0, "SPM_downtime": 0.0, "ASSY_downtime": 0.0,
             "IMM_uptime": 0.0, "SPM_uptime": 0.0, "ASSY_uptime": 0.0}
            for w in ["Week 4", "Week 1", "Week 3"]
        ])
        assert build_weekly_metrics(weekly)["week"].tolist() == ["Week 1", "Week 3", "Week 4"]

    def test_empty(self):
        metrics = build_weekly_metrics(build_weekly_buckets(pd.DataFrame()))
        assert metrics.empty
        assert "MTBF_formatted" in metrics.columns


class TestRankTopCauses:

    def test_descending_and_capped(self):
        tallies = pd.Series({"a": 1, "b": 5, "c": 3, "d": 4})
        ranked = rank_top_causes(tallies)
        assert [r["name"] for r in ranked] == ["b", "d", "c"]
        assert len(ranked) == 3

    def test_ties_keep_encounter_order(self):
        tallies = pd.Series({"late": 2, "early": 2, "other": 2, "last": 2})
        ranked = rank_top_causes(tallies)
        assert [r["name"] for r in ranked] == ["late", "early", "other"]

    def test_fewer_than_n(self):
        assert rank_top_causes(pd.Series({"only": 1.0})) == [{"name": "only", "value": 1.0}]

    def test_empty(self):
        assert rank_top_causes(pd.Series(dtype=float)) == []


class TestCauseTallies:

    def test_plant_ranks_by_downtime_minutes(self, sheet_rows):
        fact, _ = build_fact_breakdowns(sheet_rows)
        tallies = plant_cause_downtime(fact)
        # includes the uncategorised CNC breakdown, excludes the service entry
        assert tallies.to_dict() == {
            "Hydraulic leak": 65.0,
            "Sensor fault": 30.0,
            "Heater band": 40.0,
            "Spindle": 70.0,
        }
        assert list(tallies.index) == ["Hydraulic leak", "Sensor fault", "Heater band", "Spindle"]

    def test_category_counts_occurrences(self, sheet_rows):
        fact, _ = build_fact_breakdowns(sheet_rows)
        assert category_cause_counts(fact, "IMM").to_dict() == {
            "Hydraulic leak": 1,
            "Heater band": 2,
        }
        assert category_cause_counts(fact, "ASSY").to_dict() == {"Hydraulic leak": 1}

    def test_blank_cause_unknown_in_plant_only(self):
        rows = [
            make_row("2024-03-01", "IMM", downtime="30", cause=""),
            make_row("2024-03-02", "IMM", downtime="10", cause="Sensor fault"),
            make_row("2024-03-03", "IMM", downtime="5", cause="  "),
        ]
        fact, _ = build_fact_breakdowns(rows)
        assert plant_cause_downtime(fact).to_dict() == {"Unknown": 35.0, "Sensor fault": 10.0}
        assert category_cause_counts(fact, "IMM").to_dict() == {"Sensor fault": 1}
