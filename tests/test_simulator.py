"""
Tests for the simulated breakdown log used by demo mode.

Run: python -m pytest tests/test_simulator.py -v
"""

from breakdown_dashboard.columns import build_column_mapping
from breakdown_dashboard.dashboard import get_dashboard_payload
from breakdown_dashboard.simulator import SHEET_COLUMNS, generate_breakdown_log


class TestGenerateBreakdownLog:

    def test_same_seed_same_rows(self):
        assert generate_breakdown_log(seed=7) == generate_breakdown_log(seed=7)

    def test_shape(self):
        rows = generate_breakdown_log(n_rows=40)
        assert len(rows) == 40
        assert set(rows[0]) == set(SHEET_COLUMNS.values())

    def test_headers_resolve(self):
        mapping = build_column_mapping(generate_breakdown_log(n_rows=10))
        assert mapping.date == "DATE"
        assert mapping.category == "Machine\nCategory"
        assert mapping.breakdown_type == "CATEGORY (SERVICE REQUEST / BREAKDOWN)"
        assert mapping.downtime == "TOTAL DOWN TIME (MIN)"
        assert mapping.uptime == "UPTIME (MIN)"
        assert mapping.cause == "ROOT CAUSE"

    def test_dates_within_month(self):
        rows = generate_breakdown_log(month="2024-02-10", n_rows=100)
        dates = [r["DATE"] for r in rows if r["DATE"]]
        assert dates
        assert all(d.startswith("2024-02-") for d in dates)

    def test_feeds_dashboard(self):
        payload = get_dashboard_payload(generate_breakdown_log())
        assert not payload["is_empty"]
        assert payload["bar_charts"][0]["title"] == "Overall Plant B/D"
        assert len(payload["pie_charts"][0]["data"]) == 3
