"""
Breakdown Dashboard — end-to-end analytics pipeline.

Fetches the breakdown log from the spreadsheet web app (or generates a
simulated one), builds the weekly KPI payload and prints summaries.

Usage:
    python main.py              # one fetch, print summary
    python main.py --demo       # simulated rows, no network
    python main.py --watch      # poll every 30 s until Ctrl+C
"""

import argparse
import logging
import sys
import time
from pathlib import Path

import pandas as pd
from dotenv import load_dotenv

# Add project root to path
sys.path.insert(0, str(Path(__file__).resolve().parent))

from breakdown_dashboard import config
from breakdown_dashboard.dashboard import get_dashboard_payload, summarise_payload
from breakdown_dashboard.exceptions import DashboardError, user_message
from breakdown_dashboard.loaders import fetch_rows
from breakdown_dashboard.poller import Poller, PollResult
from breakdown_dashboard.simulator import generate_breakdown_log

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s | %(name)s | %(levelname)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger(__name__)


def print_payload(payload: dict) -> None:
    """Print weekly metrics, top causes and diagnostics."""
    print(f"\nRows received: {payload['row_count']}")

    if payload["is_empty"]:
        print("\nNo data available: no row could be assigned to a week.")
    else:
        print("\nWeekly breakdowns, MTTR and MTBF:")
        print(pd.DataFrame(summarise_payload(payload)).to_string(index=False))
        print(f"\nBar-chart scale: 0-{payload['y_axis_max']}  |  "
              f"MTTR scale: 0-{payload['mttr_y_axis_max']}")

        print("\nTop causes:")
        for pie in payload["pie_charts"]:
            entries = ", ".join(f"{d['name']} ({d['value']:g})" for d in pie["data"]) or "-"
            print(f"  {pie['title']:20s} | {entries}")

    diag = payload["diagnostics"]
    print("\nDiagnostics:")
    print(f"  rows bucketed:            {diag['rows_bucketed']}")
    print(f"  breakdown / service rows: {diag['breakdown_rows']} / {diag['service_rows']}")
    print(f"  uncategorised breakdowns: {diag['uncategorised_breakdowns']}")
    for reason, count in diag["skipped"].items():
        print(f"  skipped ({reason}): {count}")

    print("\nResolved columns:")
    for field_name, column in payload["columns"].items():
        print(f"  {field_name:15s} -> {column!r}")


def run_once(demo: bool) -> int:
    if demo:
        rows = generate_breakdown_log()
        logger.info("Generated %d simulated rows", len(rows))
    else:
        try:
            rows = fetch_rows()
        except DashboardError as e:
            print(f"\n[ERROR] {user_message(e)}")
            return 1
    print_payload(get_dashboard_payload(rows))
    return 0


def watch() -> int:
    def on_result(result: PollResult) -> None:
        print("\n" + "=" * 70)
        print(f"  Cycle {result.cycle} at {time.strftime('%H:%M:%S', time.localtime(result.finished_at))}")
        print("=" * 70)
        if result.ok:
            print_payload(result.payload)
        else:
            print(f"\n[ERROR] {result.error}")

    with Poller(on_result=on_result) as poller:
        print(f"Polling {config.sheet_url()} every {poller.interval:.0f}s (Ctrl+C to stop)")
        try:
            while poller.is_running:
                time.sleep(1)
        except KeyboardInterrupt:
            print("\nStopping...")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Run the analytics pipeline and print summaries."""
    load_dotenv()
    parser = argparse.ArgumentParser(description="Breakdown dashboard pipeline")
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument("--demo", action="store_true", help="use simulated rows")
    mode.add_argument("--watch", action="store_true", help="poll until interrupted")
    args = parser.parse_args(argv)

    print("=" * 70)
    print("  BREAKDOWN DASHBOARD — Maintenance Reliability KPIs")
    print("=" * 70)

    if args.watch:
        return watch()
    return run_once(args.demo)


if __name__ == "__main__":
    sys.exit(main())
