"""
Simulated breakdown-log generator for demo and offline runs.

Produces rows shaped like the maintenance spreadsheet, including its
awkward headers and the occasional data-entry quirk (ASSLY spelling, blank
dates, service requests mixed in with breakdowns). All values are synthetic.
"""

import numpy as np
import pandas as pd

# Sheet headers as the maintenance team spells them
SHEET_COLUMNS = {
    "date": "DATE",
    "machine": "MACHINE NO",
    "category": "Machine\nCategory",
    "type": "CATEGORY (SERVICE REQUEST / BREAKDOWN)",
    "cause": "ROOT CAUSE",
    "downtime": "TOTAL DOWN TIME (MIN)",
    "uptime": "UPTIME (MIN)",
    "technician": "ATTENDED BY",
}

# Typical behaviour per machine family
_CATEGORY_PARAMS = {
    "IMM": {"weight": 0.5, "machines": 24, "repair_mean": 55, "repair_std": 20},
    "SPM": {"weight": 0.3, "machines": 12, "repair_mean": 40, "repair_std": 15},
    "ASSY": {"weight": 0.2, "machines": 8, "repair_mean": 30, "repair_std": 10},
}

_CAUSES = [
    ("Hydraulic leak", 0.22),
    ("Heater band failure", 0.18),
    ("Mould damage", 0.15),
    ("Sensor fault", 0.15),
    ("Pneumatic issue", 0.12),
    ("Electrical trip", 0.10),
    ("Operator error", 0.08),
]

_TECHNICIANS = ["R. Kumar", "S. Patel", "A. Singh", "M. Das"]


def generate_breakdown_log(
    month: str = "2024-03-01",
    n_rows: int = 60,
    service_share: float = 0.25,
    seed: int = 42,
) -> list[dict]:
    """Generate a month of simulated breakdown-log rows.

    Parameters
    ----------
    month : Any date in the month to simulate.
    n_rows : Number of log entries.
    service_share : Fraction of entries that are service requests.
    seed : RNG seed; the same seed gives the same rows.

    Returns
    -------
    List of row dicts keyed by SHEET_COLUMNS values, dates as ISO strings
    and numbers as strings, the way the spreadsheet web app serves them.
    """
    rng = np.random.default_rng(seed)
    start = pd.Timestamp(month).to_period("M").to_timestamp()
    days_in_month = start.days_in_month

    categories = list(_CATEGORY_PARAMS)
    weights = np.array([_CATEGORY_PARAMS[c]["weight"] for c in categories])
    cause_names = [c for c, _ in _CAUSES]
    cause_weights = np.array([w for _, w in _CAUSES])
    cause_weights = cause_weights / cause_weights.sum()

    rows = []
    for _ in range(n_rows):
        category = str(rng.choice(categories, p=weights / weights.sum()))
        params = _CATEGORY_PARAMS[category]
        day = int(rng.integers(1, days_in_month + 1))
        is_service = rng.random() < service_share

        downtime = max(5.0, rng.normal(params["repair_mean"], params["repair_std"]))
        uptime = max(60.0, rng.normal(2400, 600))

        label = category
        if category == "ASSY" and rng.random() < 0.2:
            label = "ASSLY"

        date = (start + pd.Timedelta(days=day - 1)).strftime("%Y-%m-%d")
        if rng.random() < 0.03:
            date = ""

        rows.append({
            SHEET_COLUMNS["date"]: date,
            SHEET_COLUMNS["machine"]: f"{category}-{int(rng.integers(1, params['machines'] + 1)):02d}",
            SHEET_COLUMNS["category"]: label,
            SHEET_COLUMNS["type"]: "Service Request" if is_service else "Breakdown",
            SHEET_COLUMNS["cause"]: str(rng.choice(cause_names, p=cause_weights)),
            SHEET_COLUMNS["downtime"]: f"{downtime:.0f}",
            SHEET_COLUMNS["uptime"]: f"{uptime:.0f}",
            SHEET_COLUMNS["technician"]: str(rng.choice(_TECHNICIANS)),
        })

    return rows
