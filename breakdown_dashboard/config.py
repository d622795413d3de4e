"""
Configuration: endpoint settings, column alias registry, constants.

COLUMN_ALIASES maps each canonical field to the substring patterns that
identify it in a spreadsheet header, plus exclusions that veto a candidate.
Deployment-specific values can be overridden with environment variables
(see ``.env`` support in app.py / main.py).
"""

import os

# ---------------------------------------------------------------------------
# Endpoint: the Apps Script web app serving the breakdown log
# ---------------------------------------------------------------------------
DEFAULT_SHEET_URL = (
    "https://script.google.com/macros/s/"
    "AKfycbxT_VzkKxpOVgzvSpXf-ksaZ7mhPBEKORV4cnAOIPMYwbMmfUl0239W_rrT20NbIwX9HA/exec"
)

REQUEST_TIMEOUT_S = 10.0
FETCH_ATTEMPTS = 3
POLL_INTERVAL_S = 30.0

REQUEST_HEADERS = {
    "Accept": "application/json, text/csv",
    "X-Requested-With": "XMLHttpRequest",
    "Cache-Control": "no-cache",
    "Pragma": "no-cache",
}

# Status codes worth another attempt before giving up on a cycle
RETRY_STATUS_CODES = (500, 502, 503, 504)
RETRY_BACKOFF_S = 0.5

# ---------------------------------------------------------------------------
# Plant identity
# ---------------------------------------------------------------------------
PLANT_NAME = "Plant"

# Machine categories tracked by the dashboard, in display order
CATEGORIES = ("IMM", "SPM", "ASSY")

# Spreadsheet spellings that map onto a canonical category
CATEGORY_ALIASES = {"ASSLY": "ASSY"}

WEEK_LABELS = ("Week 1", "Week 2", "Week 3", "Week 4", "Week 5")

# Day-of-month is read in the plant's local time; timezone-aware cells
# (Apps Script serialises Date cells as UTC "...Z" strings) are converted first
PLANT_TIMEZONE = "Asia/Kolkata"

# ---------------------------------------------------------------------------
# Column alias registry
# ---------------------------------------------------------------------------
# exact: normalised header names that match outright (checked first)
# patterns: substrings of the normalised header name
# exclude: substrings that disqualify a header even if a pattern matches
COLUMN_ALIASES: dict[str, dict] = {
    "date": {
        "exact": ("date",),
        "patterns": ("date",),
        "exclude": ("update",),
    },
    "category": {
        "exact": ("machine category",),
        "patterns": ("machine category", "category"),
        "exclude": ("service request", "breakdown", "downtime"),
    },
    "breakdown_type": {
        "exact": (),
        "patterns": (
            "service request / breakdown",
            "breakdown type",
            "category (service request / breakdown)",
        ),
        "exclude": (),
    },
    "downtime": {
        "exact": (),
        "patterns": (
            "total down time",
            "repair time",
            "bd time",
            "breakdown time",
            "downtime",
        ),
        "exclude": ("category",),
    },
    "uptime": {
        "exact": (),
        "patterns": ("uptime", "operating time"),
        "exclude": (),
    },
    "cause": {
        "exact": (),
        "patterns": ("cause", "reason", "failure", "downtime category"),
        "exclude": (),
    },
}

UNKNOWN_CAUSE = "Unknown"

# ---------------------------------------------------------------------------
# Chart constants
# ---------------------------------------------------------------------------
TOP_N_CAUSES = 3
BAR_AXIS_STEP = 5
BAR_AXIS_FLOOR = 10
MTTR_AXIS_STEP = 10
MTTR_AXIS_FLOOR = 10

CATEGORY_COLORS = {
    "IMM": "#60A5FA",
    "SPM": "#34D399",
    "ASSY": "#FBBF24",
    "Overall": "#A78BFA",
}

PIE_COLORS = ["#60A5FA", "#34D399", "#FBBF24", "#F87171", "#A78BFA"]


# ---------------------------------------------------------------------------
# Environment overrides, read at call time so a late-loaded .env applies
# ---------------------------------------------------------------------------
def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def sheet_url() -> str:
    """Endpoint URL (BREAKDOWN_SHEET_URL or the default deployment)."""
    return os.getenv("BREAKDOWN_SHEET_URL", "").strip() or DEFAULT_SHEET_URL


def fetch_timeout_s() -> float:
    return _env_float("BREAKDOWN_FETCH_TIMEOUT", REQUEST_TIMEOUT_S)


def fetch_attempts() -> int:
    return max(1, int(_env_float("BREAKDOWN_FETCH_ATTEMPTS", FETCH_ATTEMPTS)))


def poll_interval_s() -> float:
    return _env_float("BREAKDOWN_POLL_INTERVAL", POLL_INTERVAL_S)


def plant_timezone() -> str:
    """IANA zone used to read day-of-month (BREAKDOWN_TIMEZONE)."""
    return os.getenv("BREAKDOWN_TIMEZONE", "").strip() or PLANT_TIMEZONE
