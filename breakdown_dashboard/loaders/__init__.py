"""Data ingestion loaders for the spreadsheet breakdown log."""

from .sheet_endpoint import build_request_url, build_session
from .sheet_endpoint import fetch_payload, fetch_rows
from .sheet_endpoint import parse_body, rows_from_payload

__all__ = [
    "build_request_url",
    "build_session",
    "fetch_payload",
    "fetch_rows",
    "parse_body",
    "rows_from_payload",
]
