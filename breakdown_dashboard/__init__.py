"""
Breakdown Dashboard — maintenance reliability KPIs from a spreadsheet log

Analytics backend that polls a spreadsheet web app, reshapes its loosely
typed rows into weekly breakdown counts, MTTR and MTBF, and hands
chart-ready series to a Streamlit page.

To point at another sheet:
    Set BREAKDOWN_SHEET_URL (environment or .env). The endpoint must return
    JSON {"data": [...]} or CSV text.

To connect another front end:
    Call dashboard.get_dashboard_payload(rows) to get a plain dict of bar,
    line and pie series plus axis scales and skipped-row diagnostics.

To accept a new header spelling:
    Add a pattern to config.COLUMN_ALIASES for the relevant field.
"""
