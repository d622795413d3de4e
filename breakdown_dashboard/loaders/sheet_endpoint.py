"""
Loader for the spreadsheet web-app endpoint.

The endpoint is a Google Apps Script deployment that normally answers with
a JSON envelope ``{"data": [row, ...]}``. Misconfigured deployments answer
with an HTML login/error page; some scripts answer with raw CSV text.

Assumptions
-----------
- ``format=json`` is always appended to the query string.
- An HTML body is never data, whatever its status code.
- CSV text is detected loosely: at least one comma and more than two
  comma-separated parts.
"""

import io
import json
import logging
from typing import Any
from urllib.parse import urlencode

import pandas as pd
import requests
from requests.adapters import HTTPAdapter
from urllib3.exceptions import TimeoutError as Urllib3TimeoutError
from urllib3.util.retry import Retry

from .. import config
from ..exceptions import FetchFailed, NonJsonResponse, UnparsableResponse

logger = logging.getLogger(__name__)

_PREVIEW_CHARS = 200


def build_request_url(base_url: str, params: dict | None = None) -> str:
    """Forward query parameters and ask the script for JSON output."""
    query = urlencode(params or {}, doseq=True)
    if query:
        return f"{base_url}?{query}&format=json"
    return f"{base_url}?format=json"


def build_session(attempts: int = config.FETCH_ATTEMPTS) -> requests.Session:
    """Session with ``attempts`` total tries for transient failures."""
    retry = Retry(
        total=max(attempts - 1, 0),
        connect=max(attempts - 1, 0),
        read=max(attempts - 1, 0),
        status=max(attempts - 1, 0),
        backoff_factor=config.RETRY_BACKOFF_S,
        status_forcelist=config.RETRY_STATUS_CODES,
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )
    adapter = HTTPAdapter(max_retries=retry)
    session = requests.Session()
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers.update(config.REQUEST_HEADERS)
    return session


def _is_timeout(exc: requests.RequestException) -> bool:
    """Timeouts surface as ConnectionError once urllib3 retries are spent."""
    if isinstance(exc, requests.Timeout):
        return True
    reason = getattr(exc.args[0], "reason", None) if exc.args else None
    return isinstance(reason, Urllib3TimeoutError)


def parse_body(text: str) -> Any:
    """Decode a response body into a JSON value or a ``csvData`` envelope.

    Raises
    ------
    NonJsonResponse : body is an HTML document.
    UnparsableResponse : body is neither JSON nor comma-delimited text.
    """
    stripped = text.strip()
    head = stripped[:15].lower()
    if head.startswith("<!doctype") or head.startswith("<html"):
        preview = stripped[:_PREVIEW_CHARS]
        logger.error("Endpoint returned HTML instead of data: %s", preview)
        raise NonJsonResponse(
            "Google Apps Script returned HTML instead of data. This usually "
            "happens when the script is not properly deployed or configured.",
            preview=preview,
        )

    try:
        return json.loads(stripped)
    except ValueError:
        logger.info("Response is not valid JSON, checking for CSV data")

    if "," in stripped and len(stripped.split(",")) > 2:
        return {"csvData": text, "source": "spreadsheet"}

    preview = stripped[:_PREVIEW_CHARS]
    logger.error("Unable to parse response as JSON or CSV: %s", preview)
    raise UnparsableResponse(
        "The response is not in JSON or CSV format.",
        preview=preview,
    )


def parse_csv_rows(text: str) -> list[dict]:
    """Parse CSV text into row dicts; every cell kept as a string."""
    df = pd.read_csv(
        io.StringIO(text),
        dtype=str,
        keep_default_na=False,
        skip_blank_lines=True,
    )
    return df.to_dict(orient="records")


def rows_from_payload(payload: Any) -> list[dict]:
    """Unwrap the endpoint's envelope into a list of row dicts."""
    if isinstance(payload, dict):
        if "csvData" in payload:
            try:
                rows = parse_csv_rows(payload["csvData"])
            except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
                raise UnparsableResponse(f"CSV payload could not be parsed: {e}") from e
        elif "data" in payload:
            data = payload["data"]
            rows = data if isinstance(data, list) else [data]
        else:
            rows = [payload]
    elif isinstance(payload, list):
        rows = payload
    else:
        raise UnparsableResponse(
            f"Expected a JSON object or array, got {type(payload).__name__}"
        )

    records = [row for row in rows if isinstance(row, dict)]
    dropped = len(rows) - len(records)
    if dropped:
        logger.warning("Dropped %d non-object entries from payload", dropped)
    return records


def fetch_payload(
    url: str | None = None,
    params: dict | None = None,
    timeout: float | None = None,
    attempts: int | None = None,
    session: requests.Session | None = None,
) -> Any:
    """GET the endpoint and decode the body.

    Parameters
    ----------
    url : Endpoint base URL. Defaults to config.sheet_url().
    params : Query parameters forwarded to the script.
    timeout : Seconds before the request is abandoned (default 10).
    attempts : Total tries for transient failures (default 3). Ignored
               when ``session`` is given; the session carries its own policy.
    session : Pre-built session (the poller reuses one across cycles).
    """
    base_url = url or config.sheet_url()
    timeout = config.fetch_timeout_s() if timeout is None else timeout
    request_url = build_request_url(base_url, params)

    owns_session = session is None
    if owns_session:
        session = build_session(config.fetch_attempts() if attempts is None else attempts)

    logger.info("Fetching data from: %s", request_url)
    try:
        response = session.get(request_url, timeout=timeout, allow_redirects=True)
    except requests.RequestException as e:
        if _is_timeout(e):
            raise FetchFailed(f"Request timed out after {timeout}s", timed_out=True) from e
        raise FetchFailed(f"Network error: {e}") from e
    finally:
        if owns_session:
            session.close()

    logger.info("Fetch completed with status: %s", response.status_code)
    if not response.ok:
        reason = response.reason or "Unknown error"
        raise FetchFailed(
            f"Failed to fetch spreadsheet data: {response.status_code} {reason}",
            status_code=response.status_code,
        )

    return parse_body(response.text)


def fetch_rows(
    url: str | None = None,
    params: dict | None = None,
    timeout: float | None = None,
    attempts: int | None = None,
    session: requests.Session | None = None,
) -> list[dict]:
    """Fetch the endpoint and return its rows.

    Returns
    -------
    List of row dicts, in spreadsheet order. Column names are left as the
    sheet spells them.
    """
    payload = fetch_payload(url, params, timeout, attempts, session)
    rows = rows_from_payload(payload)
    logger.info("Loaded %d rows from endpoint", len(rows))
    return rows
