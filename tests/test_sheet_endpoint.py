"""
Tests for the endpoint loader: body sniffing, envelopes, error taxonomy.

No network access: sessions are replaced with small fakes.

Run: python -m pytest tests/test_sheet_endpoint.py -v
"""

import json

import pytest
import requests

from breakdown_dashboard.exceptions import (
    FetchFailed,
    NonJsonResponse,
    UnparsableResponse,
    user_message,
)
from breakdown_dashboard.loaders import sheet_endpoint
from breakdown_dashboard.loaders.sheet_endpoint import (
    build_request_url,
    build_session,
    fetch_payload,
    fetch_rows,
    parse_body,
    rows_from_payload,
)


class FakeResponse:
    def __init__(self, text="", status_code=200, reason="OK"):
        self.text = text
        self.status_code = status_code
        self.reason = reason

    @property
    def ok(self):
        return 200 <= self.status_code < 300


class FakeSession:
    def __init__(self, response=None, exc=None):
        self.response = response
        self.exc = exc
        self.calls = []
        self.closed = False

    def get(self, url, timeout=None, allow_redirects=True):
        self.calls.append({"url": url, "timeout": timeout})
        if self.exc is not None:
            raise self.exc
        return self.response

    def close(self):
        self.closed = True


# =====================================================================
# URL and session
# =====================================================================

class TestBuildRequestUrl:

    def test_no_params(self):
        assert build_request_url("https://x/exec") == "https://x/exec?format=json"

    def test_params_forwarded(self):
        url = build_request_url("https://x/exec", {"sheet": "March", "limit": 5})
        assert url == "https://x/exec?sheet=March&limit=5&format=json"


class TestBuildSession:

    def test_retry_policy_mounted(self):
        session = build_session(attempts=3)
        adapter = session.get_adapter("https://script.google.com/")
        assert adapter.max_retries.total == 2
        assert 503 in adapter.max_retries.status_forcelist
        assert session.headers["Cache-Control"] == "no-cache"
        session.close()

    def test_single_attempt_means_no_retries(self):
        session = build_session(attempts=1)
        assert session.get_adapter("https://x/").max_retries.total == 0
        session.close()


# =====================================================================
# Body parsing
# =====================================================================

class TestParseBody:

    def test_json(self):
        assert parse_body('{"data": [{"a": 1}]}') == {"data": [{"a": 1}]}

    @pytest.mark.parametrize("body", [
        "<!DOCTYPE html><html><body>Sign in</body></html>",
        "  \n<html><head></head></html>",
        "<!doctype html>",
    ])
    def test_html_rejected(self, body):
        with pytest.raises(NonJsonResponse) as info:
            parse_body(body)
        assert info.value.preview.lower().startswith(("<!doctype", "<html"))

    def test_csv_fallback(self):
        text = "DATE,Machine Category,Downtime\n2024-03-03,IMM,45\n"
        assert parse_body(text) == {"csvData": text, "source": "spreadsheet"}

    def test_single_comma_is_not_csv(self):
        with pytest.raises(UnparsableResponse):
            parse_body("hello, world")

    def test_plain_text_unparsable(self):
        with pytest.raises(UnparsableResponse):
            parse_body("Service unavailable")


class TestRowsFromPayload:

    def test_data_list(self):
        assert rows_from_payload({"data": [{"a": 1}, {"a": 2}]}) == [{"a": 1}, {"a": 2}]

    def test_data_object(self):
        assert rows_from_payload({"data": {"a": 1}}) == [{"a": 1}]

    def test_bare_list(self):
        assert rows_from_payload([{"a": 1}]) == [{"a": 1}]

    def test_other_object_is_single_row(self):
        assert rows_from_payload({"a": 1}) == [{"a": 1}]

    def test_non_object_entries_dropped(self):
        assert rows_from_payload({"data": [{"a": 1}, "junk", 3]}) == [{"a": 1}]

    def test_csv_rows_as_strings(self):
        text = "DATE,Machine Category,Downtime\n2024-03-03,IMM,45\n2024-03-04,SPM,\n"
        rows = rows_from_payload({"csvData": text})
        assert rows == [
            {"DATE": "2024-03-03", "Machine Category": "IMM", "Downtime": "45"},
            {"DATE": "2024-03-04", "Machine Category": "SPM", "Downtime": ""},
        ]

    def test_scalar_payload_unparsable(self):
        with pytest.raises(UnparsableResponse):
            rows_from_payload(42)


# =====================================================================
# Fetch
# =====================================================================

class TestFetch:

    def test_rows_returned(self):
        body = json.dumps({"data": [{"DATE": "2024-03-03"}]})
        session = FakeSession(FakeResponse(body))
        rows = fetch_rows(url="https://x/exec", session=session, timeout=10)
        assert rows == [{"DATE": "2024-03-03"}]
        assert session.calls == [{"url": "https://x/exec?format=json", "timeout": 10}]
        assert not session.closed

    def test_default_url_and_timeout(self, monkeypatch):
        monkeypatch.setenv("BREAKDOWN_SHEET_URL", "https://example.test/exec")
        monkeypatch.delenv("BREAKDOWN_FETCH_TIMEOUT", raising=False)
        session = FakeSession(FakeResponse('{"data": []}'))
        fetch_payload(session=session)
        assert session.calls[0]["url"] == "https://example.test/exec?format=json"
        assert session.calls[0]["timeout"] == 10.0

    def test_owned_session_is_closed(self, monkeypatch):
        session = FakeSession(FakeResponse('{"data": []}'))
        monkeypatch.setattr(sheet_endpoint, "build_session", lambda attempts: session)
        fetch_rows(url="https://x/exec")
        assert session.closed

    def test_html_never_reaches_rows(self):
        session = FakeSession(FakeResponse("<!DOCTYPE html><html></html>"))
        with pytest.raises(NonJsonResponse):
            fetch_rows(url="https://x/exec", session=session)

    def test_http_error_status(self):
        session = FakeSession(FakeResponse("oops", status_code=404, reason="Not Found"))
        with pytest.raises(FetchFailed) as info:
            fetch_rows(url="https://x/exec", session=session)
        assert info.value.status_code == 404
        assert not info.value.timed_out

    def test_timeout(self):
        session = FakeSession(exc=requests.Timeout("read timed out"))
        with pytest.raises(FetchFailed) as info:
            fetch_rows(url="https://x/exec", session=session)
        assert info.value.timed_out

    def test_timeout_through_retrying_session(self, slow_server):
        session = build_session(attempts=2)
        try:
            with pytest.raises(FetchFailed) as info:
                fetch_rows(url=slow_server, session=session, timeout=0.2)
        finally:
            session.close()
        assert info.value.timed_out
        assert "timed out" in user_message(info.value)

    def test_connection_error(self):
        session = FakeSession(exc=requests.ConnectionError("refused"))
        with pytest.raises(FetchFailed) as info:
            fetch_rows(url="https://x/exec", session=session)
        assert not info.value.timed_out
        assert info.value.status_code is None


class TestUserMessage:

    def test_html_hint(self):
        msg = user_message(NonJsonResponse("html"))
        assert "returning HTML" in msg
        assert "Who has access" in msg

    def test_timeout_message(self):
        assert "timed out" in user_message(FetchFailed("t", timed_out=True))

    def test_network_message(self):
        assert "Network error" in user_message(FetchFailed("n"))

    def test_status_message(self):
        assert "HTTP 500" in user_message(FetchFailed("s", status_code=500))

    def test_unparsable_message(self):
        assert "JSON or CSV" in user_message(UnparsableResponse("u"))
