"""
Error taxonomy for the fetch layer and translation to user-facing messages.

An empty dataset is not an error: it is reported through the
``is_empty`` flag of the dashboard payload.
"""

DEPLOYMENT_HINTS = (
    "Please check your Google Apps Script deployment settings:\n"
    "1. Make sure it's deployed as a web app\n"
    '2. Set "Execute as" to "Me"\n'
    '3. Set "Who has access" to "Anyone"\n'
    "4. Make sure your script returns data in JSON or CSV format"
)


class DashboardError(Exception):
    """Base class for errors raised while obtaining dashboard rows."""


class FetchFailed(DashboardError):
    """Network failure, timeout, or non-2xx status from the endpoint."""

    def __init__(self, message: str, timed_out: bool = False, status_code: int | None = None):
        super().__init__(message)
        self.timed_out = timed_out
        self.status_code = status_code


class NonJsonResponse(DashboardError):
    """The endpoint answered with an HTML page instead of data."""

    def __init__(self, message: str, preview: str = ""):
        super().__init__(message)
        self.preview = preview


class UnparsableResponse(DashboardError):
    """The body is neither JSON nor comma-delimited text."""

    def __init__(self, message: str, preview: str = ""):
        super().__init__(message)
        self.preview = preview


def user_message(exc: Exception) -> str:
    """Return a message suitable for the dashboard banner."""
    if isinstance(exc, NonJsonResponse):
        return (
            "The Google Apps Script is returning HTML instead of data. "
            + DEPLOYMENT_HINTS
        )
    if isinstance(exc, UnparsableResponse):
        return (
            "Unable to get spreadsheet data: the response is not in JSON or CSV "
            "format. Please check your Google Apps Script code to ensure it "
            "returns data in the correct format."
        )
    if isinstance(exc, FetchFailed):
        if exc.timed_out:
            return (
                "The request to Google Apps Script timed out. The script may be "
                "taking too long to execute or is not responding."
            )
        if exc.status_code is not None:
            return f"Failed to fetch spreadsheet data: HTTP {exc.status_code}. {DEPLOYMENT_HINTS}"
        return (
            "Network error when connecting to Google Apps Script. Please check "
            "your internet connection and verify the Google Apps Script URL is "
            "correct and publicly accessible."
        )
    return f"Failed to fetch spreadsheet data: {exc}"
