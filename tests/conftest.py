import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer

import pytest


DATE = "DATE"
CATEGORY = "Machine\nCategory"
TYPE = "CATEGORY (SERVICE REQUEST / BREAKDOWN)"
DOWNTIME = "TOTAL DOWN TIME (MIN)"
UPTIME = "UPTIME (MIN)"
CAUSE = "ROOT CAUSE"


def make_row(date, category, kind="Breakdown", downtime="0", uptime="0", cause=None):
    row = {DATE: date, CATEGORY: category, TYPE: kind, DOWNTIME: downtime, UPTIME: uptime}
    if cause is not None:
        row[CAUSE] = cause
    return row


class _StalledHandler(BaseHTTPRequestHandler):
    """Holds every GET until the server's ``release`` event is set."""

    def do_GET(self):
        self.server.release.wait(5)
        body = b'{"data": []}'
        try:
            self.send_response(200)
            self.send_header("Content-Type", "application/json")
            self.send_header("Content-Length", str(len(body)))
            self.end_headers()
            self.wfile.write(body)
        except (BrokenPipeError, ConnectionResetError):
            pass

    def log_message(self, format, *args):
        pass


@pytest.fixture
def slow_server():
    """Local endpoint that stalls each request until the test finishes."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _StalledHandler)
    server.release = threading.Event()
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    yield f"http://127.0.0.1:{server.server_port}/exec"
    server.release.set()
    server.shutdown()
    server.server_close()


@pytest.fixture
def sheet_rows():
    """Two weeks of mixed breakdown and service entries."""
    return [
        make_row("2024-03-03", "IMM", downtime="45", uptime="600", cause="Hydraulic leak"),
        make_row("2024-03-05", "SPM", downtime="30", uptime="300", cause="Sensor fault"),
        make_row("2024-03-06", "IMM", kind="Service Request", downtime="90", cause="PM"),
        make_row("2024-03-10", "ASSLY", downtime="20", uptime="1000", cause="Hydraulic leak"),
        make_row("2024-03-12", "IMM", downtime="15", uptime="400", cause="Heater band"),
        make_row("2024-03-13", "imm", kind="breakdown ", downtime="25", uptime="200", cause="Heater band"),
        make_row("", "IMM", downtime="100", cause="Hydraulic leak"),
        make_row("not a date", "SPM", downtime="100", cause="Sensor fault"),
        make_row("2024-03-14", "CNC", downtime="70", cause="Spindle"),
    ]
