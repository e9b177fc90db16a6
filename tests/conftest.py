"""Shared test fixtures and configuration for nsq_http tests."""

import json
import socket
import socketserver
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Dict, List, Optional
from unittest.mock import patch

import httpx
import pytest

from nsq_http.core.config import HttpClientSettings, LoggingSettings


class MockNsqServer:
    """Canned responder plugged in place of the deadline transport."""

    def __init__(self):
        self.requests: List[httpx.Request] = []
        self.status_code = 200
        self.content = b"{}"
        self.headers: Dict[str, str] = {}
        self.error: Optional[Exception] = None
        self.factory = None

    def respond(self, status_code: int = 200, content: bytes = b"{}",
                headers: Optional[Dict[str, str]] = None):
        self.status_code = status_code
        self.content = content
        self.headers = headers or {}

    def fail(self, error: Exception):
        self.error = error

    def handler(self, request: httpx.Request) -> httpx.Response:
        request.read()
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, content=self.content, headers=self.headers)


class _NsqHandler(BaseHTTPRequestHandler):
    """Answers like nsqd: raw body for GET, enveloped body for POST."""

    def _reply(self, payload: dict, raw: bool):
        body = json.dumps(payload).encode()
        self.send_response(200)
        if raw:
            self.send_header("X-NSQ-Content-Type", "nsq; version=1.0")
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def do_GET(self):
        self.server.seen.append({"method": "GET", "path": self.path, "headers": dict(self.headers)})
        self._reply({"field": "x", "depth": 3}, raw=True)

    def do_POST(self):
        length = int(self.headers.get("Content-Length", 0))
        body = self.rfile.read(length)
        self.server.seen.append({"method": "POST", "path": self.path,
                                 "headers": dict(self.headers), "body": body})
        self._reply({"status_txt": "OK", "status_code": 200,
                     "data": {"field": body.decode(), "depth": 1}}, raw=False)

    def log_message(self, format, *args):
        pass


def _serve_sockets(listener: socket.socket, stop: threading.Event, on_accept):
    listener.settimeout(0.1)
    while not stop.is_set():
        try:
            conn, _ = listener.accept()
        except socket.timeout:
            continue
        except OSError:
            break
        on_accept(conn)


@pytest.fixture
def http_client_settings():
    """Create HTTP client settings for testing."""
    return HttpClientSettings(timeout=0.5)


@pytest.fixture
def logging_settings():
    """Create logging settings for testing."""
    return LoggingSettings(log_level="DEBUG", log_format="text")


@pytest.fixture
def mock_nsq():
    """Route every client built by the request function to a MockNsqServer."""
    server = MockNsqServer()
    with patch(
        "nsq_http.core.clients.http.new_deadline_transport",
        side_effect=lambda timeout: httpx.MockTransport(server.handler),
    ) as factory:
        server.factory = factory
        yield server


@pytest.fixture
def nsq_http_server():
    """Run a real HTTP server on localhost and yield its base URL."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _NsqHandler)
    server.seen = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{server.server_address[1]}", server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=1)


@pytest.fixture
def nsq_unix_server(tmp_path):
    """Run a real HTTP server on a unix socket and yield its path."""
    if not hasattr(socketserver, "ThreadingUnixStreamServer"):
        pytest.skip("unix sockets not available")
    path = str(tmp_path / "nsqd.sock")
    server = socketserver.ThreadingUnixStreamServer(path, _NsqHandler)
    server.seen = []
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    try:
        yield path, server
    finally:
        server.shutdown()
        server.server_close()
        thread.join(timeout=1)


@pytest.fixture
def silent_server():
    """Accept TCP connections and never answer them."""
    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(8)
    accepted: List[socket.socket] = []
    stop = threading.Event()
    thread = threading.Thread(
        target=_serve_sockets, args=(listener, stop, accepted.append), daemon=True
    )
    thread.start()
    try:
        yield f"http://127.0.0.1:{listener.getsockname()[1]}"
    finally:
        stop.set()
        thread.join(timeout=1)
        for conn in accepted:
            conn.close()
        listener.close()


@pytest.fixture
def trickle_server():
    """Answer with a raw JSON body sent one byte at a time, 0.1s apart."""
    body = b'{"field":"z"}'

    def handle(conn: socket.socket):
        def run():
            with conn:
                request = b""
                while b"\r\n\r\n" not in request:
                    chunk = conn.recv(4096)
                    if not chunk:
                        return
                    request += chunk
                conn.sendall(
                    b"HTTP/1.1 200 OK\r\n"
                    b"X-NSQ-Content-Type: nsq; version=1.0\r\n"
                    b"Content-Length: " + str(len(body)).encode() + b"\r\n"
                    b"Connection: close\r\n\r\n"
                )
                for i in range(len(body)):
                    time.sleep(0.1)
                    conn.sendall(body[i:i + 1])

        threading.Thread(target=run, daemon=True).start()

    listener = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    listener.bind(("127.0.0.1", 0))
    listener.listen(8)
    stop = threading.Event()
    thread = threading.Thread(target=_serve_sockets, args=(listener, stop, handle), daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{listener.getsockname()[1]}"
    finally:
        stop.set()
        thread.join(timeout=1)
        listener.close()


@pytest.fixture
def closed_port():
    """A localhost port with nothing listening on it."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port
