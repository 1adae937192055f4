from __future__ import annotations

import gzip
import threading
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import TYPE_CHECKING

import httpx
import pytest

from webexchange import ClientConfig, ExchangeEngine
from webexchange.utils.structured_logging import clear_correlation_id

if TYPE_CHECKING:
    from collections.abc import Callable, Generator


@pytest.fixture(autouse=True)
def _reset_correlation_id() -> Generator[None, None, None]:
    """Make sure no test leaks a correlation ID into another one."""
    clear_correlation_id()
    yield
    clear_correlation_id()


@pytest.fixture
def config() -> ClientConfig:
    """Create a config that ignores proxies from the environment."""
    return ClientConfig(trust_env=False)


@pytest.fixture
def captured() -> list[httpx.Request]:
    """Collect the requests seen by the mock transport."""
    return []


@pytest.fixture
def make_engine(
    config: ClientConfig, captured: list[httpx.Request]
) -> Generator[Callable[..., ExchangeEngine], None, None]:
    """Create engines backed by ``httpx.MockTransport``.

    The returned factory takes the handler called for every request.
    Requests are recorded in the ``captured`` fixture.
    """
    engines: list[ExchangeEngine] = []

    def factory(handler: Callable[[httpx.Request], httpx.Response]) -> ExchangeEngine:
        def recording_handler(request: httpx.Request) -> httpx.Response:
            request.read()
            captured.append(request)
            return handler(request)

        engine = ExchangeEngine(config=config, transport=httpx.MockTransport(recording_handler))
        engines.append(engine)
        return engine

    yield factory
    for engine in engines:
        engine.close()


class _Handler(BaseHTTPRequestHandler):
    protocol_version = "HTTP/1.1"

    def log_message(self, format: str, *args: object) -> None:  # noqa: A002
        pass

    def _reply(self, status: int, body: bytes, headers: list[tuple[str, str]]) -> None:
        self.send_response(status)
        for name, value in headers:
            self.send_header(name, value)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        if self.command != "HEAD":
            self.wfile.write(body)

    def _read_body(self) -> bytes:
        length = int(self.headers.get("Content-Length") or 0)
        return self.rfile.read(length) if length else b""

    def _echo(self) -> None:
        body = self._read_body()
        lines = [f"{self.command} {self.path}"]
        lines.extend(f"{name}: {value}" for name, value in self.headers.items())
        lines.extend(["", ""])
        payload = "\n".join(lines).encode("utf-8") + body
        self._reply(200, payload, [("Content-Type", "text/plain; charset=utf-8")])

    def do_GET(self) -> None:  # noqa: N802
        if self.path == "/json":
            self._reply(200, b'{"name":"widget","count":3}', [("Content-Type", "application/json")])
        elif self.path == "/gzip":
            accepts_gzip = "gzip" in (self.headers.get("Accept-Encoding") or "")
            body = b'{"compressed":true}'
            if accepts_gzip:
                self._reply(
                    200,
                    gzip.compress(body),
                    [("Content-Type", "application/json"), ("Content-Encoding", "gzip")],
                )
            else:
                self._reply(200, body, [("Content-Type", "application/json")])
        elif self.path == "/cookies":
            self._reply(
                200,
                b"",
                [("Set-Cookie", "a=1"), ("Set-Cookie", "b=2"), ("Content-Type", "text/plain")],
            )
        elif self.path == "/missing":
            self._reply(404, b"not here", [("Content-Type", "text/plain")])
        elif self.path == "/redirect":
            self._reply(302, b"", [("Location", "/json")])
        else:
            self._echo()

    def do_HEAD(self) -> None:  # noqa: N802
        self._reply(200, b"", [("Content-Type", "text/plain")])

    def do_POST(self) -> None:  # noqa: N802
        self._echo()

    do_PUT = do_POST
    do_PATCH = do_POST
    do_DELETE = do_POST


@pytest.fixture(scope="session")
def http_server() -> Generator[str, None, None]:
    """Start a local HTTP server and return its base URL."""
    server = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    thread = threading.Thread(target=server.serve_forever, daemon=True)
    thread.start()
    host, port = server.server_address[:2]
    yield f"http://{host}:{port}"
    server.shutdown()
    server.server_close()
