from __future__ import annotations

import gzip
import logging
from typing import TYPE_CHECKING
from unittest.mock import Mock, patch

import httpx
import pytest

from tests.helpers import TEST_URL, raw_response
from webexchange import ClientConfig, ExchangeEngine, RequestSpec, correlation_scope, execute
from webexchange.exchange import should_compress

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator


class FailingStream(httpx.SyncByteStream):
    """Stream that fails after the status line and headers were
    received."""

    def __iter__(self) -> Iterator[bytes]:
        msg = "connection reset"
        raise OSError(msg)


def ok_handler(request: httpx.Request) -> httpx.Response:
    return raw_response(200, b'{"a":1}', [("Content-Type", "application/json")])


#####################################
#     Tests for should_compress     #
#####################################


def test_should_compress_default() -> None:
    assert should_compress(RequestSpec("GET", TEST_URL))


@pytest.mark.parametrize("method", ["HEAD", "head"])
def test_should_compress_head(method: str) -> None:
    assert not should_compress(RequestSpec(method, TEST_URL))


def test_should_compress_disabled() -> None:
    assert not should_compress(RequestSpec("GET", TEST_URL, disable_compression=True))


@pytest.mark.parametrize("header", ["Accept-Encoding", "accept-encoding", "Range"])
def test_should_compress_caller_header(header: str) -> None:
    assert not should_compress(RequestSpec("GET", TEST_URL, headers={header: "x"}))


######################################################
#     Tests for ExchangeEngine.execute (success)     #
######################################################


def test_execute_success(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    spec = RequestSpec("GET", TEST_URL)
    envelope = make_engine(ok_handler).execute(spec)

    assert envelope.status == 200
    assert envelope.success
    assert envelope.body == b'{"a":1}'
    assert envelope.headers.get("content-type") == "application/json"
    assert not envelope.decompressed
    assert envelope.exception is None
    assert envelope.request is not spec
    assert envelope.request.url == TEST_URL
    assert len(captured) == 1
    assert captured[0].method == "GET"
    assert str(captured[0].url) == TEST_URL


def test_execute_does_not_mutate_spec(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    spec = RequestSpec("GET", TEST_URL, headers={"Accept": "application/json"})
    with correlation_scope("abc"):
        envelope = make_engine(ok_handler).execute(spec)
    assert list(spec.headers) == [("Accept", "application/json")]
    assert envelope.request.headers.get("Accept-Encoding") == "gzip"
    assert envelope.request.headers.get("X-Correlation-ID") == "abc"


def test_execute_sends_body_and_content_length(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    make_engine(ok_handler).execute(RequestSpec("POST", TEST_URL, body=b"payload"))
    assert captured[0].content == b"payload"
    assert captured[0].headers["Content-Length"] == "7"


def test_execute_empty_body_content_length(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    make_engine(ok_handler).execute(
        RequestSpec("GET", TEST_URL, headers={"Content-Length": "99"})
    )
    assert captured[0].headers.get_list("Content-Length") == ["0"]
    assert captured[0].content == b""


def test_execute_repeated_request_headers(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    spec = RequestSpec("GET", TEST_URL)
    spec.headers.add("X-Multi", "a")
    spec.headers.add("X-Multi", "b")
    make_engine(ok_handler).execute(spec)
    assert captured[0].headers.get_list("X-Multi") == ["a", "b"]


def test_execute_repeated_response_headers(make_engine: Callable[..., ExchangeEngine]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return raw_response(200, b"", [("Set-Cookie", "a=1"), ("Set-Cookie", "b=2")])

    envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL))
    assert envelope.headers.get_all("set-cookie") == ["a=1", "b=2"]
    assert envelope.headers.get("Set-Cookie") == "a=1"


def test_execute_error_status_is_a_result(make_engine: Callable[..., ExchangeEngine]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return raw_response(404, b"not here", [("Content-Type", "text/plain")])

    envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL))
    assert envelope.status == 404
    assert not envelope.success
    assert envelope.exception is None
    assert envelope.body == b"not here"


def test_execute_response_already_in_memory(make_engine: Callable[..., ExchangeEngine]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"abc")

    assert make_engine(handler).execute(RequestSpec("GET", TEST_URL)).body == b"abc"


def test_execute_engine_is_reusable(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    engine = make_engine(ok_handler)
    spec = RequestSpec("GET", TEST_URL)
    assert engine.execute(spec).success
    assert engine.execute(spec).success
    assert len(captured) == 2


#############################################
#     Tests for compression negotiation     #
#############################################


def gzip_handler(request: httpx.Request) -> httpx.Response:
    return raw_response(
        200,
        gzip.compress(b"hello world" * 100),
        [("Content-Type", "text/plain"), ("Content-Encoding", "gzip")],
    )


def test_execute_negotiates_gzip(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    envelope = make_engine(gzip_handler).execute(RequestSpec("GET", TEST_URL))
    assert captured[0].headers["Accept-Encoding"] == "gzip"
    assert envelope.decompressed
    assert envelope.body == b"hello world" * 100


def test_execute_gzip_small_chunks(captured: list[httpx.Request]) -> None:
    config = ClientConfig(trust_env=False, chunk_size=3)
    with ExchangeEngine(config=config, transport=httpx.MockTransport(gzip_handler)) as engine:
        envelope = engine.execute(RequestSpec("GET", TEST_URL))
    assert envelope.decompressed
    assert envelope.body == b"hello world" * 100


def test_execute_gzip_in_memory_response(make_engine: Callable[..., ExchangeEngine]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            200, headers={"Content-Encoding": "gzip"}, content=gzip.compress(b"abc")
        )

    envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL))
    assert envelope.decompressed
    assert envelope.body == b"abc"


def test_execute_in_memory_gzip_with_caller_accept_encoding_keeps_wire_bytes(
    make_engine: Callable[..., ExchangeEngine],
) -> None:
    compressed = gzip.compress(b"abc")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=compressed)

    spec = RequestSpec("GET", TEST_URL, headers={"Accept-Encoding": "gzip"})
    envelope = make_engine(handler).execute(spec)
    assert not envelope.decompressed
    assert envelope.body == compressed


def test_execute_in_memory_gzip_with_compression_disabled_keeps_wire_bytes(
    make_engine: Callable[..., ExchangeEngine],
) -> None:
    compressed = gzip.compress(b"abc")

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"Content-Encoding": "gzip"}, content=compressed)

    envelope = make_engine(handler).execute(
        RequestSpec("GET", TEST_URL, disable_compression=True)
    )
    assert not envelope.decompressed
    assert envelope.body == compressed


def test_execute_caller_accept_encoding_is_not_decompressed(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    spec = RequestSpec("GET", TEST_URL, headers={"Accept-Encoding": "gzip"})
    envelope = make_engine(gzip_handler).execute(spec)
    assert captured[0].headers.get_list("Accept-Encoding") == ["gzip"]
    assert not envelope.decompressed
    assert gzip.decompress(envelope.body) == b"hello world" * 100


def test_execute_disable_compression(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    make_engine(ok_handler).execute(RequestSpec("GET", TEST_URL, disable_compression=True))
    assert "Accept-Encoding" not in captured[0].headers


def test_execute_head_without_compression(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    make_engine(ok_handler).execute(RequestSpec("HEAD", TEST_URL))
    assert "Accept-Encoding" not in captured[0].headers


def test_execute_range_without_compression(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    make_engine(ok_handler).execute(RequestSpec("GET", TEST_URL, headers={"Range": "bytes=0-9"}))
    assert "Accept-Encoding" not in captured[0].headers


def test_execute_other_content_encoding_is_not_decompressed(
    make_engine: Callable[..., ExchangeEngine],
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return raw_response(200, b"\x00\x01", [("Content-Encoding", "br")])

    envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL))
    assert not envelope.decompressed
    assert envelope.body == b"\x00\x01"


###################################################
#     Tests for transport failure capture         #
###################################################


def test_execute_captures_connect_error(
    make_engine: Callable[..., ExchangeEngine], caplog: pytest.LogCaptureFixture
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "connection refused"
        raise httpx.ConnectError(msg, request=request)

    with caplog.at_level(logging.DEBUG, logger="webexchange.exchange"):
        envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL))

    assert envelope.status == 0
    assert not envelope.success
    assert isinstance(envelope.exception, httpx.ConnectError)
    assert envelope.body == b""
    assert len(envelope.headers) == 0
    assert "failed with ConnectError" in caplog.text


def test_execute_captures_timeout(make_engine: Callable[..., ExchangeEngine]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        msg = "timed out"
        raise httpx.ReadTimeout(msg, request=request)

    envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL, timeout=0.01))
    assert envelope.status == 0
    assert isinstance(envelope.exception, httpx.ReadTimeout)


def test_execute_captures_partial_response(make_engine: Callable[..., ExchangeEngine]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        response = raw_response(503, b"busy", [("Retry-After", "1")])
        msg = "service unavailable"
        raise httpx.HTTPStatusError(msg, request=request, response=response)

    envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL))
    assert envelope.status == 503
    assert envelope.headers.get("Retry-After") == "1"
    assert envelope.body == b"busy"
    assert isinstance(envelope.exception, httpx.HTTPStatusError)
    assert not envelope.success


def test_execute_partial_response_read_failure_is_suppressed(
    make_engine: Callable[..., ExchangeEngine], caplog: pytest.LogCaptureFixture
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        response = httpx.Response(502, headers={"X-Upstream": "a"}, stream=FailingStream())
        msg = "bad gateway"
        raise httpx.HTTPStatusError(msg, request=request, response=response)

    with caplog.at_level(logging.DEBUG, logger="webexchange.exchange"):
        envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL))

    assert envelope.status == 502
    assert envelope.headers.get("X-Upstream") == "a"
    assert envelope.body == b""
    assert isinstance(envelope.exception, httpx.HTTPStatusError)
    assert "Ignoring OSError while reading the error response" in caplog.text


def test_execute_body_read_failure_keeps_status(
    make_engine: Callable[..., ExchangeEngine],
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, headers={"X-Id": "1"}, stream=FailingStream())

    envelope = make_engine(handler).execute(RequestSpec("GET", TEST_URL))
    assert envelope.status == 200
    assert envelope.headers.get("X-Id") == "1"
    assert isinstance(envelope.exception, OSError)
    assert not envelope.success


@pytest.mark.parametrize("exc_type", [MemoryError, RecursionError, KeyboardInterrupt])
def test_execute_fatal_errors_propagate(
    make_engine: Callable[..., ExchangeEngine], exc_type: type[BaseException]
) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise exc_type

    with pytest.raises(exc_type):
        make_engine(handler).execute(RequestSpec("GET", TEST_URL))


#######################################
#     Tests for request validation    #
#######################################


def test_execute_none_spec(make_engine: Callable[..., ExchangeEngine]) -> None:
    with pytest.raises(ValueError, match=r"request must not be None"):
        make_engine(ok_handler).execute(None)


@pytest.mark.parametrize(
    ("spec", "message"),
    [
        (RequestSpec(None, TEST_URL), r"request.method must contain a value"),
        (RequestSpec("", TEST_URL), r"request.method must contain a value"),
        (RequestSpec("GET", None), r"request.url must not be None"),
        (RequestSpec("GET", "/relative"), r"request.url must be an absolute URL"),
        (RequestSpec("GET", TEST_URL, timeout=-1), r"request.timeout must be >= 0"),
    ],
)
def test_execute_invalid_spec_raises_before_io(
    make_engine: Callable[..., ExchangeEngine],
    captured: list[httpx.Request],
    spec: RequestSpec,
    message: str,
) -> None:
    with pytest.raises(ValueError, match=message):
        make_engine(ok_handler).execute(spec)
    assert captured == []


########################################
#     Tests for correlation IDs        #
########################################


def test_execute_without_correlation_id(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    make_engine(ok_handler).execute(RequestSpec("GET", TEST_URL))
    assert "X-Correlation-ID" not in captured[0].headers


def test_execute_ambient_correlation_id(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    with correlation_scope("ambient-1"):
        make_engine(ok_handler).execute(RequestSpec("GET", TEST_URL))
    assert captured[0].headers["X-Correlation-ID"] == "ambient-1"


def test_execute_explicit_correlation_id_wins(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    with correlation_scope("ambient-1"):
        make_engine(ok_handler).execute(RequestSpec("GET", TEST_URL), correlation_id="explicit")
    assert captured[0].headers.get_list("X-Correlation-ID") == ["explicit"]


def test_execute_correlation_id_overwrites_caller_value(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    spec = RequestSpec("GET", TEST_URL, headers={"x-correlation-id": "caller"})
    make_engine(ok_handler).execute(spec, correlation_id="engine")
    assert captured[0].headers.get_list("X-Correlation-ID") == ["engine"]


def test_execute_caller_correlation_header_kept_without_id(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    spec = RequestSpec("GET", TEST_URL, headers={"X-Correlation-ID": "caller"})
    make_engine(ok_handler).execute(spec)
    assert captured[0].headers["X-Correlation-ID"] == "caller"


def test_execute_custom_correlation_header(captured: list[httpx.Request]) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return ok_handler(request)

    config = ClientConfig(trust_env=False, correlation_id_header="X-Request-ID")
    with ExchangeEngine(config=config, transport=httpx.MockTransport(handler)) as engine:
        engine.execute(RequestSpec("GET", TEST_URL), correlation_id="req-1")
    assert captured[0].headers["X-Request-ID"] == "req-1"
    assert "X-Correlation-ID" not in captured[0].headers


#####################################
#     Tests for request options     #
#####################################


def test_execute_disable_keep_alive(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    make_engine(ok_handler).execute(RequestSpec("GET", TEST_URL, disable_keep_alive=True))
    assert captured[0].headers["Connection"] == "close"


def test_execute_disable_keep_alive_keeps_caller_connection(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    spec = RequestSpec("GET", TEST_URL, headers={"Connection": "upgrade"}, disable_keep_alive=True)
    make_engine(ok_handler).execute(spec)
    assert captured[0].headers.get_list("Connection") == ["upgrade"]


def redirect_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/data":
        return raw_response(302, b"", [("Location", "https://api.example.com/moved")])
    return raw_response(200, b"moved")


def test_execute_follows_redirects(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    envelope = make_engine(redirect_handler).execute(RequestSpec("GET", TEST_URL))
    assert envelope.status == 200
    assert envelope.body == b"moved"
    assert [request.url.path for request in captured] == ["/data", "/moved"]


def test_execute_disable_auto_redirect(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    envelope = make_engine(redirect_handler).execute(
        RequestSpec("GET", TEST_URL, disable_auto_redirect=True)
    )
    assert envelope.status == 302
    assert envelope.headers.get("Location") == "https://api.example.com/moved"
    assert len(captured) == 1


def test_execute_credentials(
    make_engine: Callable[..., ExchangeEngine], captured: list[httpx.Request]
) -> None:
    make_engine(ok_handler).execute(RequestSpec("GET", TEST_URL, credentials=("user", "pass")))
    assert captured[0].headers["Authorization"] == "Basic dXNlcjpwYXNz"


def test_open_client_uses_request_timeout(config: ClientConfig) -> None:
    engine = ExchangeEngine(config=config)
    with engine._open_client(RequestSpec("GET", TEST_URL, timeout=2.5)) as client:
        assert client.timeout == httpx.Timeout(2.5)
        assert client.follow_redirects


def test_open_client_uses_default_timeout(config: ClientConfig) -> None:
    engine = ExchangeEngine(config=config.merge(timeout=4.0))
    spec = RequestSpec("GET", TEST_URL, disable_auto_redirect=True)
    with engine._open_client(spec) as client:
        assert client.timeout == httpx.Timeout(4.0)
        assert not client.follow_redirects


####################################
#     Tests for engine lifecycle   #
####################################


def test_engine_default_config() -> None:
    assert ExchangeEngine().config == ClientConfig()


def test_engine_close_closes_transport() -> None:
    transport = Mock(spec=httpx.BaseTransport)
    with ExchangeEngine(transport=transport):
        pass
    transport.close.assert_called_once_with()


def test_engine_close_without_transport() -> None:
    ExchangeEngine().close()


def test_execute_does_not_close_shared_transport(config: ClientConfig) -> None:
    transport = Mock(wraps=httpx.MockTransport(ok_handler))
    engine = ExchangeEngine(config=config, transport=transport)
    assert engine.execute(RequestSpec("GET", TEST_URL)).success
    transport.handle_request.assert_called_once()
    transport.close.assert_not_called()


def test_module_execute_uses_default_engine() -> None:
    spec = RequestSpec("GET", TEST_URL)
    with patch.object(ExchangeEngine, "execute", return_value=Mock()) as mock_execute:
        result = execute(spec, correlation_id="abc")
    assert result is mock_execute.return_value
    mock_execute.assert_called_once_with(spec, correlation_id="abc")
