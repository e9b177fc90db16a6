"""Deadline-enforcing network layer for httpx.

httpx's own timeouts are taken from the request; the classes here ignore
those and apply one fixed timeout to the dial and, as a sliding deadline,
to every individual read and write on the socket. A slow peer that keeps
sending a byte every ``timeout - ε`` seconds will therefore never trip the
deadline; the total exchange time is not bounded.
"""

import contextlib
import logging
from typing import Any, Iterable, Iterator, List, Optional, Tuple, Type

import httpcore
import httpx

from ...constants import DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


# httpcore raises its own exception types; httpx callers expect httpx ones.
# Subclasses must precede their bases.
_EXCEPTION_MAP: List[Tuple[Type[Exception], Type[httpx.RequestError]]] = [
    (httpcore.ConnectTimeout, httpx.ConnectTimeout),
    (httpcore.ReadTimeout, httpx.ReadTimeout),
    (httpcore.WriteTimeout, httpx.WriteTimeout),
    (httpcore.PoolTimeout, httpx.PoolTimeout),
    (httpcore.TimeoutException, httpx.TimeoutException),
    (httpcore.ConnectError, httpx.ConnectError),
    (httpcore.ReadError, httpx.ReadError),
    (httpcore.WriteError, httpx.WriteError),
    (httpcore.NetworkError, httpx.NetworkError),
    (httpcore.UnsupportedProtocol, httpx.UnsupportedProtocol),
    (httpcore.LocalProtocolError, httpx.LocalProtocolError),
    (httpcore.RemoteProtocolError, httpx.RemoteProtocolError),
    (httpcore.ProtocolError, httpx.ProtocolError),
]


@contextlib.contextmanager
def map_transport_errors(request: Optional[httpx.Request] = None) -> Iterator[None]:
    """Re-raise httpcore exceptions as their httpx equivalents."""
    try:
        yield
    except httpx.HTTPError:
        raise
    except Exception as exc:
        for core_exc, httpx_exc in _EXCEPTION_MAP:
            if isinstance(exc, core_exc):
                raise httpx_exc(str(exc), request=request) from exc
        raise


class DeadlinedStream(httpcore.NetworkStream):
    """Network stream that re-arms a fixed deadline before every read and write."""

    def __init__(self, stream: httpcore.NetworkStream, timeout: float):
        self.timeout = timeout
        self._stream = stream

    def read(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        return self._stream.read(max_bytes, timeout=self.timeout)

    def write(self, buffer: bytes, timeout: Optional[float] = None) -> None:
        self._stream.write(buffer, timeout=self.timeout)

    def close(self) -> None:
        self._stream.close()

    def start_tls(
        self,
        ssl_context: Any,
        server_hostname: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> httpcore.NetworkStream:
        # The upgraded stream keeps the same deadline behaviour.
        tls_stream = self._stream.start_tls(
            ssl_context, server_hostname=server_hostname, timeout=self.timeout
        )
        return DeadlinedStream(tls_stream, self.timeout)

    def get_extra_info(self, info: str) -> Any:
        return self._stream.get_extra_info(info)


class DeadlineBackend(httpcore.NetworkBackend):
    """Network backend that dials with a fixed timeout and hands out deadlined streams."""

    def __init__(self, timeout: float, backend: Optional[httpcore.NetworkBackend] = None):
        """Initialize the backend.

        Args:
            timeout: Dial timeout and per-operation deadline in seconds
            backend: Backend doing the actual socket work, defaults to httpcore's sync backend
        """
        self.timeout = timeout
        self._backend = backend or httpcore.SyncBackend()

    def connect_tcp(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None,
        local_address: Optional[str] = None,
        socket_options: Optional[Iterable[Any]] = None,
    ) -> httpcore.NetworkStream:
        logger.debug(f"Dialing {host}:{port} with {self.timeout}s deadline")
        stream = self._backend.connect_tcp(
            host,
            port,
            timeout=self.timeout,
            local_address=local_address,
            socket_options=socket_options,
        )
        return DeadlinedStream(stream, self.timeout)

    def connect_unix_socket(
        self,
        path: str,
        timeout: Optional[float] = None,
        socket_options: Optional[Iterable[Any]] = None,
    ) -> httpcore.NetworkStream:
        logger.debug(f"Dialing unix socket {path} with {self.timeout}s deadline")
        stream = self._backend.connect_unix_socket(
            path, timeout=self.timeout, socket_options=socket_options
        )
        return DeadlinedStream(stream, self.timeout)

    def sleep(self, seconds: float) -> None:
        self._backend.sleep(seconds)


class _ResponseStream(httpx.SyncByteStream):
    """Adapts an httpcore response stream to httpx, mapping read errors."""

    def __init__(self, core_stream: Iterable[bytes]):
        self._core_stream = core_stream

    def __iter__(self) -> Iterator[bytes]:
        with map_transport_errors():
            for part in self._core_stream:
                yield part

    def close(self) -> None:
        if hasattr(self._core_stream, "close"):
            self._core_stream.close()


class DeadlineTransport(httpx.BaseTransport):
    """httpx transport whose connections enforce a sliding per-I/O deadline."""

    def __init__(self, timeout: float = DEFAULT_TIMEOUT,
                 network_backend: Optional[httpcore.NetworkBackend] = None,
                 uds: Optional[str] = None):
        """Initialize the transport.

        Args:
            timeout: Dial timeout and per-operation deadline in seconds
            network_backend: Optional backend to wrap, mainly for tests
            uds: Unix socket path to dial instead of the URL's host and port
        """
        self.timeout = timeout
        self.uds = uds
        # Same TLS defaults as httpx.HTTPTransport, SSL_CERT_FILE/SSL_CERT_DIR included
        self._pool = httpcore.ConnectionPool(
            ssl_context=httpx.create_ssl_context(),
            uds=uds,
            network_backend=DeadlineBackend(timeout, network_backend),
        )

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        core_request = httpcore.Request(
            method=request.method,
            url=httpcore.URL(
                scheme=request.url.raw_scheme,
                host=request.url.raw_host,
                port=request.url.port,
                target=request.url.raw_path,
            ),
            headers=request.headers.raw,
            content=request.stream,
            extensions=request.extensions,
        )
        with map_transport_errors(request):
            core_response = self._pool.handle_request(core_request)

        return httpx.Response(
            status_code=core_response.status,
            headers=core_response.headers,
            stream=_ResponseStream(core_response.stream),
            extensions=core_response.extensions,
        )

    def close(self) -> None:
        self._pool.close()


def new_deadline_transport(timeout: float = DEFAULT_TIMEOUT) -> DeadlineTransport:
    """Create a transport that dials and does I/O under a ``timeout``-second deadline."""
    return DeadlineTransport(timeout)
