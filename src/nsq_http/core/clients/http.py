"""Content-negotiating HTTP client for the NSQ administrative API."""

import logging
import re
from typing import Any, Iterable, Optional, Type, Union, get_origin

import httpx
from pydantic import BaseModel, TypeAdapter, ValidationError

from ...constants import ACCEPT_HEADER, ACCEPT_V1, DEFAULT_TIMEOUT, EMPTY_BODY
from ...models import DecodeMode, WrappedResponse
from ..config import HttpClientSettings
from .deadline import new_deadline_transport

logger = logging.getLogger(__name__)

RequestBody = Union[bytes, str, Iterable[bytes]]

# RFC 9110 token, which is what a method name must be
_METHOD_RE = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")

# Targets whose no-argument call is their zero value
_ZERO_CONSTRUCTIBLE = (dict, list, set, frozenset, tuple, str, bytes, int, float, bool)


class ApiRequestError(Exception):
    """Base exception for NSQ API request errors."""
    pass


class RequestBuildError(ApiRequestError):
    """Exception raised when the method or URL cannot form a request."""
    pass


class ApiConnectionError(ApiRequestError):
    """Exception raised when dialing, writing or reading the connection fails."""
    pass


class ApiTimeoutError(ApiConnectionError):
    """Exception raised when the connection deadline expires."""
    pass


class ApiStatusError(ApiRequestError):
    """Exception raised when the server answers with anything but 200."""

    def __init__(self, status_code: int, status_line: str, body: str):
        self.status_code = status_code
        self.status_line = status_line
        self.body = body
        super().__init__(f"got response {status_line} {body!r}")


class ApiDecodeError(ApiRequestError):
    """Exception raised when the response body does not decode into the target."""
    pass


def _status_line(response: httpx.Response) -> str:
    return f"{response.status_code} {response.reason_phrase}".rstrip()


def _zero_value(response_model: Optional[Type[Any]]) -> Any:
    """Value left in the target when an envelope carries no data."""
    if response_model is None:
        return {}
    if isinstance(response_model, type) and issubclass(response_model, BaseModel):
        return response_model.model_construct()
    origin = get_origin(response_model) or response_model
    if isinstance(origin, type) and issubclass(origin, _ZERO_CONSTRUCTIBLE):
        return origin()
    try:
        return TypeAdapter(response_model).validate_json(EMPTY_BODY)
    except ValidationError:
        return None


def _decode(content: bytes, mode: DecodeMode, response_model: Optional[Type[Any]]) -> Any:
    target = Any if response_model is None else response_model

    if mode is DecodeMode.RAW:
        return TypeAdapter(target).validate_json(content)

    envelope = TypeAdapter(WrappedResponse[target]).validate_json(content)
    # envelope.status_code repeats the HTTP status already checked
    if envelope.data is None:
        return _zero_value(response_model)
    return envelope.data


def _negotiate_v1(
    method: str,
    endpoint: str,
    body: Optional[RequestBody],
    response_model: Optional[Type[Any]],
    timeout: float,
    accept: str,
) -> Any:
    if not isinstance(method, str) or not _METHOD_RE.fullmatch(method):
        raise RequestBuildError(f"invalid method {method!r}")

    with httpx.Client(transport=new_deadline_transport(timeout), timeout=timeout) as client:
        try:
            request = client.build_request(
                method, endpoint, content=body, headers={ACCEPT_HEADER: accept}
            )
        except httpx.InvalidURL as e:
            raise RequestBuildError(f"invalid URL {endpoint!r}: {str(e)}") from e

        if request.url.scheme not in ("http", "https") or not request.url.host:
            raise RequestBuildError(f"invalid URL {endpoint!r}: absolute http(s) URL required")

        logger.debug(f"Making {method} request to {endpoint}")
        try:
            response = client.send(request)
        except httpx.TimeoutException as e:
            raise ApiTimeoutError(f"{method} {endpoint} timed out: {str(e)}") from e
        except httpx.UnsupportedProtocol as e:
            raise RequestBuildError(f"invalid URL {endpoint!r}: {str(e)}") from e
        except httpx.RequestError as e:
            raise ApiConnectionError(f"{method} {endpoint} failed: {str(e)}") from e

    if response.status_code != 200:
        logger.debug(f"{method} {endpoint} returned {response.status_code}")
        raise ApiStatusError(response.status_code, _status_line(response), response.text)

    content = response.content or EMPTY_BODY
    mode = DecodeMode.from_headers(response.headers)
    logger.debug(f"{method} {endpoint} successful, decoding {mode.value} body")

    try:
        return _decode(content, mode, response_model)
    except ValidationError as e:
        raise ApiDecodeError(f"cannot decode {mode.value} response from {endpoint}: {str(e)}") from e


def api_request_negotiate_v1(
    method: str,
    endpoint: str,
    body: Optional[RequestBody] = None,
    response_model: Optional[Type[Any]] = None,
) -> Any:
    """Call an NSQ HTTP endpoint and decode its JSON response.

    The request advertises ``Accept: application/vnd.nsq; version=1.0``.
    Servers that honour it answer with ``X-NSQ-Content-Type: nsq; version=1.0``
    and a bare payload; older servers wrap the payload in a
    ``{"status_txt", "status_code", "data"}`` envelope, which is unwrapped
    here. Every call uses a fresh client with a 2 second dial timeout and a
    2 second deadline re-armed before each socket read and write.

    Args:
        method: HTTP method
        endpoint: Absolute URL to request
        body: Optional request body
        response_model: Type to validate the payload into (a pydantic model,
            ``dict``, ``list[str]``...). ``None`` returns plain JSON values.

    Returns:
        The decoded payload. An empty body is read as ``{}``; an envelope
        without data yields the target's zero value (``[]``, ``0``, an
        unvalidated model instance, ``{}`` with no target, ``None`` when the
        target has none).

    Raises:
        RequestBuildError: If the method or URL is unusable
        ApiTimeoutError: If a dial, read or write deadline expires
        ApiConnectionError: If the connection fails otherwise
        ApiStatusError: If the response status is not 200
        ApiDecodeError: If the body is not valid JSON for ``response_model``
    """
    return _negotiate_v1(method, endpoint, body, response_model, DEFAULT_TIMEOUT, ACCEPT_V1)


class ApiClient:
    """NSQ API client with configurable timeout.

    Holds settings only; every request builds its own connection, so one
    instance can be shared between threads.
    """

    def __init__(self, settings: Optional[HttpClientSettings] = None):
        """Initialize the client.

        Args:
            settings: HTTP client configuration settings
        """
        self.settings = settings or HttpClientSettings()
        self.logger = logging.getLogger(__name__)

    def request(
        self,
        method: str,
        endpoint: str,
        body: Optional[RequestBody] = None,
        response_model: Optional[Type[Any]] = None,
    ) -> Any:
        """Make a request; same contract as :func:`api_request_negotiate_v1`."""
        self.logger.debug(f"{method} {endpoint} with {self.settings.timeout}s deadline")
        return _negotiate_v1(
            method,
            endpoint,
            body,
            response_model,
            self.settings.timeout,
            self.settings.accept,
        )

    def get(self, endpoint: str, response_model: Optional[Type[Any]] = None) -> Any:
        return self.request("GET", endpoint, response_model=response_model)

    def post(
        self,
        endpoint: str,
        body: Optional[RequestBody] = None,
        response_model: Optional[Type[Any]] = None,
    ) -> Any:
        return self.request("POST", endpoint, body=body, response_model=response_model)
