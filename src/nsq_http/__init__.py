"""nsq_http - content-negotiating client for the NSQ administrative HTTP API."""

__version__ = "0.1.0"

from .constants import (
    ACCEPT_V1,
    CONTENT_TYPE_HEADER,
    CONTENT_TYPE_V1,
    DEFAULT_TIMEOUT,
)

from .models import (
    DecodeMode,
    WrappedResponse,
)

from .core.config import (
    HttpClientSettings,
    LoggingSettings,
)

from .core.clients.deadline import (
    DeadlineTransport,
    new_deadline_transport,
)

from .core.clients.http import (
    ApiClient,
    ApiConnectionError,
    ApiDecodeError,
    ApiRequestError,
    ApiStatusError,
    ApiTimeoutError,
    RequestBuildError,
    api_request_negotiate_v1,
)

__all__ = [
    # Constants
    "ACCEPT_V1",
    "CONTENT_TYPE_HEADER",
    "CONTENT_TYPE_V1",
    "DEFAULT_TIMEOUT",
    # Models
    "DecodeMode",
    "WrappedResponse",
    # Settings
    "HttpClientSettings",
    "LoggingSettings",
    # Transport
    "DeadlineTransport",
    "new_deadline_transport",
    # Client
    "ApiClient",
    "ApiConnectionError",
    "ApiDecodeError",
    "ApiRequestError",
    "ApiStatusError",
    "ApiTimeoutError",
    "RequestBuildError",
    "api_request_negotiate_v1",
]
