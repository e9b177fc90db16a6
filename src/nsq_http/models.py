"""Wire models for NSQ HTTP API responses."""

from enum import Enum
import httpx
from pydantic import BaseModel, Field
from typing import Generic, Mapping, Optional, TypeVar, Union

from .constants import CONTENT_TYPE_HEADER, CONTENT_TYPE_V1


T = TypeVar("T")


class DecodeMode(str, Enum):
    """How a successful response body maps onto the caller's target."""
    RAW = "raw"              # body is the payload itself
    ENVELOPED = "enveloped"  # payload sits under the envelope's "data" key

    @classmethod
    def from_headers(cls, headers: Union[httpx.Headers, Mapping[str, str]]) -> "DecodeMode":
        """Pick the decode mode advertised by the response headers.

        Header names are matched case-insensitively, plain dicts included.
        """
        if httpx.Headers(headers).get(CONTENT_TYPE_HEADER) == CONTENT_TYPE_V1:
            return cls.RAW
        return cls.ENVELOPED


class WrappedResponse(BaseModel, Generic[T]):
    """Legacy response envelope.

    Older servers that do not send ``X-NSQ-Content-Type`` wrap every payload
    as ``{"status_txt": ..., "status_code": ..., "data": ...}``. Parametrize
    with the payload type, e.g. ``WrappedResponse[TopicStats]``.
    """
    status_txt: Optional[str] = Field(default="", description="Textual status, e.g. OK")
    status_code: Optional[int] = Field(default=0, description="Numeric status code")
    data: Optional[T] = Field(default=None, description="Response payload")
