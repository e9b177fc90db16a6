"""Client configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings
from enum import Enum

from ..constants import ACCEPT_V1, DEFAULT_TIMEOUT, LOG_FORMAT_JSON, LOG_FORMAT_TEXT


class LogFormat(str, Enum):
    """Supported log output formats."""
    JSON = LOG_FORMAT_JSON
    TEXT = LOG_FORMAT_TEXT


class HttpClientSettings(BaseSettings):
    """HTTP client configuration settings."""
    
    timeout: float = Field(
        default=DEFAULT_TIMEOUT,
        gt=0,
        description="Dial timeout and sliding per-read/per-write deadline in seconds"
    )
    accept: str = Field(default=ACCEPT_V1, description="Accept header sent with every request")
    
    class Config:
        env_prefix = "NSQ_HTTP_"
        env_file = ".env"
        case_sensitive = False


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""
    
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: LogFormat = Field(default=LogFormat.JSON, description="Log format (json or text)")
    
    class Config:
        env_prefix = "NSQ_HTTP_LOG_"
        env_file = ".env"
        case_sensitive = False
