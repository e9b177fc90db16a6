"""Protocol constants for the NSQ HTTP API."""

# Content negotiation
ACCEPT_HEADER = "Accept"
ACCEPT_V1 = "application/vnd.nsq; version=1.0"

# Servers that speak the v1 protocol mark unwrapped bodies with this header
CONTENT_TYPE_HEADER = "X-NSQ-Content-Type"
CONTENT_TYPE_V1 = "nsq; version=1.0"

# Timeouts (seconds)
DEFAULT_TIMEOUT = 2.0

# Body substituted when the server answers 200 with nothing
EMPTY_BODY = b"{}"

# Logging Formats
LOG_FORMAT_JSON = "json"
LOG_FORMAT_TEXT = "text"
DEFAULT_LOG_FORMAT = LOG_FORMAT_JSON
