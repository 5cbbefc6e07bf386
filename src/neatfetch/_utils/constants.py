# Environment variables
ENV_TIMEOUT = "NEATFETCH_TIMEOUT"
ENV_TOTAL_TIMEOUT = "NEATFETCH_TOTAL_TIMEOUT"
ENV_RETRY = "NEATFETCH_RETRY"
ENV_RETRY_DELAY = "NEATFETCH_RETRY_DELAY"
ENV_BASE_URL = "NEATFETCH_BASE_URL"
ENV_ORIGIN = "NEATFETCH_ORIGIN"
ENV_DISABLE_SSL = "NEATFETCH_DISABLE_SSL"
ENV_HTTP_TIMEOUT = "NEATFETCH_HTTP_TIMEOUT"

# Headers
HEADER_CONTENT_TYPE = "content-type"
HEADER_CONTENT_LENGTH = "content-length"
HEADER_RETRY_AFTER = "retry-after"

# Defaults
DEFAULT_RETRY_DELAY = 1.0
LOGGER_NAME = "neatfetch"
