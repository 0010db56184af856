"""Constants used throughout chunkvault."""

# Discord REST API root
DEFAULT_API_BASE = "https://discord.com/api/v10"

# Default attachment size for one chunk (bytes); stays under the 10 MB upload limit
DEFAULT_CHUNK_SIZE = 9_500_000

# Largest chunk size accepted from configuration
MAX_CHUNK_SIZE_CAP = 25 * 1024 * 1024

# Plaintext window read and encrypted at a time
DEFAULT_WINDOW_SIZE = 5 * 1024 * 1024

# Message history page size (Discord maximum)
PAGE_SIZE = 100

# Bulk delete accepts between 2 and 100 ids per call
BULK_DELETE_MAX = 100
BULK_DELETE_MIN = 2

# Bulk delete only accepts messages younger than this
RETENTION_WINDOW_MS = 14 * 24 * 60 * 60 * 1000

# Milliseconds between the Unix epoch and the first second of 2015
DISCORD_EPOCH_MS = 1_420_070_400_000

# Wire prefixes
METADATA_PREFIX = "metadata:"
CHUNK_MARKER = "_chunk_"

# Status code signalling temporary overload
RATE_LIMIT_STATUS = 429

# Retry attempts for rate limited calls
MAX_RETRY_ATTEMPTS = 3

# Linear backoff step between retries (seconds)
RETRY_BACKOFF_SECONDS = 1.0

DEFAULT_MEDIA_TYPE = "application/octet-stream"
