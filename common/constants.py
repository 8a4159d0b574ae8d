"""Project-wide constants (part sizing, channel limits, timeouts, retry policy)."""

KIB: int = 1024
MIB: int = 1024 * KIB
GIB: int = 1024 * MIB

# Headroom reserved in every part for the channel's multipart/JSON overhead
SAFETY_MARGIN_BYTES: int = 16 * KIB

# Largest attachment a webhook channel accepts
CHANNEL_MAX_PAYLOAD_BYTES: int = 10 * MIB

PART_EXTENSION: str = "nitro"
PART_INDEX_WIDTH: int = 3

DEFAULT_PART_SIZE: int = 25
DEFAULT_SIZE_UNIT: str = "MB"
DEFAULT_NUM_PARTS: int = 5

SIZE_UNITS = {
    "KB": KIB,
    "MB": MIB,
    "GB": GIB,
}

DEFAULT_CHANNEL_COOLDOWN_SECONDS: float = 1.0

UPLOAD_CONNECT_TIMEOUT_SECONDS: float = 30.0
UPLOAD_READ_TIMEOUT_SECONDS: float = 60.0
UPLOAD_WRITE_TIMEOUT_SECONDS: float = 60.0

FETCH_CONNECT_TIMEOUT_SECONDS: float = 30.0
FETCH_READ_TIMEOUT_SECONDS: float = 60.0

FETCH_MAX_ATTEMPTS: int = 3
FETCH_BACKOFF_MS: int = 1000

STREAM_PIECE_SIZE_BYTES: int = 64 * KIB

DEFAULT_MIME_TYPE: str = "application/octet-stream"
