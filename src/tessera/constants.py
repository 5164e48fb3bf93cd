"""Constants for Tessera."""

from datetime import timedelta

__all__ = [
    "BASE64URL_REGEX",
    "DEFAULT_LEEWAY",
    "DEFAULT_TOKEN_LIFETIME",
    "LOGGER_NAME",
    "MAX_TIMESTAMP",
    "NONE_ALGORITHM",
    "SEGMENT_COUNT",
    "TOKEN_TYPE",
]

BASE64URL_REGEX = "[A-Za-z0-9_-]*"
"""Characters allowed in a base64url segment (padding is never emitted)."""

DEFAULT_LEEWAY = timedelta(seconds=0)
"""Default tolerance applied to time-based claim checks."""

DEFAULT_TOKEN_LIFETIME = timedelta(hours=1)
"""Default lifetime of tokens minted by the issuer."""

LOGGER_NAME = "tessera"
"""Name of the structlog logger used when none is provided."""

MAX_TIMESTAMP = 253402300799
"""Last second of year 9999, the largest time a claim is compared at."""

NONE_ALGORITHM = "none"
"""JWS name of the unsigned algorithm."""

SEGMENT_COUNT = 3
"""Number of dot-separated segments in a compact token."""

TOKEN_TYPE = "JWT"
"""Default value of the ``typ`` header."""
