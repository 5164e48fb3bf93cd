"""General utility functions."""

from __future__ import annotations

import base64
import binascii
import os
import re
from datetime import UTC, datetime

from .constants import BASE64URL_REGEX

__all__ = [
    "add_padding",
    "base64url_decode",
    "base64url_encode",
    "datetime_from_timestamp",
    "random_128_bits",
]


def add_padding(encoded: str) -> str:
    """Add padding to base64 encoded bytes.

    Parameters
    ----------
    encoded
        A base64-encoded string, possibly with the padding removed.

    Returns
    -------
    str
        A correctly-padded version of the encoded string.
    """
    underflow = len(encoded) % 4
    if underflow:
        return encoded + ("=" * (4 - underflow))
    else:
        return encoded


def base64url_encode(data: bytes) -> str:
    """Encode bytes in URL-safe base64 without padding.

    Parameters
    ----------
    data
        Raw bytes to encode.

    Returns
    -------
    str
        The base64url encoding defined in RFC 7515, with the ``-`` and ``_``
        characters and all trailing ``=`` removed.
    """
    return base64.urlsafe_b64encode(data).decode().rstrip("=")


def base64url_decode(data: str) -> bytes:
    """Decode URL-safe base64 without padding.

    Parameters
    ----------
    data
        Base64url-encoded data with the padding removed.

    Returns
    -------
    bytes
        The decoded bytes.

    Raises
    ------
    ValueError
        Raised if the data contains characters outside the base64url
        alphabet (padding included), has an impossible length, or is not
        the canonical encoding of the bytes it decodes to (unused trailing
        bits are set).
    """
    if not re.fullmatch(BASE64URL_REGEX, data):
        raise ValueError("Invalid character in base64url data")
    try:
        decoded = base64.urlsafe_b64decode(add_padding(data))
    except binascii.Error as e:
        raise ValueError("Invalid base64url data length") from e

    # Only the canonical encoding is accepted so that every encoded segment
    # corresponds to exactly one byte string.
    if base64url_encode(decoded) != data:
        raise ValueError("Non-canonical base64url data")
    return decoded


def datetime_from_timestamp(timestamp: float) -> datetime:
    """Convert seconds since epoch to an aware `~datetime.datetime`.

    Parameters
    ----------
    timestamp
        Seconds since the epoch, as found in a NumericDate claim.

    Returns
    -------
    datetime
        Corresponding time in UTC.
    """
    return datetime.fromtimestamp(timestamp, tz=UTC)


def random_128_bits() -> str:
    """Generate random 128 bits encoded in base64 without padding."""
    return base64url_encode(os.urandom(16))
