"""Exceptions for Tessera."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from safir.slack.blockkit import SlackException

__all__ = [
    "ConfigurationError",
    "InvalidClaimError",
    "InvalidKeyError",
    "MalformedTokenError",
    "SignatureVerificationError",
    "TesseraError",
    "TokenError",
    "TokenExpiredError",
    "TokenNotYetValidError",
    "TokenValidationError",
    "UnsupportedAlgorithmError",
]


class TesseraError(SlackException):
    """Base class for Tessera exceptions."""


class ConfigurationError(TesseraError):
    """A required collaborator is missing or the configuration is invalid.

    Always raised before any token is produced or parsed, and never worth
    retrying. The message names the setup calls that are missing.
    """


class InvalidKeyError(ConfigurationError):
    """The supplied key material cannot be used with the algorithm."""


class TokenError(TesseraError):
    """Base class for failures caused by the token being processed.

    The token comes from an untrusted party, so these exceptions describe
    what was wrong with it without including the token or any keys.
    """


class MalformedTokenError(TokenError):
    """The token could not be parsed.

    Raised for the wrong number of segments, invalid base64url, invalid JSON
    or JSON of the wrong shape. Never raised for cryptographic failures.
    """


class UnsupportedAlgorithmError(TokenError):
    """The algorithm declared in the token header is not acceptable."""


class SignatureVerificationError(TokenError):
    """No candidate key verified the token signature."""


class TokenValidationError(TokenError):
    """Base class for semantic failures of the token claims."""

    def __init__(self, message: str, claims: dict[str, Any]) -> None:
        super().__init__(message)
        self.claims = claims


class InvalidClaimError(TokenValidationError):
    """A registered claim has a value of the wrong type or range."""


class TokenExpiredError(TokenValidationError):
    """The token is past its ``exp`` claim (plus leeway).

    Parameters
    ----------
    message
        Human-readable error message.
    expires
        When the token expired.
    claims
        Claims of the expired token.
    """

    def __init__(
        self, message: str, *, expires: datetime, claims: dict[str, Any]
    ) -> None:
        super().__init__(message, claims)
        self.expires = expires


class TokenNotYetValidError(TokenValidationError):
    """The token is before its ``nbf`` claim (minus leeway).

    Parameters
    ----------
    message
        Human-readable error message.
    not_before
        When the token becomes valid.
    claims
        Claims of the token.
    """

    def __init__(
        self, message: str, *, not_before: datetime, claims: dict[str, Any]
    ) -> None:
        super().__init__(message, claims)
        self.not_before = not_before
