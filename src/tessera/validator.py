"""Validation of time-based token claims."""

from __future__ import annotations

import math
from collections.abc import Mapping
from typing import Any

from .constants import MAX_TIMESTAMP
from .exceptions import (
    InvalidClaimError,
    TokenExpiredError,
    TokenNotYetValidError,
)
from .models import ClaimName, ValidationParameters
from .protocols import Clock
from .util import datetime_from_timestamp

__all__ = ["ClaimsValidator"]


class ClaimsValidator:
    """Checks the ``exp`` and ``nbf`` claims of a decoded token.

    Validation depends only on the claims, the parameters and the time
    reported by the clock, so it is deterministic for a fixed clock.

    Parameters
    ----------
    clock
        Source of the current time.
    parameters
        Which claims to check and how much leeway to allow.
    """

    def __init__(
        self, clock: Clock, parameters: ValidationParameters | None = None
    ) -> None:
        self._clock = clock
        self._parameters = parameters or ValidationParameters.default()

    @property
    def parameters(self) -> ValidationParameters:
        """Parameters used for validation."""
        return self._parameters

    def validate(self, claims: Mapping[str, Any]) -> None:
        """Validate the time-based claims of a token.

        The expiration is checked before the not-before time, so if both are
        violated, only `TokenExpiredError` is raised. Missing claims impose
        no constraint.

        Parameters
        ----------
        claims
            Claims of the decoded token.

        Raises
        ------
        InvalidClaimError
            Raised if ``exp`` or ``nbf`` is not a non-negative number.
        TokenExpiredError
            Raised if the current time is after ``exp`` plus the leeway.
        TokenNotYetValidError
            Raised if the current time is before ``nbf`` minus the leeway.
        """
        params = self._parameters
        now = self._clock.now().timestamp()
        leeway = params.leeway.total_seconds()

        if params.validate_expiration and ClaimName.expiration in claims:
            expires = self._get_timestamp(claims, ClaimName.expiration)
            if now > expires + leeway:
                expires_at = datetime_from_timestamp(expires)
                raise TokenExpiredError(
                    f"Token expired at {expires_at.isoformat()}",
                    expires=expires_at,
                    claims=dict(claims),
                )

        if params.validate_not_before and ClaimName.not_before in claims:
            not_before = self._get_timestamp(claims, ClaimName.not_before)
            if now < not_before - leeway:
                not_before_at = datetime_from_timestamp(not_before)
                raise TokenNotYetValidError(
                    f"Token not valid before {not_before_at.isoformat()}",
                    not_before=not_before_at,
                    claims=dict(claims),
                )

    @staticmethod
    def _get_timestamp(claims: Mapping[str, Any], claim: str) -> float:
        """Return a NumericDate claim, checking its type and range."""
        value = claims[claim]
        if isinstance(value, bool) or not isinstance(value, int | float):
            msg = f"Claim {claim} must be a number of seconds since epoch"
            raise InvalidClaimError(msg, dict(claims))
        if isinstance(value, float) and not math.isfinite(value):
            msg = f"Claim {claim} is not finite"
            raise InvalidClaimError(msg, dict(claims))
        if value < 0:
            raise InvalidClaimError(f"Claim {claim} is negative", dict(claims))

        # Anything past the end of year 9999 is effectively unbounded.
        return min(value, MAX_TIMESTAMP)
