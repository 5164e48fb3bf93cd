"""Token issuer."""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Any

from .builder import TokenBuilder
from .constants import DEFAULT_TOKEN_LIFETIME
from .exceptions import ConfigurationError
from .models import ClaimName
from .protocols import Clock
from .util import random_128_bits

__all__ = ["TokenIssuer"]


class TokenIssuer:
    """Issuing new tokens with the registered time and identity claims.

    Each token gets ``iat`` set to the current time, ``exp`` set to the end
    of its lifetime, a random ``jti``, and ``iss`` and ``aud`` if configured.
    Claims passed by the caller are added last and take precedence.

    Parameters
    ----------
    builder
        Builder configured with the algorithm and signing key.
    lifetime
        How long issued tokens are valid.
    issuer
        Value of the ``iss`` claim, if any.
    audience
        Value of the ``aud`` claim, if any.
    clock
        Source of the current time. Defaults to the builder's clock.

    Raises
    ------
    ConfigurationError
        Raised if the lifetime is not positive or there is no clock.
    """

    def __init__(
        self,
        builder: TokenBuilder,
        *,
        lifetime: timedelta = DEFAULT_TOKEN_LIFETIME,
        issuer: str | None = None,
        audience: str | list[str] | None = None,
        clock: Clock | None = None,
    ) -> None:
        if lifetime <= timedelta(0):
            raise ConfigurationError("Token lifetime must be positive")
        clock = clock or builder.setup.clock
        if not clock:
            raise ConfigurationError("Cannot issue tokens, call with_clock()")
        self._builder = builder
        self._lifetime = lifetime
        self._issuer = issuer
        self._audience = audience
        self._clock = clock

    def issue_token(
        self,
        subject: str | None = None,
        *,
        lifetime: timedelta | None = None,
        not_before: datetime | None = None,
        **claims: Any,
    ) -> str:
        """Issue a new token.

        Parameters
        ----------
        subject
            Value of the ``sub`` claim, if any.
        lifetime
            Lifetime of this token, overriding the default.
        not_before
            If given, the ``nbf`` claim is set to this time.
        **claims
            Additional claims to add to the token.

        Returns
        -------
        str
            The encoded token.

        Raises
        ------
        ConfigurationError
            Raised if the builder cannot encode tokens.
        """
        now = self._clock.now()
        expires = now + (lifetime or self._lifetime)
        payload: dict[str, Any] = {
            ClaimName.issued_at: int(now.timestamp()),
            ClaimName.expiration: int(expires.timestamp()),
            ClaimName.token_id: random_128_bits(),
        }
        if not_before:
            payload[ClaimName.not_before] = int(not_before.timestamp())
        if subject:
            payload[ClaimName.subject] = subject
        if self._issuer:
            payload[ClaimName.issuer] = self._issuer
        if self._audience:
            payload[ClaimName.audience] = self._audience
        payload.update(claims)
        return self._builder.encode(payload)
