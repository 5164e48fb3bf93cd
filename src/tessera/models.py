"""Representation of token headers, claims and validation settings."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from datetime import timedelta
from enum import StrEnum
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import DEFAULT_LEEWAY

__all__ = [
    "ClaimName",
    "DecodedToken",
    "HeaderName",
    "ValidationParameters",
    "claims_from_object",
]


class HeaderName(StrEnum):
    """Well-known token header parameters."""

    algorithm = "alg"
    token_type = "typ"
    content_type = "cty"
    key_id = "kid"
    x509_url = "x5u"
    x509_thumbprint = "x5t"
    jwk_set_url = "jku"


class ClaimName(StrEnum):
    """Registered claim names."""

    issuer = "iss"
    subject = "sub"
    audience = "aud"
    expiration = "exp"
    not_before = "nbf"
    issued_at = "iat"
    token_id = "jti"


class DecodedToken(BaseModel):
    """The parts of a decoded token.

    Produced fresh by every decode call and never modified afterwards.
    """

    model_config = ConfigDict(frozen=True)

    header: dict[str, Any] = Field(..., title="Decoded token header")

    claims: dict[str, Any] = Field(..., title="Decoded token claims")

    signature: bytes = Field(..., title="Raw signature")

    signing_input: str = Field(
        ...,
        title="Signing input",
        description=(
            "The encoded header and payload segments joined by a period,"
            " exactly as they appeared in the token"
        ),
    )


class ValidationParameters(BaseModel):
    """Settings controlling how a decoded token is checked."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    validate_signature: bool = Field(
        True, title="Whether to verify the token signature"
    )

    validate_expiration: bool = Field(
        True, title="Whether to enforce the exp claim"
    )

    validate_not_before: bool = Field(
        True, title="Whether to enforce the nbf claim"
    )

    leeway: timedelta = Field(
        DEFAULT_LEEWAY,
        title="Clock skew tolerance",
        description=(
            "Tolerance applied to exp and nbf checks. Integers are taken"
            " as seconds."
        ),
    )

    @field_validator("leeway", mode="before")
    @classmethod
    def _validate_leeway(cls, v: Any) -> Any:
        if isinstance(v, int) and not isinstance(v, bool):
            return timedelta(seconds=v)
        return v

    @field_validator("leeway")
    @classmethod
    def _validate_leeway_range(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("leeway must not be negative")
        return v

    @classmethod
    def default(cls) -> Self:
        """Return parameters that verify the signature with no leeway."""
        return cls()

    def with_changes(self, **changes: Any) -> Self:
        """Return a validated copy with some settings changed.

        Parameters
        ----------
        **changes
            Settings to change.

        Returns
        -------
        ValidationParameters
            New parameters. The original object is unchanged.

        Raises
        ------
        pydantic.ValidationError
            Raised if a changed setting is invalid.
        """
        return self.model_validate({**self.model_dump(), **changes})


def claims_from_object(payload: Any) -> dict[str, Any]:
    """Flatten a structured object into a claim mapping.

    Parameters
    ----------
    payload
        A pydantic model, a dataclass instance, or a mapping with string keys.
        Pydantic models are dumped in JSON mode using field aliases and
        without unset optional fields. Attributes whose names start with an
        underscore are not claims and are skipped.

    Returns
    -------
    dict of Any
        Claim name to value, in field order.

    Raises
    ------
    TypeError
        Raised if the object is none of the supported kinds or a mapping key
        is not a string.
    """
    if isinstance(payload, BaseModel):
        claims = payload.model_dump(
            mode="json", by_alias=True, exclude_none=True
        )
    elif dataclasses.is_dataclass(payload) and not isinstance(payload, type):
        claims = {
            f.name: getattr(payload, f.name)
            for f in dataclasses.fields(payload)
        }
    elif isinstance(payload, Mapping):
        claims = dict(payload)
    else:
        msg = f"Cannot convert {type(payload).__name__} to token claims"
        raise TypeError(msg)

    for key in claims:
        if not isinstance(key, str):
            raise TypeError(f"Claim name {key!r} is not a string")
    return {str(k): v for k, v in claims.items() if not k.startswith("_")}
