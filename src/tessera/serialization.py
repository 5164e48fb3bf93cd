"""Default JSON and base64url collaborators."""

from __future__ import annotations

from functools import lru_cache
from typing import Any

from pydantic import TypeAdapter
from pydantic_core import to_json

from .util import base64url_decode, base64url_encode

__all__ = [
    "Base64UrlEncoder",
    "JSONObject",
    "JSONSerializer",
]

type JSONObject = dict[str, Any]
"""Shape of a decoded header or claim set."""


@lru_cache(maxsize=64)
def _adapter_for(target: Any) -> TypeAdapter[Any]:
    return TypeAdapter(target)


class Base64UrlEncoder:
    """Base64url encoding without padding, as used by JWS."""

    def encode(self, data: bytes) -> str:
        return base64url_encode(data)

    def decode(self, data: str) -> bytes:
        return base64url_decode(data)


class JSONSerializer:
    """JSON serialization based on pydantic.

    Serialization is compact (no insignificant whitespace) and keeps mapping
    keys in insertion order, so the same mapping always serializes to the
    same text. Pydantic models, dataclasses, datetimes, enums and the other
    types pydantic knows how to dump are accepted as values.

    Deserialization validates the parsed JSON against a target type, which
    is a JSON object by default but may be any type pydantic can validate,
    such as a model describing the expected claims.
    """

    def serialize(self, value: Any) -> str:
        """Serialize a value to compact JSON.

        Parameters
        ----------
        value
            Value to serialize.

        Returns
        -------
        str
            JSON text.

        Raises
        ------
        ValueError
            Raised if the value contains something that has no JSON form.
        """
        return to_json(value).decode()

    def deserialize(
        self, text: str | bytes, target: Any = JSONObject
    ) -> Any:
        """Parse and validate JSON text.

        Parameters
        ----------
        text
            JSON text.
        target
            Type the result must conform to.

        Returns
        -------
        Any
            The parsed value.

        Raises
        ------
        pydantic.ValidationError
            Raised if the text is not valid JSON or is not compatible with
            the target type. This is a subclass of `ValueError`.
        """
        return _adapter_for(target).validate_json(text)
