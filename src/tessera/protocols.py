"""Interfaces of the collaborators consumed by the token engine.

The engine never talks to a JSON library, a base64 implementation, the
system clock or the algorithm registry directly. It goes through these
protocols, and any object with the right methods can be supplied in place
of the defaults.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from .algorithms import TokenAlgorithm

__all__ = [
    "AlgorithmFactory",
    "Clock",
    "Serializer",
    "UrlEncoder",
]


class Serializer(Protocol):
    """Converts header and payload values to and from JSON text."""

    def serialize(self, value: Any) -> str:
        """Serialize a value to JSON.

        Raises
        ------
        ValueError
            Raised if the value cannot be represented as JSON.
        """
        ...

    def deserialize(self, text: str | bytes, target: Any = ...) -> Any:
        """Parse JSON into a value of the requested type.

        Raises
        ------
        ValueError
            Raised if the text is not valid JSON or does not match the
            target type.
        """
        ...


class UrlEncoder(Protocol):
    """Encodes bytes to base64url text and back."""

    def encode(self, data: bytes) -> str: ...

    def decode(self, data: str) -> bytes:
        """Decode base64url text.

        Raises
        ------
        ValueError
            Raised if the text is not valid base64url.
        """
        ...


class Clock(Protocol):
    """Source of the current time for claims validation."""

    def now(self) -> datetime:
        """Return the current time as an aware `~datetime.datetime`."""
        ...


class AlgorithmFactory(Protocol):
    """Resolves JWS algorithm names to algorithm implementations."""

    def resolve(self, name: str) -> TokenAlgorithm | None:
        """Return the algorithm for a name, or `None` if it is not allowed."""
        ...
