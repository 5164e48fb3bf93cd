"""Tests for the default serializer and URL encoder."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime

import pytest
from pydantic import BaseModel, ValidationError

from tessera.serialization import Base64UrlEncoder, JSONSerializer


class Claims(BaseModel):
    sub: str
    exp: int


@dataclass
class Point:
    x: int
    y: int


def test_serialize() -> None:
    serializer = JSONSerializer()

    assert serializer.serialize({"alg": "HS256", "typ": "JWT"}) == (
        '{"alg":"HS256","typ":"JWT"}'
    )
    assert serializer.serialize({"b": 1, "a": [1, 2]}) == '{"b":1,"a":[1,2]}'
    assert serializer.serialize({"p": Point(1, 2)}) == '{"p":{"x":1,"y":2}}'
    date = datetime(2024, 1, 1, tzinfo=UTC)
    assert serializer.serialize({"d": date}) == '{"d":"2024-01-01T00:00:00Z"}'


def test_serialize_unsupported() -> None:
    serializer = JSONSerializer()

    with pytest.raises(ValueError, match="serialize"):
        serializer.serialize({"value": object()})


def test_deserialize() -> None:
    serializer = JSONSerializer()

    assert serializer.deserialize('{"sub":"abc","exp":1}') == {
        "sub": "abc",
        "exp": 1,
    }
    assert serializer.deserialize(b'{"a":null}') == {"a": None}
    claims = serializer.deserialize('{"sub":"abc","exp":1}', Claims)
    assert claims == Claims(sub="abc", exp=1)


@pytest.mark.parametrize(
    "text", ["", "{", "[]", '"text"', "1", "null", '{"a":1,}']
)
def test_deserialize_invalid(text: str) -> None:
    serializer = JSONSerializer()

    with pytest.raises(ValidationError):
        serializer.deserialize(text)


def test_deserialize_target_mismatch() -> None:
    serializer = JSONSerializer()

    with pytest.raises(ValueError, match="exp"):
        serializer.deserialize('{"sub":"abc"}', Claims)


def test_url_encoder() -> None:
    encoder = Base64UrlEncoder()

    assert encoder.encode(b"\xfb\xff\xfe") == "-__-"
    assert encoder.decode("-__-") == b"\xfb\xff\xfe"
    with pytest.raises(ValueError):
        encoder.decode("-__-=")
