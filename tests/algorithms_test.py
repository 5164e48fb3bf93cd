"""Tests for signing algorithms and algorithm selection."""

from __future__ import annotations

import hashlib
import hmac
from typing import Any

import pytest
from cryptography.hazmat.primitives.asymmetric import ec

from tessera.algorithms import (
    AlgorithmFamily,
    AlgorithmSelector,
    DefaultAlgorithmFactory,
    ECDSAAlgorithm,
    HMACAlgorithm,
    NoneAlgorithm,
    RSAAlgorithm,
    create_algorithm,
    supported_algorithms,
)
from tessera.exceptions import (
    ConfigurationError,
    InvalidKeyError,
    UnsupportedAlgorithmError,
)
from tessera.keypair import KeyPair

from .support.constants import TEST_EC_KEYPAIR, TEST_RSA_KEYPAIR, TEST_SECRET

MESSAGE = b"eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiJhYmMifQ"


def test_supported_algorithms() -> None:
    assert supported_algorithms() == [
        "HS256",
        "HS384",
        "HS512",
        "RS256",
        "RS384",
        "RS512",
        "PS256",
        "PS384",
        "PS512",
        "ES256",
        "ES384",
        "ES512",
        "none",
    ]


def test_create_algorithm() -> None:
    assert isinstance(create_algorithm("HS384"), HMACAlgorithm)
    assert isinstance(create_algorithm("PS256"), RSAAlgorithm)
    assert isinstance(create_algorithm("ES512"), ECDSAAlgorithm)
    assert isinstance(create_algorithm("none"), NoneAlgorithm)
    assert create_algorithm("RS256", TEST_RSA_KEYPAIR).has_key_material
    assert create_algorithm("HS256").name == "HS256"

    with pytest.raises(ConfigurationError, match="Unknown algorithm"):
        create_algorithm("HS1024")
    with pytest.raises(ConfigurationError):
        create_algorithm("hs256")
    with pytest.raises(InvalidKeyError):
        create_algorithm("RS256", TEST_EC_KEYPAIR)


def test_wrong_family_name() -> None:
    with pytest.raises(ConfigurationError, match="not RS256"):
        HMACAlgorithm("RS256")
    with pytest.raises(ConfigurationError):
        ECDSAAlgorithm("HS256")


def test_properties() -> None:
    hs256 = HMACAlgorithm()
    assert hs256.family == AlgorithmFamily.hmac
    assert hs256.requires_key
    assert not hs256.is_asymmetric
    assert not hs256.has_key_material

    rs256 = RSAAlgorithm()
    assert rs256.is_asymmetric
    assert rs256.requires_key
    rs256 = RSAAlgorithm("RS256", TEST_RSA_KEYPAIR)
    assert rs256.has_key_material
    assert not rs256.requires_key

    none = NoneAlgorithm()
    assert none.name == "none"
    assert not none.requires_key
    assert not none.is_asymmetric


@pytest.mark.parametrize(
    ("name", "digest"),
    [
        ("HS256", hashlib.sha256),
        ("HS384", hashlib.sha384),
        ("HS512", hashlib.sha512),
    ],
)
def test_hmac(name: str, digest: Any) -> None:
    algorithm = HMACAlgorithm(name)
    expected = hmac.new(b"secret", MESSAGE, digest).digest()

    assert algorithm.sign(MESSAGE, TEST_SECRET) == expected
    assert algorithm.sign(MESSAGE, TEST_SECRET.encode()) == expected
    assert algorithm.verify(MESSAGE, expected, TEST_SECRET)
    assert not algorithm.verify(MESSAGE, expected, "other secret")
    assert not algorithm.verify(MESSAGE + b"x", expected, TEST_SECRET)
    assert not algorithm.verify(MESSAGE, expected[:-1], TEST_SECRET)


def test_hmac_invalid_key() -> None:
    algorithm = HMACAlgorithm()

    with pytest.raises(ConfigurationError, match="with_secret"):
        algorithm.sign(MESSAGE)
    with pytest.raises(ConfigurationError):
        algorithm.verify(MESSAGE, b"signature")
    with pytest.raises(InvalidKeyError, match="Empty"):
        algorithm.sign(MESSAGE, b"")

    # A public key used as an HMAC secret is the classic algorithm confusion
    # attack against RSA verifiers, so it is refused.
    public_pem = TEST_RSA_KEYPAIR.public_key_as_pem()
    with pytest.raises(InvalidKeyError):
        algorithm.sign(MESSAGE, public_pem)
    with pytest.raises(InvalidKeyError):
        algorithm.verify(MESSAGE, b"signature", public_pem)


@pytest.mark.parametrize(
    "name", ["RS256", "RS384", "RS512", "PS256", "PS384", "PS512"]
)
def test_rsa(name: str) -> None:
    algorithm = RSAAlgorithm(name)
    private_pem = TEST_RSA_KEYPAIR.private_key_as_pem()
    public_pem = TEST_RSA_KEYPAIR.public_key_as_pem()

    signature = algorithm.sign(MESSAGE, private_pem)
    assert algorithm.verify(MESSAGE, signature, public_pem)
    assert algorithm.verify(MESSAGE, signature, private_pem)
    assert algorithm.verify(MESSAGE, signature, public_pem.decode())
    assert not algorithm.verify(MESSAGE + b"x", signature, public_pem)

    other = KeyPair.generate_rsa()
    assert not algorithm.verify(MESSAGE, signature, other.public_key_as_pem())


def test_rsa_keypair() -> None:
    algorithm = RSAAlgorithm("RS256", TEST_RSA_KEYPAIR)

    signature = algorithm.sign(MESSAGE)
    assert algorithm.verify(MESSAGE, signature)
    assert RSAAlgorithm().verify(
        MESSAGE, signature, TEST_RSA_KEYPAIR.public_key_as_pem()
    )

    # PKCS#1 v1.5 signatures are deterministic, PSS signatures are not.
    assert algorithm.sign(MESSAGE) == signature
    pss = RSAAlgorithm("PS256", TEST_RSA_KEYPAIR)
    assert pss.sign(MESSAGE) != pss.sign(MESSAGE)


def test_rsa_invalid_key() -> None:
    algorithm = RSAAlgorithm()

    with pytest.raises(ConfigurationError, match="private key"):
        algorithm.sign(MESSAGE)
    with pytest.raises(ConfigurationError, match="public key"):
        algorithm.verify(MESSAGE, b"signature")
    with pytest.raises(InvalidKeyError, match="private key"):
        algorithm.sign(MESSAGE, TEST_RSA_KEYPAIR.public_key_as_pem())
    with pytest.raises(InvalidKeyError):
        algorithm.sign(MESSAGE, TEST_SECRET)
    with pytest.raises(InvalidKeyError):
        algorithm.sign(MESSAGE, TEST_EC_KEYPAIR.private_key_as_pem())
    with pytest.raises(InvalidKeyError):
        algorithm.verify(
            MESSAGE, b"signature", TEST_EC_KEYPAIR.public_key_as_pem()
        )


def test_ecdsa() -> None:
    algorithm = ECDSAAlgorithm("ES256")
    private_pem = TEST_EC_KEYPAIR.private_key_as_pem()
    public_pem = TEST_EC_KEYPAIR.public_key_as_pem()

    signature = algorithm.sign(MESSAGE, private_pem)
    assert len(signature) == 64
    assert algorithm.verify(MESSAGE, signature, public_pem)
    assert not algorithm.verify(MESSAGE + b"x", signature, public_pem)
    assert not algorithm.verify(MESSAGE, signature[:-1], public_pem)

    algorithm = ECDSAAlgorithm("ES256", TEST_EC_KEYPAIR)
    assert algorithm.verify(MESSAGE, algorithm.sign(MESSAGE))


@pytest.mark.parametrize(
    ("name", "curve"),
    [("ES384", ec.SECP384R1()), ("ES512", ec.SECP521R1())],
)
def test_ecdsa_curves(name: str, curve: ec.EllipticCurve) -> None:
    keypair = KeyPair.generate_ec(curve)
    algorithm = ECDSAAlgorithm(name, keypair)
    assert algorithm.verify(MESSAGE, algorithm.sign(MESSAGE))

    with pytest.raises(InvalidKeyError):
        ECDSAAlgorithm(name, TEST_EC_KEYPAIR)
    with pytest.raises(InvalidKeyError):
        ECDSAAlgorithm("ES256").sign(MESSAGE, keypair.private_key_as_pem())


def test_ecdsa_invalid_key() -> None:
    algorithm = ECDSAAlgorithm()

    with pytest.raises(InvalidKeyError):
        algorithm.sign(MESSAGE, TEST_SECRET)
    with pytest.raises(InvalidKeyError):
        algorithm.sign(MESSAGE, TEST_RSA_KEYPAIR.private_key_as_pem())
    with pytest.raises(InvalidKeyError):
        ECDSAAlgorithm("ES256", TEST_RSA_KEYPAIR)


def test_none() -> None:
    algorithm = NoneAlgorithm()

    assert algorithm.sign(MESSAGE) == b""
    assert algorithm.sign(MESSAGE, TEST_SECRET) == b""
    assert algorithm.verify(MESSAGE, b"")
    assert not algorithm.verify(MESSAGE, b"signature")


def test_default_factory() -> None:
    factory = DefaultAlgorithmFactory()

    assert "none" not in factory.allowed
    assert factory.resolve("none") is None
    assert factory.resolve("HS1024") is None
    algorithm = factory.resolve("ES384")
    assert isinstance(algorithm, ECDSAAlgorithm)
    assert algorithm.name == "ES384"


def test_factory_allowed() -> None:
    factory = DefaultAlgorithmFactory(["HS256", "none"])

    assert factory.allowed == ["HS256", "none"]
    assert isinstance(factory.resolve("none"), NoneAlgorithm)
    assert factory.resolve("HS512") is None

    with pytest.raises(ConfigurationError):
        DefaultAlgorithmFactory(["HS256", "XS256"])


def test_factory_keypair() -> None:
    factory = DefaultAlgorithmFactory(keypair=TEST_RSA_KEYPAIR)

    rs256 = factory.resolve("RS256")
    assert rs256
    assert rs256.has_key_material
    es256 = factory.resolve("ES256")
    assert es256
    assert not es256.has_key_material


def test_selector_configured() -> None:
    hs256 = HMACAlgorithm()
    selector = AlgorithmSelector(hs256)

    assert selector.select("HS256") is hs256
    with pytest.raises(UnsupportedAlgorithmError, match="HS512"):
        selector.select("HS512")
    with pytest.raises(UnsupportedAlgorithmError):
        selector.select("hs256")
    with pytest.raises(UnsupportedAlgorithmError):
        selector.select("RS256")


@pytest.mark.parametrize("alg", [None, "", 256, ["HS256"]])
def test_selector_missing(alg: object) -> None:
    selector = AlgorithmSelector(HMACAlgorithm())

    with pytest.raises(UnsupportedAlgorithmError, match="No alg"):
        selector.select(alg)


@pytest.mark.parametrize("alg", ["none", "None", "NONE"])
def test_selector_none(alg: str) -> None:
    selectors = [
        AlgorithmSelector(HMACAlgorithm()),
        AlgorithmSelector(NoneAlgorithm()),
        AlgorithmSelector(factory=DefaultAlgorithmFactory(["none"])),
    ]
    for selector in selectors:
        with pytest.raises(UnsupportedAlgorithmError, match="Unsigned"):
            selector.select(alg)


def test_selector_factory() -> None:
    selector = AlgorithmSelector(
        factory=DefaultAlgorithmFactory(["HS256", "RS256"])
    )

    selected = selector.select("RS256")
    assert isinstance(selected, RSAAlgorithm)
    assert selector.select("HS256").name == "HS256"
    with pytest.raises(UnsupportedAlgorithmError, match="not allowed"):
        selector.select("ES256")


def test_selector_unconfigured() -> None:
    with pytest.raises(ConfigurationError, match="with_algorithm"):
        AlgorithmSelector()
