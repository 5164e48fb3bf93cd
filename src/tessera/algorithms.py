"""Signing algorithms and algorithm selection.

The cryptographic primitives come from PyJWT's algorithm implementations.
This module wraps them in a closed set of algorithm families with one
interface, and adds the key handling and selection rules that protect
against algorithm confusion.
"""

from __future__ import annotations

from abc import ABCMeta, abstractmethod
from collections.abc import Iterable
from enum import StrEnum
from typing import Any, ClassVar, override

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from jwt import algorithms as jwa
from jwt.exceptions import InvalidKeyError as JWAInvalidKeyError

from .constants import NONE_ALGORITHM
from .exceptions import (
    ConfigurationError,
    InvalidKeyError,
    UnsupportedAlgorithmError,
)
from .keypair import KeyPair
from .protocols import AlgorithmFactory

__all__ = [
    "AlgorithmFamily",
    "AlgorithmSelector",
    "AsymmetricAlgorithm",
    "DefaultAlgorithmFactory",
    "ECDSAAlgorithm",
    "HMACAlgorithm",
    "Key",
    "NoneAlgorithm",
    "RSAAlgorithm",
    "TokenAlgorithm",
    "create_algorithm",
    "supported_algorithms",
]

type Key = str | bytes
"""Key material as accepted per call: a secret or PEM-encoded key."""

_PRIVATE_KEY_TYPES = (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)


class AlgorithmFamily(StrEnum):
    """Family of a signing algorithm."""

    hmac = "hmac"
    rsa = "rsa"
    ecdsa = "ecdsa"
    none = "none"


class TokenAlgorithm(metaclass=ABCMeta):
    """A signing algorithm identified by its JWS name.

    Parameters
    ----------
    name
        JWS name of the algorithm, used as the ``alg`` header.

    Raises
    ------
    ConfigurationError
        Raised if the name is not one supported by this family.
    """

    family: ClassVar[AlgorithmFamily]
    """Family of the algorithm."""

    names: ClassVar[tuple[str, ...]]
    """JWS names supported by this family."""

    def __init__(self, name: str) -> None:
        if name not in self.names:
            supported = ", ".join(self.names)
            msg = f"{type(self).__name__} supports {supported}, not {name}"
            raise ConfigurationError(msg)
        self.name = name

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"

    @property
    def has_key_material(self) -> bool:
        """Whether the algorithm can sign and verify without a key argument."""
        return False

    @property
    def is_asymmetric(self) -> bool:
        """Whether signing and verification use different keys."""
        return self.family in (AlgorithmFamily.rsa, AlgorithmFamily.ecdsa)

    @property
    def requires_key(self) -> bool:
        """Whether a key must be passed to `sign` and `verify`."""
        return self.family != AlgorithmFamily.none and not (
            self.has_key_material
        )

    @abstractmethod
    def sign(self, signing_input: bytes, key: Key | None = None) -> bytes:
        """Sign the signing input.

        Parameters
        ----------
        signing_input
            The encoded header and payload joined by a period.
        key
            Key to sign with. May be omitted if the algorithm carries its own
            key material.

        Returns
        -------
        bytes
            The raw signature.

        Raises
        ------
        ConfigurationError
            Raised if no usable key is available.
        InvalidKeyError
            Raised if the key cannot be used with this algorithm.
        """

    @abstractmethod
    def verify(
        self, signing_input: bytes, signature: bytes, key: Key | None = None
    ) -> bool:
        """Check a signature.

        Parameters
        ----------
        signing_input
            The encoded header and payload joined by a period, exactly as they
            appear in the token.
        signature
            The raw signature.
        key
            Key to verify with. May be omitted if the algorithm carries its
            own key material.

        Returns
        -------
        bool
            Whether the signature is valid for this key.

        Raises
        ------
        ConfigurationError
            Raised if no usable key is available.
        InvalidKeyError
            Raised if the key cannot be used with this algorithm.
        """


class HMACAlgorithm(TokenAlgorithm):
    """HMAC with a SHA-2 hash (``HS256``, ``HS384`` or ``HS512``).

    Verification uses a constant-time comparison.
    """

    family = AlgorithmFamily.hmac
    names = ("HS256", "HS384", "HS512")

    _hashes: ClassVar[dict[str, Any]] = {
        "HS256": jwa.HMACAlgorithm.SHA256,
        "HS384": jwa.HMACAlgorithm.SHA384,
        "HS512": jwa.HMACAlgorithm.SHA512,
    }

    def __init__(self, name: str = "HS256") -> None:
        super().__init__(name)
        self._impl = jwa.HMACAlgorithm(self._hashes[name])

    @override
    def sign(self, signing_input: bytes, key: Key | None = None) -> bytes:
        return self._impl.sign(signing_input, self._prepare_key(key))

    @override
    def verify(
        self, signing_input: bytes, signature: bytes, key: Key | None = None
    ) -> bool:
        prepared = self._prepare_key(key)
        return self._impl.verify(signing_input, prepared, signature)

    def _prepare_key(self, key: Key | None) -> bytes:
        if key is None:
            msg = f"{self.name} requires a secret key, call with_secret()"
            raise ConfigurationError(msg)
        if not key:
            raise InvalidKeyError(f"Empty secret key for {self.name}")

        # PyJWT refuses secrets that look like PEM or SSH keys, which is what
        # happens when a public key is mistakenly used as an HMAC secret.
        try:
            return self._impl.prepare_key(key)
        except JWAInvalidKeyError as e:
            msg = f"Key cannot be used as a {self.name} secret: {e!s}"
            raise InvalidKeyError(msg) from e


class AsymmetricAlgorithm(TokenAlgorithm):
    """Base class for public key signature algorithms.

    Parameters
    ----------
    name
        JWS name of the algorithm.
    keypair
        Key pair to sign and verify with when no key is passed per call.

    Raises
    ------
    ConfigurationError
        Raised if the name is not supported by this family.
    InvalidKeyError
        Raised if the key pair cannot be used with this algorithm.
    """

    def __init__(self, name: str, keypair: KeyPair | None = None) -> None:
        super().__init__(name)
        self._impl = self._build_impl(name)
        if keypair and not self.accepts_key(keypair.private_key):
            msg = f"Key pair cannot be used with {self.name}"
            raise InvalidKeyError(msg)
        self.keypair = keypair

    @override
    def __repr__(self) -> str:
        with_key = ", with key pair" if self.keypair else ""
        return f"{type(self).__name__}({self.name!r}{with_key})"

    @property
    @override
    def has_key_material(self) -> bool:
        return self.keypair is not None

    @abstractmethod
    def accepts_key(self, key: Any) -> bool:
        """Whether a parsed private or public key fits this algorithm."""

    @abstractmethod
    def _build_impl(self, name: str) -> jwa.Algorithm:
        """Construct the PyJWT primitive for this algorithm name."""

    @override
    def sign(self, signing_input: bytes, key: Key | None = None) -> bytes:
        if key is None:
            if not self.keypair:
                msg = f"{self.name} signing requires a private key"
                raise ConfigurationError(msg)
            private_key = self.keypair.private_key
        else:
            private_key = self._prepare_key(key)
            if not isinstance(private_key, _PRIVATE_KEY_TYPES):
                msg = f"{self.name} signing requires a private key"
                raise InvalidKeyError(msg)
        return self._impl.sign(signing_input, private_key)

    @override
    def verify(
        self, signing_input: bytes, signature: bytes, key: Key | None = None
    ) -> bool:
        if key is None:
            if not self.keypair:
                msg = f"{self.name} verification requires a public key"
                raise ConfigurationError(msg)
            public_key = self.keypair.private_key.public_key()
        else:
            public_key = self._prepare_key(key)
            if isinstance(public_key, _PRIVATE_KEY_TYPES):
                public_key = public_key.public_key()
        return self._impl.verify(signing_input, public_key, signature)

    def _prepare_key(self, key: Key) -> Any:
        try:
            prepared = self._impl.prepare_key(key)
        except (JWAInvalidKeyError, UnsupportedAlgorithm, ValueError) as e:
            msg = f"Key cannot be parsed for {self.name}"
            raise InvalidKeyError(msg) from e
        if not self.accepts_key(prepared):
            raise InvalidKeyError(f"Key cannot be used with {self.name}")
        return prepared


class RSAAlgorithm(AsymmetricAlgorithm):
    """RSA signatures with PKCS#1 v1.5 (``RS*``) or PSS (``PS*``) padding."""

    family = AlgorithmFamily.rsa
    names = ("RS256", "RS384", "RS512", "PS256", "PS384", "PS512")

    _hashes: ClassVar[dict[str, Any]] = {
        "256": jwa.RSAAlgorithm.SHA256,
        "384": jwa.RSAAlgorithm.SHA384,
        "512": jwa.RSAAlgorithm.SHA512,
    }

    def __init__(
        self, name: str = "RS256", keypair: KeyPair | None = None
    ) -> None:
        super().__init__(name, keypair)

    @override
    def accepts_key(self, key: Any) -> bool:
        return isinstance(key, rsa.RSAPrivateKey | rsa.RSAPublicKey)

    @override
    def _build_impl(self, name: str) -> jwa.Algorithm:
        hash_alg = self._hashes[name[2:]]
        if name.startswith("PS"):
            return jwa.RSAPSSAlgorithm(hash_alg)
        else:
            return jwa.RSAAlgorithm(hash_alg)


class ECDSAAlgorithm(AsymmetricAlgorithm):
    """ECDSA signatures on the curve matching the hash size (``ES*``)."""

    family = AlgorithmFamily.ecdsa
    names = ("ES256", "ES384", "ES512")

    _hashes: ClassVar[dict[str, Any]] = {
        "ES256": jwa.ECAlgorithm.SHA256,
        "ES384": jwa.ECAlgorithm.SHA384,
        "ES512": jwa.ECAlgorithm.SHA512,
    }

    _curves: ClassVar[dict[str, str]] = {
        "ES256": "secp256r1",
        "ES384": "secp384r1",
        "ES512": "secp521r1",
    }

    def __init__(
        self, name: str = "ES256", keypair: KeyPair | None = None
    ) -> None:
        super().__init__(name, keypair)

    @override
    def accepts_key(self, key: Any) -> bool:
        if not isinstance(
            key, ec.EllipticCurvePrivateKey | ec.EllipticCurvePublicKey
        ):
            return False
        return key.curve.name == self._curves[self.name]

    @override
    def _build_impl(self, name: str) -> jwa.Algorithm:
        return jwa.ECAlgorithm(self._hashes[name])


class NoneAlgorithm(TokenAlgorithm):
    """The unsigned ``none`` algorithm.

    Signs to an empty signature. Decoders that verify signatures refuse
    tokens using this algorithm regardless of whether it is configured.
    """

    family = AlgorithmFamily.none
    names = (NONE_ALGORITHM,)

    def __init__(self, name: str = NONE_ALGORITHM) -> None:
        super().__init__(name)

    @override
    def sign(self, signing_input: bytes, key: Key | None = None) -> bytes:
        return b""

    @override
    def verify(
        self, signing_input: bytes, signature: bytes, key: Key | None = None
    ) -> bool:
        return signature == b""


_FAMILIES: tuple[type[TokenAlgorithm], ...] = (
    HMACAlgorithm,
    RSAAlgorithm,
    ECDSAAlgorithm,
    NoneAlgorithm,
)


def supported_algorithms() -> list[str]:
    """Return the JWS names of all supported algorithms."""
    return [name for family in _FAMILIES for name in family.names]


def create_algorithm(
    name: str, keypair: KeyPair | None = None
) -> TokenAlgorithm:
    """Create an algorithm from its JWS name.

    Parameters
    ----------
    name
        JWS name, such as ``HS256`` or ``ES384``.
    keypair
        Key pair for asymmetric algorithms. Ignored for HMAC and ``none``.

    Returns
    -------
    TokenAlgorithm
        The algorithm.

    Raises
    ------
    ConfigurationError
        Raised if the name is not a supported algorithm.
    InvalidKeyError
        Raised if the key pair does not fit the algorithm.
    """
    for family in _FAMILIES:
        if name in family.names:
            if issubclass(family, AsymmetricAlgorithm):
                return family(name, keypair)
            return family(name)
    supported = ", ".join(supported_algorithms())
    raise ConfigurationError(f"Unknown algorithm {name} (use {supported})")


class DefaultAlgorithmFactory:
    """Resolve algorithm names against an allow-list.

    Parameters
    ----------
    allowed
        JWS names of the algorithms that may be resolved. Defaults to every
        supported algorithm except ``none``, which is only resolvable when
        listed explicitly.
    keypair
        Key pair given to the asymmetric algorithms it fits.

    Raises
    ------
    ConfigurationError
        Raised if an allowed name is not a supported algorithm.
    """

    def __init__(
        self,
        allowed: Iterable[str] | None = None,
        keypair: KeyPair | None = None,
    ) -> None:
        if allowed is None:
            names = [n for n in supported_algorithms() if n != NONE_ALGORITHM]
        else:
            names = list(allowed)
        self._algorithms: dict[str, TokenAlgorithm] = {}
        for name in names:
            algorithm = create_algorithm(name)
            if isinstance(algorithm, AsymmetricAlgorithm) and keypair:
                if algorithm.accepts_key(keypair.private_key):
                    algorithm.keypair = keypair
            self._algorithms[name] = algorithm

    @property
    def allowed(self) -> list[str]:
        """Names this factory resolves."""
        return list(self._algorithms)

    def resolve(self, name: str) -> TokenAlgorithm | None:
        """Return the algorithm for a name, or `None` if not allowed."""
        return self._algorithms.get(name)


class AlgorithmSelector:
    """Choose the algorithm that verifies a token.

    The header of a token is untrusted, so its ``alg`` value never chooses a
    verifier by itself. With a configured algorithm, the header must name
    exactly that algorithm. With a factory, the header name is resolved
    through the caller's allow-list. The ``none`` algorithm is never
    selected.

    Parameters
    ----------
    algorithm
        The configured algorithm.
    factory
        Factory used when no algorithm is configured.

    Raises
    ------
    ConfigurationError
        Raised if neither an algorithm nor a factory is given.
    """

    def __init__(
        self,
        algorithm: TokenAlgorithm | None = None,
        factory: AlgorithmFactory | None = None,
    ) -> None:
        if algorithm is None and factory is None:
            msg = "No algorithm to verify with, call with_algorithm()"
            raise ConfigurationError(msg)
        self._algorithm = algorithm
        self._factory = factory

    def select(self, header_algorithm: Any) -> TokenAlgorithm:
        """Return the algorithm to verify a token with.

        Parameters
        ----------
        header_algorithm
            Value of the ``alg`` header of the token.

        Returns
        -------
        TokenAlgorithm
            The configured or resolved algorithm.

        Raises
        ------
        UnsupportedAlgorithmError
            Raised if the header algorithm is missing, is ``none``, or does
            not match what is configured.
        """
        if not isinstance(header_algorithm, str) or not header_algorithm:
            raise UnsupportedAlgorithmError("No alg in token header")
        if header_algorithm.lower() == NONE_ALGORITHM:
            msg = "Unsigned tokens are not accepted when verifying signatures"
            raise UnsupportedAlgorithmError(msg)

        if self._algorithm:
            algorithm: TokenAlgorithm | None = self._algorithm
            if header_algorithm != self._algorithm.name:
                algorithm = None
        else:
            algorithm = self._factory.resolve(header_algorithm)
        if not algorithm or algorithm.name != header_algorithm:
            msg = f"Algorithm {header_algorithm} is not allowed"
            raise UnsupportedAlgorithmError(msg)
        if algorithm.family == AlgorithmFamily.none:
            msg = "Unsigned tokens are not accepted when verifying signatures"
            raise UnsupportedAlgorithmError(msg)
        return algorithm
