"""Asymmetric key pair handling."""

from typing import Self

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

__all__ = ["KeyPair", "PrivateKey"]

type PrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey
"""Private key types usable for signing tokens."""


class KeyPair:
    """An RSA or elliptic curve key pair with some simple helper functions.

    Notes
    -----
    Created by calling :py:meth:`~KeyPair.generate_rsa`,
    :py:meth:`~KeyPair.generate_ec` or :py:meth:`~KeyPair.from_pem` rather
    than the constructor.
    """

    @classmethod
    def from_pem(cls, pem: bytes) -> Self:
        """Import a key pair from a PEM-encoded private key.

        Parameters
        ----------
        pem
            The PEM-encoded key (must not be password-protected).

        Returns
        -------
        KeyPair
            The corresponding key pair.

        Raises
        ------
        cryptography.exceptions.UnsupportedAlgorithm
            Raised if the provided key is neither an RSA nor an elliptic
            curve private key.
        """
        private_key = load_pem_private_key(pem, password=None)
        if not isinstance(
            private_key, rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey
        ):
            msg = "Key is not an RSA or elliptic curve private key"
            raise UnsupportedAlgorithm(msg)
        return cls(private_key)

    @classmethod
    def generate_rsa(cls, key_size: int = 2048) -> Self:
        """Generate a new RSA key pair.

        Parameters
        ----------
        key_size
            Size of the modulus in bits.

        Returns
        -------
        KeyPair
            Newly-generated key pair.
        """
        private_key = rsa.generate_private_key(
            public_exponent=65537, key_size=key_size
        )
        return cls(private_key)

    @classmethod
    def generate_ec(cls, curve: ec.EllipticCurve | None = None) -> Self:
        """Generate a new elliptic curve key pair.

        Parameters
        ----------
        curve
            Curve to use. Defaults to P-256, the curve used by ``ES256``.

        Returns
        -------
        KeyPair
            Newly-generated key pair.
        """
        private_key = ec.generate_private_key(curve or ec.SECP256R1())
        return cls(private_key)

    def __init__(self, private_key: PrivateKey) -> None:
        self.private_key = private_key
        self._private_key_as_pem: bytes | None = None
        self._public_key_as_pem: bytes | None = None

    @property
    def is_rsa(self) -> bool:
        """Whether this is an RSA key pair."""
        return isinstance(self.private_key, rsa.RSAPrivateKey)

    def private_key_as_pem(self) -> bytes:
        """Return the serialized private key.

        Returns
        -------
        bytes
            Private key encoded using PKCS#8 with no encryption.
        """
        if not self._private_key_as_pem:
            self._private_key_as_pem = self.private_key.private_bytes(
                Encoding.PEM, PrivateFormat.PKCS8, NoEncryption()
            )
        return self._private_key_as_pem

    def public_key_as_pem(self) -> bytes:
        """Return the PEM-encoded public key.

        Returns
        -------
        bytes
            The public key in PEM encoding and SubjectPublicKeyInfo format.
        """
        if not self._public_key_as_pem:
            public_key = self.private_key.public_key()
            self._public_key_as_pem = public_key.public_bytes(
                Encoding.PEM, PublicFormat.SubjectPublicKeyInfo
            )
        return self._public_key_as_pem
