"""Token decoding and signature verification."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

import structlog
from structlog.stdlib import BoundLogger

from .algorithms import AlgorithmSelector, Key, TokenAlgorithm
from .constants import LOGGER_NAME, SEGMENT_COUNT
from .exceptions import (
    ConfigurationError,
    MalformedTokenError,
    SignatureVerificationError,
    TokenValidationError,
    UnsupportedAlgorithmError,
)
from .models import DecodedToken, HeaderName
from .protocols import AlgorithmFactory, Serializer, UrlEncoder
from .validator import ClaimsValidator

__all__ = ["TokenDecoder"]


class TokenDecoder:
    """Parses tokens, verifies their signatures and validates their claims.

    The algorithm that verifies a token is always the configured one (or one
    resolved through the configured factory), never one chosen by the token.

    Parameters
    ----------
    serializer
        Serializer for the header and claims.
    url_encoder
        Base64url encoder for the segments.
    validator
        Validator for the claims. If not given, claims are not checked.
    algorithm
        Algorithm to verify signatures with.
    factory
        Factory resolving the ``alg`` header, used if no algorithm is given.
    logger
        Logger to use to report status information.

    Raises
    ------
    ConfigurationError
        Raised if the serializer or the URL encoder is missing.
    """

    def __init__(
        self,
        serializer: Serializer | None,
        url_encoder: UrlEncoder | None,
        *,
        validator: ClaimsValidator | None = None,
        algorithm: TokenAlgorithm | None = None,
        factory: AlgorithmFactory | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        if serializer is None:
            msg = "Cannot create a decoder, call with_serializer()"
            raise ConfigurationError(msg)
        if url_encoder is None:
            msg = "Cannot create a decoder, call with_url_encoder()"
            raise ConfigurationError(msg)
        self._serializer = serializer
        self._url_encoder = url_encoder
        self._validator = validator
        self._algorithm = algorithm
        self._selector = None
        if algorithm or factory:
            self._selector = AlgorithmSelector(algorithm, factory)
        self._logger = logger or structlog.get_logger(LOGGER_NAME)

    def split(self, token: str | bytes) -> tuple[str, str, str]:
        """Split a token into its three encoded segments.

        Parameters
        ----------
        token
            The encoded token. Bytes must be ASCII.

        Returns
        -------
        tuple of str
            The header, payload and signature segments.

        Raises
        ------
        MalformedTokenError
            Raised if the token does not have exactly three segments.
        """
        if isinstance(token, bytes):
            try:
                token = token.decode("ascii")
            except UnicodeDecodeError as e:
                raise MalformedTokenError("Token is not ASCII") from e
        if not isinstance(token, str):
            raise MalformedTokenError("Token is not a string")
        parts = token.split(".")
        if len(parts) != SEGMENT_COUNT:
            msg = f"Token has {len(parts)} segments instead of {SEGMENT_COUNT}"
            raise MalformedTokenError(msg)
        header, payload, signature = parts
        return header, payload, signature

    def decode_header(self, token: str | bytes, target: Any = None) -> Any:
        """Decode only the header of a token.

        The signature is not checked and the payload is not decoded. This
        works without any algorithm or key and is meant for inspecting a token
        before deciding how to verify it, for example by its ``kid``.

        Parameters
        ----------
        token
            The encoded token.
        target
            If given, type of the result, such as a pydantic model of the
            header parameters.

        Returns
        -------
        Any
            The decoded header, as a dict unless ``target`` is given.

        Raises
        ------
        MalformedTokenError
            Raised if the token or its header cannot be parsed, or if the
            header does not match ``target``.
        """
        header_segment, _, _ = self.split(token)
        header = self._decode_json(header_segment, "header")
        if target is None:
            return header
        return self._convert(header_segment, target, "header")

    def decode_complete(
        self,
        token: str | bytes,
        keys: Sequence[Key] = (),
        *,
        verify: bool = True,
    ) -> DecodedToken:
        """Decode a token, verifying and validating it.

        Parameters
        ----------
        token
            The encoded token.
        keys
            Candidate keys, tried in order. May be empty if the algorithm
            carries its own key material.
        verify
            Whether to verify the signature.

        Returns
        -------
        DecodedToken
            The decoded header, claims and signature.

        Raises
        ------
        ConfigurationError
            Raised if verification was requested without an algorithm or
            without keys. Checked before the token is parsed, except that
            with only an algorithm factory the need for a key depends on the
            ``alg`` header, so missing keys are reported after parsing.
        MalformedTokenError
            Raised if the token cannot be parsed.
        UnsupportedAlgorithmError
            Raised if the header algorithm is not the configured one or is
            ``none`` while verifying.
        SignatureVerificationError
            Raised if no candidate key verifies the signature.
        TokenValidationError
            Raised if the claims fail validation.
        """
        if verify:
            self._check_can_verify(keys)

        header_segment, payload_segment, signature_segment = self.split(token)
        header = self._decode_json(header_segment, "header")
        claims = self._decode_json(payload_segment, "payload")
        signing_input = f"{header_segment}.{payload_segment}"
        if verify:
            algorithm = self._select_algorithm(header)
            signature = self._decode_signature(signature_segment)
            self._verify_signature(algorithm, signing_input, signature, keys)
        else:
            signature = self._decode_signature(signature_segment)

        if self._validator:
            try:
                self._validator.validate(claims)
            except TokenValidationError as e:
                self._logger.warning("Token claims are invalid", error=str(e))
                raise

        return DecodedToken(
            header=header,
            claims=claims,
            signature=signature,
            signing_input=signing_input,
        )

    def decode(
        self,
        token: str | bytes,
        keys: Sequence[Key] = (),
        *,
        verify: bool = True,
    ) -> dict[str, Any]:
        """Decode a token and return its claims.

        Parameters
        ----------
        token
            The encoded token.
        keys
            Candidate keys, tried in order.
        verify
            Whether to verify the signature.

        Returns
        -------
        dict of Any
            The claims of the token.

        Raises
        ------
        TesseraError
            Raised for the same reasons as `decode_complete`.
        """
        return self.decode_complete(token, keys, verify=verify).claims

    def decode_to(
        self,
        token: str | bytes,
        target: Any,
        keys: Sequence[Key] = (),
        *,
        verify: bool = True,
    ) -> Any:
        """Decode a token into an object of the given type.

        The token is fully decoded, verified and validated first. The payload
        is then validated against the target type by the serializer.

        Parameters
        ----------
        token
            The encoded token.
        target
            Type of the result, such as a pydantic model of the claims.
        keys
            Candidate keys, tried in order.
        verify
            Whether to verify the signature.

        Returns
        -------
        Any
            The payload converted to the target type.

        Raises
        ------
        MalformedTokenError
            Raised if the payload does not match the target type.
        TesseraError
            Raised for the same reasons as `decode_complete`.
        """
        decoded = self.decode_complete(token, keys, verify=verify)
        payload_segment = decoded.signing_input.split(".")[1]
        return self._convert(payload_segment, target, "payload")

    def _convert(self, segment: str, target: Any, name: str) -> Any:
        """Validate an already decoded segment against a target type."""
        raw = self._url_encoder.decode(segment)
        try:
            return self._serializer.deserialize(raw, target)
        except ValueError as e:
            target_name = getattr(target, "__name__", str(target))
            msg = f"Token {name} does not match {target_name}"
            raise MalformedTokenError(msg) from e

    def _check_can_verify(self, keys: Sequence[Key]) -> None:
        if not self._selector:
            msg = (
                "Cannot verify a signature without an algorithm, call"
                " with_algorithm() or do_not_verify_signature()"
            )
            raise ConfigurationError(msg)
        algorithm = self._algorithm
        if algorithm and algorithm.requires_key and not keys:
            msg = f"No keys to verify {algorithm.name}, call with_secret()"
            raise ConfigurationError(msg)

    def _decode_json(self, segment: str, name: str) -> dict[str, Any]:
        """Decode a header or payload segment into a JSON object."""
        try:
            raw = self._url_encoder.decode(segment)
        except ValueError as e:
            msg = f"Token {name} is not valid base64url"
            raise MalformedTokenError(msg) from e
        try:
            value = self._serializer.deserialize(raw)
        except (TypeError, ValueError) as e:
            msg = f"Token {name} is not a valid JSON object"
            raise MalformedTokenError(msg) from e
        if not isinstance(value, dict):
            msg = f"Token {name} is not a JSON object"
            raise MalformedTokenError(msg)
        return value

    def _decode_signature(self, segment: str) -> bytes:
        try:
            return self._url_encoder.decode(segment)
        except ValueError as e:
            msg = "Token signature is not valid base64url"
            raise MalformedTokenError(msg) from e

    def _select_algorithm(self, header: dict[str, Any]) -> TokenAlgorithm:
        assert self._selector
        try:
            return self._selector.select(header.get(HeaderName.algorithm))
        except UnsupportedAlgorithmError as e:
            self._logger.warning("Rejected token algorithm", error=str(e))
            raise

    def _verify_signature(
        self,
        algorithm: TokenAlgorithm,
        signing_input: str,
        signature: bytes,
        keys: Sequence[Key],
    ) -> None:
        """Verify the signature against each candidate key in turn.

        Parameters
        ----------
        algorithm
            Selected algorithm.
        signing_input
            The original encoded header and payload segments joined by a
            period. The decoded values are never re-serialized for this,
            since serialization need not reproduce the same bytes.
        signature
            Decoded signature.
        keys
            Candidate keys in the order to try them.

        Raises
        ------
        ConfigurationError
            Raised if there are no keys and the algorithm needs one.
        SignatureVerificationError
            Raised if no candidate key verifies the signature.
        """
        candidates: list[Key | None] = list(keys)
        if not candidates:
            if algorithm.requires_key:
                msg = f"No keys to verify {algorithm.name}, call with_secret()"
                raise ConfigurationError(msg)
            candidates = [None]

        data = signing_input.encode()
        for index, key in enumerate(candidates):
            if algorithm.verify(data, signature, key):
                self._logger.debug(
                    "Verified token signature",
                    algorithm=algorithm.name,
                    key_index=index,
                )
                return

        self._logger.warning(
            "Token signature did not verify",
            algorithm=algorithm.name,
            key_count=len(candidates),
        )
        raise SignatureVerificationError("Signature verification failed")
