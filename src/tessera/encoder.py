"""Token encoding."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import structlog
from structlog.stdlib import BoundLogger

from .algorithms import Key, TokenAlgorithm
from .constants import LOGGER_NAME, TOKEN_TYPE
from .exceptions import ConfigurationError
from .models import HeaderName
from .protocols import AlgorithmFactory, Serializer, UrlEncoder

__all__ = ["TokenEncoder"]


class TokenEncoder:
    """Encodes a header and claims into a signed compact token.

    Parameters
    ----------
    algorithm
        Algorithm to sign with.
    serializer
        Serializer for the header and claims.
    url_encoder
        Base64url encoder for the segments.
    factory
        Factory used to resolve the ``alg`` header if no algorithm is given.
    logger
        Logger to use to report status information.

    Raises
    ------
    ConfigurationError
        Raised if a required collaborator is missing.
    """

    def __init__(
        self,
        algorithm: TokenAlgorithm | None,
        serializer: Serializer | None,
        url_encoder: UrlEncoder | None,
        *,
        factory: AlgorithmFactory | None = None,
        logger: BoundLogger | None = None,
    ) -> None:
        if algorithm is None and factory is None:
            msg = (
                "Cannot create an encoder without an algorithm, call"
                " with_algorithm() or with_algorithm_factory()"
            )
            raise ConfigurationError(msg)
        if serializer is None:
            msg = "Cannot create an encoder, call with_serializer()"
            raise ConfigurationError(msg)
        if url_encoder is None:
            msg = "Cannot create an encoder, call with_url_encoder()"
            raise ConfigurationError(msg)
        self._algorithm = algorithm
        self._factory = factory
        self._serializer = serializer
        self._url_encoder = url_encoder
        self._logger = logger or structlog.get_logger(LOGGER_NAME)

    def encode(
        self,
        payload: Mapping[str, Any],
        key: Key | None = None,
        extra_headers: Mapping[str, Any] | None = None,
    ) -> str:
        """Encode and sign a token.

        The header starts as ``{"alg": ..., "typ": "JWT"}`` and is then
        updated from ``extra_headers``, except that ``alg`` always names the
        algorithm that actually signs the token. Neither mapping passed in is
        modified.

        Parameters
        ----------
        payload
            Claims of the token.
        key
            Key to sign with. Required unless the algorithm carries its own
            key material or is ``none``.
        extra_headers
            Additional header parameters. If the encoder was built with an
            algorithm factory, the ``alg`` entry chooses the algorithm.

        Returns
        -------
        str
            The encoded token.

        Raises
        ------
        ConfigurationError
            Raised if the algorithm cannot be determined or no usable key was
            provided. Nothing is serialized before this check.
        InvalidKeyError
            Raised if the key cannot be used with the algorithm.
        ValueError
            Raised if the header or payload cannot be serialized.
        """
        algorithm = self._resolve_algorithm(extra_headers)
        if key is None and algorithm.requires_key:
            msg = f"{algorithm.name} requires a key, call with_secret()"
            raise ConfigurationError(msg)

        header: dict[str, Any] = {
            HeaderName.algorithm.value: algorithm.name,
            HeaderName.token_type.value: TOKEN_TYPE,
        }
        if extra_headers:
            for name, value in extra_headers.items():
                if name != HeaderName.algorithm:
                    header[str(name)] = value

        segments = [
            self._encode_segment(header),
            self._encode_segment({str(k): v for k, v in payload.items()}),
        ]
        signing_input = ".".join(segments)
        signature = algorithm.sign(signing_input.encode(), key)
        segments.append(self._url_encoder.encode(signature))

        self._logger.debug(
            "Encoded token",
            algorithm=algorithm.name,
            kid=header.get(HeaderName.key_id),
        )
        return ".".join(segments)

    def _encode_segment(self, value: dict[str, Any]) -> str:
        serialized = self._serializer.serialize(value)
        return self._url_encoder.encode(serialized.encode())

    def _resolve_algorithm(
        self, extra_headers: Mapping[str, Any] | None
    ) -> TokenAlgorithm:
        """Determine the signing algorithm.

        Parameters
        ----------
        extra_headers
            Caller-supplied header parameters.

        Returns
        -------
        TokenAlgorithm
            The configured algorithm, or the one the factory resolves for the
            requested ``alg`` header.

        Raises
        ------
        ConfigurationError
            Raised if only a factory is configured and the header does not
            name an algorithm it resolves.
        """
        if self._algorithm:
            return self._algorithm
        assert self._factory
        name = (extra_headers or {}).get(HeaderName.algorithm)
        if not isinstance(name, str):
            msg = (
                "No algorithm to resolve, call add_header() with the alg"
                " header or with_algorithm()"
            )
            raise ConfigurationError(msg)
        algorithm = self._factory.resolve(name)
        if not algorithm:
            raise ConfigurationError(f"Algorithm {name} is not allowed")
        return algorithm
