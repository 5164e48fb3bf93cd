"""Fluent construction of token encoders and decoders.

`TokenBuilder` accumulates a header, claims and collaborators into a
`TokenSetup`. Before the first encode or decode, the setup is checked by
`check_can_encode`, `check_can_decode` or `check_can_decode_header`, and the
encoder, decoder and validator are built from it. Any later configuration
call discards the built components so that the next operation uses the new
configuration.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import timedelta
from typing import Any, Self

import structlog
from structlog.stdlib import BoundLogger

from .algorithms import AlgorithmFamily, Key, TokenAlgorithm, create_algorithm
from .clock import UtcClock
from .constants import LOGGER_NAME
from .decoder import TokenDecoder
from .encoder import TokenEncoder
from .exceptions import ConfigurationError
from .keypair import KeyPair
from .models import (
    ClaimName,
    DecodedToken,
    HeaderName,
    ValidationParameters,
    claims_from_object,
)
from .protocols import AlgorithmFactory, Clock, Serializer, UrlEncoder
from .serialization import Base64UrlEncoder, JSONSerializer
from .validator import ClaimsValidator

__all__ = [
    "TokenBuilder",
    "TokenSetup",
    "check_can_decode",
    "check_can_decode_header",
    "check_can_encode",
]


@dataclass
class TokenSetup:
    """Everything a `TokenBuilder` has been told.

    Collaborators that have a safe default start out with it. The algorithm,
    the algorithm factory and the keys have no default.
    """

    header: dict[str, Any] = field(default_factory=dict)
    """Header parameters added to encoded tokens."""

    claims: dict[str, Any] = field(default_factory=dict)
    """Claims added to encoded tokens."""

    serializer: Serializer | None = field(default_factory=JSONSerializer)
    """Serializer for headers and claims."""

    url_encoder: UrlEncoder | None = field(default_factory=Base64UrlEncoder)
    """Base64url encoder for token segments."""

    clock: Clock | None = field(default_factory=UtcClock)
    """Clock for claims validation."""

    algorithm: TokenAlgorithm | None = None
    """Algorithm to sign and verify with."""

    algorithm_factory: AlgorithmFactory | None = None
    """Factory resolving algorithms by name if no algorithm is set."""

    validator: ClaimsValidator | None = None
    """Custom claims validator, replacing the one built from the clock."""

    encoder: TokenEncoder | None = None
    """Custom encoder, replacing the one built from this setup."""

    decoder: TokenDecoder | None = None
    """Custom decoder, replacing the one built from this setup."""

    parameters: ValidationParameters = field(
        default_factory=ValidationParameters.default
    )
    """Validation settings."""

    secrets: list[Key] = field(default_factory=list)
    """Keys, in order. The first signs; all are tried when verifying."""

    logger: BoundLogger | None = None
    """Logger passed to the built components."""

    verify_requested: bool = False
    """Whether signature verification was asked for explicitly."""

    verify_disabled_by_algorithm: bool = False
    """Whether verification is off only because ``none`` was set.

    Verification is turned back on when another algorithm replaces
    ``none``, unless it has since been turned off explicitly.
    """


def _check_signature_policy(setup: TokenSetup) -> None:
    """Reject verifying signatures with the ``none`` algorithm."""
    algorithm = setup.algorithm
    if not algorithm or algorithm.family != AlgorithmFamily.none:
        return
    if setup.parameters.validate_signature:
        msg = (
            "Signature verification is not allowed with the none algorithm,"
            " call do_not_verify_signature() or with_algorithm()"
        )
        raise ConfigurationError(msg)


def _raise_missing(operation: str, missing: list[str]) -> None:
    if missing:
        calls = "".join(f"\n- {m}" for m in missing)
        msg = f"Cannot {operation}. Check that you have called:{calls}"
        raise ConfigurationError(msg)


def check_can_encode(setup: TokenSetup) -> None:
    """Check that a setup has everything needed to encode a token.

    Parameters
    ----------
    setup
        Setup to check.

    Raises
    ------
    ConfigurationError
        Raised if something required is missing, naming the builder calls
        that would supply it.
    """
    missing = []
    if not setup.encoder:
        if not setup.algorithm and not setup.algorithm_factory:
            missing.append("with_algorithm() or with_algorithm_factory()")
        if not setup.serializer:
            missing.append("with_serializer()")
        if not setup.url_encoder:
            missing.append("with_url_encoder()")
        algorithm = setup.algorithm
        if algorithm and algorithm.requires_key and not setup.secrets:
            missing.append("with_secret()")
    _raise_missing("encode a token", missing)


def check_can_decode(setup: TokenSetup) -> None:
    """Check that a setup has everything needed to decode a token.

    Parameters
    ----------
    setup
        Setup to check.

    Raises
    ------
    ConfigurationError
        Raised if something required is missing or if signature verification
        is requested with the ``none`` algorithm.
    """
    _check_signature_policy(setup)
    missing = []
    verify = setup.parameters.validate_signature
    if not setup.decoder:
        if not setup.serializer:
            missing.append("with_serializer()")
        if not setup.url_encoder:
            missing.append("with_url_encoder()")
        if not setup.validator and not setup.clock:
            missing.append("with_clock() or with_validator()")
        if verify and not setup.algorithm and not setup.algorithm_factory:
            missing.append("with_algorithm() or with_algorithm_factory()")
    algorithm = setup.algorithm
    if verify and algorithm and algorithm.requires_key and not setup.secrets:
        missing.append("with_secret()")
    _raise_missing("decode a token", missing)


def check_can_decode_header(setup: TokenSetup) -> None:
    """Check that a setup has everything needed to decode a token header.

    No algorithm or key is needed for this.

    Parameters
    ----------
    setup
        Setup to check.

    Raises
    ------
    ConfigurationError
        Raised if the serializer or the URL encoder is missing.
    """
    missing = []
    if not setup.decoder:
        if not setup.serializer:
            missing.append("with_serializer()")
        if not setup.url_encoder:
            missing.append("with_url_encoder()")
    _raise_missing("decode a token header", missing)


class TokenBuilder:
    """Encode and decode tokens with a fluent API.

    Every configuration method returns the builder so calls can be chained.

    Parameters
    ----------
    setup
        Initial setup. A new default setup is used if not given.

    Raises
    ------
    ConfigurationError
        Raised if the setup requests signature verification with the
        ``none`` algorithm.

    Examples
    --------
    .. code-block:: python

       token = (
           TokenBuilder()
           .with_algorithm("HS256")
           .with_secret("secret")
           .add_claim(ClaimName.subject, "someone")
           .encode()
       )
       claims = (
           TokenBuilder()
           .with_algorithm("HS256")
           .with_secret("secret")
           .must_verify_signature()
           .decode(token)
       )
    """

    def __init__(self, setup: TokenSetup | None = None) -> None:
        self._setup = setup or TokenSetup()
        _check_signature_policy(self._setup)
        self._encoder: TokenEncoder | None = None
        self._decoder: TokenDecoder | None = None
        self._header_decoder: TokenDecoder | None = None

    @property
    def setup(self) -> TokenSetup:
        """Accumulated configuration."""
        return self._setup

    def add_header(self, name: HeaderName | str, value: Any) -> Self:
        """Add a header parameter, replacing any previous value.

        The ``alg`` header is always set to the signing algorithm, so setting
        it here only has an effect when an algorithm factory is used.
        """
        self._setup.header[str(name)] = value
        return self

    def add_claim(self, name: ClaimName | str, value: Any) -> Self:
        """Add a claim, replacing any previous value."""
        self._setup.claims[str(name)] = value
        return self

    def add_claims(self, claims: Any) -> Self:
        """Add all claims from a mapping, pydantic model or dataclass.

        Parameters
        ----------
        claims
            Object to flatten with `~tessera.models.claims_from_object`.

        Returns
        -------
        TokenBuilder
            This builder.
        """
        self._setup.claims.update(claims_from_object(claims))
        return self

    def with_serializer(self, serializer: Serializer) -> Self:
        """Set the serializer for headers and claims."""
        self._setup.serializer = serializer
        return self._reset()

    def with_url_encoder(self, url_encoder: UrlEncoder) -> Self:
        """Set the base64url encoder for token segments."""
        self._setup.url_encoder = url_encoder
        return self._reset()

    def with_clock(self, clock: Clock) -> Self:
        """Set the clock used for claims validation."""
        self._setup.clock = clock
        return self._reset()

    def with_logger(self, logger: BoundLogger) -> Self:
        """Set the logger passed to the encoder and decoder."""
        self._setup.logger = logger
        return self._reset()

    def with_algorithm(
        self, algorithm: TokenAlgorithm | str, keypair: KeyPair | None = None
    ) -> Self:
        """Set the algorithm to sign and verify with.

        Setting the ``none`` algorithm turns signature verification off,
        unless verification was explicitly requested, which is an error.
        Replacing ``none`` with another algorithm turns it back on unless
        it was explicitly turned off in the meantime.

        Parameters
        ----------
        algorithm
            The algorithm, or its JWS name.
        keypair
            Key pair for an asymmetric algorithm given by name.

        Returns
        -------
        TokenBuilder
            This builder.

        Raises
        ------
        ConfigurationError
            Raised if the algorithm name is unknown or if the ``none``
            algorithm is set after signature verification was requested.
        """
        if isinstance(algorithm, str):
            algorithm = create_algorithm(algorithm, keypair)
        if algorithm.family == AlgorithmFamily.none:
            if self._setup.verify_requested:
                msg = (
                    "Signature verification was requested, so the none"
                    " algorithm cannot be used"
                )
                raise ConfigurationError(msg)
            parameters = self._setup.parameters
            if parameters.validate_signature:
                self._setup.parameters = parameters.with_changes(
                    validate_signature=False
                )
                self._setup.verify_disabled_by_algorithm = True
        elif self._setup.verify_disabled_by_algorithm:
            parameters = self._setup.parameters
            self._setup.parameters = parameters.with_changes(
                validate_signature=True
            )
            self._setup.verify_disabled_by_algorithm = False
        self._setup.algorithm = algorithm
        return self._reset()

    def with_algorithm_factory(self, factory: AlgorithmFactory) -> Self:
        """Set the factory resolving algorithms by name.

        Only used if no algorithm is set. When encoding, the factory resolves
        the ``alg`` header added with `add_header`. When decoding, it
        resolves the ``alg`` header of the token and acts as an allow-list.
        """
        self._setup.algorithm_factory = factory
        return self._reset()

    def with_validator(self, validator: ClaimsValidator) -> Self:
        """Set a custom claims validator.

        The validator replaces the one built from the clock and validation
        parameters, so the leeway and claim checks configured on the builder
        do not apply to it.
        """
        self._setup.validator = validator
        return self._reset()

    def with_encoder(self, encoder: TokenEncoder) -> Self:
        """Set a custom encoder."""
        self._setup.encoder = encoder
        return self._reset()

    def with_decoder(self, decoder: TokenDecoder) -> Self:
        """Set a custom decoder."""
        self._setup.decoder = decoder
        return self._reset()

    def with_secret(self, *secrets: str | bytes) -> Self:
        """Set the keys.

        The first key signs new tokens. When verifying, every key is tried in
        order, which allows keys to be rotated.

        Parameters
        ----------
        *secrets
            HMAC secrets or PEM-encoded keys. Strings are encoded as UTF-8.

        Returns
        -------
        TokenBuilder
            This builder.
        """
        self._setup.secrets = [
            s.encode() if isinstance(s, str) else s for s in secrets
        ]
        return self._reset()

    def must_verify_signature(self) -> Self:
        """Require signature verification when decoding."""
        return self.with_verify_signature(True)

    def do_not_verify_signature(self) -> Self:
        """Skip signature verification when decoding."""
        return self.with_verify_signature(False)

    def with_verify_signature(self, verify: bool) -> Self:
        """Set whether to verify signatures when decoding."""
        return self.with_validation_parameters(validate_signature=verify)

    def with_leeway(self, leeway: timedelta | int) -> Self:
        """Set the clock skew tolerance, as a duration or in seconds."""
        return self.with_validation_parameters(leeway=leeway)

    def with_validation_parameters(
        self, parameters: ValidationParameters | None = None, **changes: Any
    ) -> Self:
        """Set the validation parameters.

        Parameters
        ----------
        parameters
            New parameters. If not given, the current ones are used.
        **changes
            Individual settings to change, applied after ``parameters``.

        Returns
        -------
        TokenBuilder
            This builder.

        Raises
        ------
        ConfigurationError
            Raised if the result requests signature verification while the
            ``none`` algorithm is set.
        pydantic.ValidationError
            Raised if a changed setting is invalid.
        """
        new = parameters or self._setup.parameters
        if changes:
            new = new.with_changes(**changes)
        if parameters:
            verify_requested = parameters.validate_signature
        else:
            verify_requested = self._setup.verify_requested
        if "validate_signature" in changes:
            verify_requested = bool(changes["validate_signature"])

        previous = self._setup.parameters
        self._setup.parameters = new
        try:
            _check_signature_policy(self._setup)
        except ConfigurationError:
            self._setup.parameters = previous
            raise
        self._setup.verify_requested = verify_requested
        if parameters or "validate_signature" in changes:
            self._setup.verify_disabled_by_algorithm = False
        return self._reset()

    def encode(self, payload: Any = None) -> str:
        """Encode a token from the accumulated header and claims.

        Parameters
        ----------
        payload
            Optional mapping, pydantic model or dataclass whose fields are
            merged over the claims added so far. The builder's claims are not
            modified.

        Returns
        -------
        str
            The encoded token.

        Raises
        ------
        ConfigurationError
            Raised if the builder is missing something needed to encode.
        """
        encoder = self._get_encoder()
        claims = dict(self._setup.claims)
        if payload is not None:
            claims.update(claims_from_object(payload))
        key = self._setup.secrets[0] if self._setup.secrets else None
        return encoder.encode(claims, key, extra_headers=self._setup.header)

    def decode(self, token: str | bytes) -> dict[str, Any]:
        """Decode a token and return its claims.

        Raises
        ------
        ConfigurationError
            Raised if the builder is missing something needed to decode.
        TokenError
            Raised if the token is invalid.
        """
        return self.decode_complete(token).claims

    def decode_complete(self, token: str | bytes) -> DecodedToken:
        """Decode a token and return its header, claims and signature.

        Raises
        ------
        ConfigurationError
            Raised if the builder is missing something needed to decode.
        TokenError
            Raised if the token is invalid.
        """
        decoder = self._get_decoder()
        return decoder.decode_complete(
            token,
            self._setup.secrets,
            verify=self._setup.parameters.validate_signature,
        )

    def decode_to(self, token: str | bytes, target: Any) -> Any:
        """Decode a token into an instance of a type, such as a model.

        Raises
        ------
        ConfigurationError
            Raised if the builder is missing something needed to decode.
        TokenError
            Raised if the token is invalid or does not match the type.
        """
        decoder = self._get_decoder()
        return decoder.decode_to(
            token,
            target,
            self._setup.secrets,
            verify=self._setup.parameters.validate_signature,
        )

    def decode_header(self, token: str | bytes, target: Any = None) -> Any:
        """Decode the header of a token without verifying anything.

        The header is returned as a dict, or as an instance of ``target`` if
        one is given.

        Raises
        ------
        ConfigurationError
            Raised if the serializer or URL encoder is missing.
        MalformedTokenError
            Raised if the token or its header cannot be parsed, or if the
            header does not match ``target``.
        """
        if not self._header_decoder:
            check_can_decode_header(self._setup)
            self._header_decoder = self._setup.decoder or TokenDecoder(
                self._setup.serializer,
                self._setup.url_encoder,
                logger=self._logger,
            )
        return self._header_decoder.decode_header(token, target)

    @property
    def _logger(self) -> BoundLogger:
        return self._setup.logger or structlog.get_logger(LOGGER_NAME)

    def _get_encoder(self) -> TokenEncoder:
        if not self._encoder:
            check_can_encode(self._setup)
            self._encoder = self._setup.encoder or TokenEncoder(
                self._setup.algorithm,
                self._setup.serializer,
                self._setup.url_encoder,
                factory=self._setup.algorithm_factory,
                logger=self._logger,
            )
        return self._encoder

    def _get_decoder(self) -> TokenDecoder:
        if not self._decoder:
            check_can_decode(self._setup)
            if self._setup.decoder:
                self._decoder = self._setup.decoder
            else:
                validator = self._setup.validator
                if not validator:
                    assert self._setup.clock
                    validator = ClaimsValidator(
                        self._setup.clock, self._setup.parameters
                    )
                self._decoder = TokenDecoder(
                    self._setup.serializer,
                    self._setup.url_encoder,
                    validator=validator,
                    algorithm=self._setup.algorithm,
                    factory=self._setup.algorithm_factory,
                    logger=self._logger,
                )
        return self._decoder

    def _reset(self) -> Self:
        """Discard built components after a configuration change."""
        self._encoder = None
        self._decoder = None
        self._header_decoder = None
        return self
