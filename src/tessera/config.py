"""Configuration for Tessera.

Tessera can be configured from a YAML file using camel-case setting names.
Every setting may be overridden by an environment variable with the
``TESSERA_`` prefix, which takes precedence over the file.
"""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Any, Self, override

import yaml
from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_settings import (
    BaseSettings,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
)
from safir.logging import LogLevel, Profile, configure_logging
from safir.pydantic import HumanTimedelta

from .algorithms import AlgorithmFamily, create_algorithm, supported_algorithms
from .builder import TokenBuilder
from .constants import DEFAULT_LEEWAY, DEFAULT_TOKEN_LIFETIME, LOGGER_NAME
from .issuer import TokenIssuer
from .keypair import KeyPair

__all__ = [
    "CamelCaseSettings",
    "Config",
    "EnvFirstSettings",
]


class CamelCaseSettings(BaseSettings):
    """Base class for Pydantic settings supporting camel-case.

    This base class also forbids all extra attributes.
    """

    model_config = SettingsConfigDict(
        alias_generator=to_camel, extra="forbid", populate_by_name=True
    )


class EnvFirstSettings(CamelCaseSettings):
    """Base class for Pydantic settings with environment overrides.

    Classes that inherit from this base class will prioritize environment
    variables over arguments to the class constructor.

    Fields are only matched by their aliases, listed with the environment
    variable first. Matching by field name would let a one-word setting in
    the configuration file win over its environment variable.
    """

    model_config = SettingsConfigDict(populate_by_name=False)

    @override
    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Override the sources of settings.

        Deactivate :file:`.env` and secret file support. Allow environment
        variables to override init parameters, since init parameters come
        from the YAML configuration file and environment variables should
        take precedence.
        """
        return (env_settings, init_settings)


class Config(EnvFirstSettings):
    """Configuration for encoding, decoding and issuing tokens."""

    algorithm: str = Field(
        "HS256",
        title="Signing algorithm",
        description="JWS name of the algorithm used to sign and verify",
        validation_alias=AliasChoices("TESSERA_ALGORITHM", "algorithm"),
    )

    secrets: list[SecretStr] = Field(
        [],
        title="Keys",
        description=(
            "HMAC secrets or PEM-encoded keys. The first is used to sign new"
            " tokens and all are tried in order when verifying, which allows"
            " keys to be rotated."
        ),
        validation_alias=AliasChoices("TESSERA_SECRETS", "secrets"),
    )

    private_key_file: Path | None = Field(
        None,
        title="Private key file",
        description=(
            "Path to a PEM-encoded RSA or elliptic curve private key for"
            " asymmetric algorithms"
        ),
        validation_alias=AliasChoices(
            "TESSERA_PRIVATE_KEY_FILE", "privateKeyFile"
        ),
    )

    verify_signature: bool = Field(
        True,
        title="Verify signatures",
        description=(
            "Whether to verify token signatures when decoding. Must be false"
            " for the none algorithm."
        ),
        validation_alias=AliasChoices(
            "TESSERA_VERIFY_SIGNATURE", "verifySignature"
        ),
    )

    leeway: HumanTimedelta = Field(
        DEFAULT_LEEWAY,
        title="Clock skew leeway",
        description="Tolerance when checking the exp and nbf claims",
        validation_alias=AliasChoices("TESSERA_LEEWAY", "leeway"),
    )

    token_lifetime: HumanTimedelta = Field(
        DEFAULT_TOKEN_LIFETIME,
        title="Lifetime of issued tokens",
        validation_alias=AliasChoices(
            "TESSERA_TOKEN_LIFETIME", "tokenLifetime"
        ),
    )

    issuer: str | None = Field(
        None,
        title="Token issuer",
        description="Value of the iss claim of issued tokens",
        validation_alias=AliasChoices("TESSERA_ISSUER", "issuer"),
    )

    audience: str | None = Field(
        None,
        title="Token audience",
        description="Value of the aud claim of issued tokens",
        validation_alias=AliasChoices("TESSERA_AUDIENCE", "audience"),
    )

    log_level: LogLevel = Field(
        LogLevel.INFO,
        title="Logging level",
        description="Python logging level",
        validation_alias=AliasChoices("TESSERA_LOG_LEVEL", "logLevel"),
    )

    log_profile: Profile = Field(
        Profile.production,
        title="Logging profile",
        description=(
            "Logging profile: production for JSON logs, development for"
            " human-readable logs"
        ),
        validation_alias=AliasChoices("TESSERA_LOG_PROFILE", "logProfile"),
    )

    _keypair: KeyPair | None
    """Key pair loaded from ``private_key_file``."""

    @field_validator("algorithm")
    @classmethod
    def _validate_algorithm(cls, v: str) -> str:
        if v not in supported_algorithms():
            supported = ", ".join(supported_algorithms())
            raise ValueError(f"Unknown algorithm {v} (use {supported})")
        return v

    @field_validator("leeway")
    @classmethod
    def _validate_leeway(cls, v: timedelta) -> timedelta:
        if v < timedelta(0):
            raise ValueError("leeway must not be negative")
        return v

    @field_validator("token_lifetime")
    @classmethod
    def _validate_token_lifetime(cls, v: timedelta) -> timedelta:
        if v <= timedelta(0):
            raise ValueError("tokenLifetime must be positive")
        return v

    @model_validator(mode="after")
    def _validate_keys(self) -> Self:
        family = create_algorithm(self.algorithm).family
        if family == AlgorithmFamily.none:
            if self.verify_signature:
                msg = "verifySignature must be false for the none algorithm"
                raise ValueError(msg)
            return self
        if family == AlgorithmFamily.hmac:
            if self.private_key_file:
                msg = f"privateKeyFile cannot be used with {self.algorithm}"
                raise ValueError(msg)
            if not self.secrets:
                raise ValueError(f"secrets must be set for {self.algorithm}")
        elif not self.secrets and not self.private_key_file:
            msg = f"privateKeyFile or secrets must be set for {self.algorithm}"
            raise ValueError(msg)
        return self

    @classmethod
    def from_file(cls, path: Path) -> Self:
        """Construct a Config object from a configuration file.

        Parameters
        ----------
        path
            Path to the configuration file in YAML.

        Returns
        -------
        Config
            The corresponding `Config` object.
        """
        with path.open("r") as f:
            return cls.model_validate(yaml.safe_load(f) or {})

    def __init__(self, **data: Any) -> None:
        super().__init__(**data)
        self._keypair = None
        if self.private_key_file:
            pem = self.private_key_file.read_bytes()
            self._keypair = KeyPair.from_pem(pem)

    @property
    def keypair(self) -> KeyPair | None:
        """Key pair loaded from the private key file, if any."""
        return self._keypair

    def configure_logging(self) -> None:
        """Configure logging based on the Tessera configuration."""
        configure_logging(
            name=LOGGER_NAME,
            profile=self.log_profile,
            log_level=self.log_level,
        )

    def create_builder(self) -> TokenBuilder:
        """Create a token builder from this configuration.

        Returns
        -------
        TokenBuilder
            Builder with the algorithm, keys, leeway and signature policy set.

        Raises
        ------
        InvalidKeyError
            Raised if the private key does not fit the algorithm.
        """
        algorithm = create_algorithm(self.algorithm, self._keypair)
        secrets = [s.get_secret_value() for s in self.secrets]
        return (
            TokenBuilder()
            .with_verify_signature(self.verify_signature)
            .with_algorithm(algorithm)
            .with_secret(*secrets)
            .with_leeway(self.leeway)
        )

    def create_issuer(self) -> TokenIssuer:
        """Create a token issuer from this configuration."""
        return TokenIssuer(
            self.create_builder(),
            lifetime=self.token_lifetime,
            issuer=self.issuer,
            audience=self.audience,
        )
