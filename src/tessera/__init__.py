"""Encoding, decoding and validation of JSON Web Tokens."""

from .algorithms import (
    AlgorithmFamily,
    AlgorithmSelector,
    DefaultAlgorithmFactory,
    ECDSAAlgorithm,
    HMACAlgorithm,
    NoneAlgorithm,
    RSAAlgorithm,
    TokenAlgorithm,
    create_algorithm,
    supported_algorithms,
)
from .builder import TokenBuilder, TokenSetup
from .clock import UtcClock
from .decoder import TokenDecoder
from .encoder import TokenEncoder
from .exceptions import (
    ConfigurationError,
    InvalidClaimError,
    InvalidKeyError,
    MalformedTokenError,
    SignatureVerificationError,
    TesseraError,
    TokenError,
    TokenExpiredError,
    TokenNotYetValidError,
    TokenValidationError,
    UnsupportedAlgorithmError,
)
from .issuer import TokenIssuer
from .keypair import KeyPair
from .models import (
    ClaimName,
    DecodedToken,
    HeaderName,
    ValidationParameters,
    claims_from_object,
)
from .serialization import Base64UrlEncoder, JSONSerializer
from .validator import ClaimsValidator

__all__ = [
    "AlgorithmFamily",
    "AlgorithmSelector",
    "Base64UrlEncoder",
    "ClaimName",
    "ClaimsValidator",
    "ConfigurationError",
    "DecodedToken",
    "DefaultAlgorithmFactory",
    "ECDSAAlgorithm",
    "HMACAlgorithm",
    "HeaderName",
    "InvalidClaimError",
    "InvalidKeyError",
    "JSONSerializer",
    "KeyPair",
    "MalformedTokenError",
    "NoneAlgorithm",
    "RSAAlgorithm",
    "SignatureVerificationError",
    "TesseraError",
    "TokenAlgorithm",
    "TokenBuilder",
    "TokenDecoder",
    "TokenEncoder",
    "TokenError",
    "TokenExpiredError",
    "TokenIssuer",
    "TokenNotYetValidError",
    "TokenSetup",
    "TokenValidationError",
    "UnsupportedAlgorithmError",
    "UtcClock",
    "ValidationParameters",
    "claims_from_object",
    "create_algorithm",
    "supported_algorithms",
]
