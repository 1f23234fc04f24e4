"""
ofuda: HMAC request signing and verification.

Clients sign requests with a shared secret into an
``Authorization: <label> <access key id>:<signature>`` header; servers
recompute the signature from credentials looked up by access key id.
"""

from ofuda.canonical import build_canonical_string, build_canonical_string_with_path
from ofuda.common.errors import ConfigurationError, MissingCredentialField, OfudaError
from ofuda.config import Credentials, SigningConfig
from ofuda.http import HttpRequest
from ofuda.signer import Signer, constant_time_compare, generate_signature
from ofuda.verifier import (
    AsyncVerifier,
    VerificationResult,
    Verifier,
    callback_resolver,
    parse_authorization,
    verify_with_callback,
)

__version__ = "1.0.0"

__all__ = [
    "AsyncVerifier",
    "ConfigurationError",
    "Credentials",
    "HttpRequest",
    "MissingCredentialField",
    "OfudaError",
    "Signer",
    "SigningConfig",
    "VerificationResult",
    "Verifier",
    "build_canonical_string",
    "build_canonical_string_with_path",
    "callback_resolver",
    "constant_time_compare",
    "generate_signature",
    "parse_authorization",
    "verify_with_callback",
]
