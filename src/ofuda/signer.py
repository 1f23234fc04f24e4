"""HMAC signature generation and request signing."""

from __future__ import annotations

import base64
import hmac
from typing import TypeVar

from ofuda.canonical import CanonicalStringBuilder, build_canonical_string
from ofuda.common.logging import get_logger
from ofuda.config import Credentials, SigningConfig
from ofuda.http import ReadableRequest, SignableRequest

logger = get_logger(__name__)

AUTHORIZATION_HEADER = "Authorization"

R = TypeVar("R", bound=SignableRequest)


def generate_signature(
    credentials: Credentials,
    canonical_string: str,
    hash_algorithm: str,
) -> str:
    """
    Compute the base64 HMAC of a canonical string.

    Args:
        credentials: Credentials whose secret keys the HMAC
        canonical_string: String to sign
        hash_algorithm: Digest name understood by hashlib

    Returns:
        Base64-encoded signature
    """
    assert credentials.access_key_secret is not None
    digest = hmac.new(
        credentials.access_key_secret.encode("utf-8"),
        canonical_string.encode("utf-8"),
        hash_algorithm,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def constant_time_compare(supplied: str, expected: str) -> bool:
    """
    Compare two signatures without leaking where they differ.

    Strings of different length never match.
    """
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


def format_authorization(service_label: str, access_key_id: str, signature: str) -> str:
    return f"{service_label} {access_key_id}:{signature}"


class Signer:
    """Signs requests with the configured label and hash algorithm."""

    def __init__(self, config: SigningConfig | None = None) -> None:
        self._config = config or SigningConfig()

    @property
    def config(self) -> SigningConfig:
        return self._config

    def canonical_string(self, request: ReadableRequest) -> str:
        return build_canonical_string(request, self._config.header_prefix)

    def signature(self, credentials: Credentials, canonical_string: str) -> str:
        """Sign a canonical string, logging diagnostics in debug mode."""
        if self._config.debug:
            logger.debug(
                "Generating HMAC signature",
                access_key_id=credentials.access_key_id,
                canonical_string=canonical_string,
                hash_algorithm=self._config.hash_algorithm,
            )
        return generate_signature(credentials, canonical_string, self._config.hash_algorithm)

    def authorization_value(
        self,
        credentials: Credentials,
        request: SignableRequest,
        canonical_string_builder: CanonicalStringBuilder | None = None,
    ) -> str:
        """
        Build the Authorization header value for ``request`` without setting it.

        Raises:
            MissingCredentialField: If the key id or secret is missing
        """
        credentials.validate()
        assert credentials.access_key_id is not None

        if canonical_string_builder is not None:
            canonical_string = canonical_string_builder(request)
        else:
            canonical_string = self.canonical_string(request)

        return format_authorization(
            self._config.service_label,
            credentials.access_key_id,
            self.signature(credentials, canonical_string),
        )

    def sign_request(
        self,
        credentials: Credentials,
        request: R,
        canonical_string_builder: CanonicalStringBuilder | None = None,
    ) -> R:
        """
        Add an HMAC Authorization header to ``request``.

        The request is modified in place and returned. Any existing
        Authorization header, whatever its case, is replaced.

        Args:
            credentials: Access key id and secret
            request: Request with writable headers
            canonical_string_builder: Optional replacement for the default
                canonical string, e.g. to sign the path as well

        Returns:
            The same request object

        Raises:
            MissingCredentialField: If the key id or secret is missing
        """
        value = self.authorization_value(credentials, request, canonical_string_builder)

        headers = request.headers
        for name in [n for n in headers if n.lower() == "authorization"]:
            del headers[name]
        headers[AUTHORIZATION_HEADER] = value

        return request
