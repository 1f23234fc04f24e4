"""Verification of HMAC Authorization headers."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from ofuda.canonical import CanonicalStringBuilder
from ofuda.common.logging import get_logger
from ofuda.config import Credentials, SigningConfig
from ofuda.headers import get_header
from ofuda.http import ReadableRequest
from ofuda.signer import Signer, constant_time_compare

logger = get_logger(__name__)

CredentialResolver = Callable[[str], Credentials | None]
AsyncCredentialResolver = Callable[[str], Awaitable[Credentials | None]]
CallbackCredentialResolver = Callable[[str, Callable[[Credentials | None], None]], None]


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of verifying one request."""

    result: bool
    access_key_id: str | None = None

    def __bool__(self) -> bool:
        return self.result


DENIED = VerificationResult(result=False)


def parse_authorization(value: object) -> tuple[str, str] | None:
    """
    Split ``"<label> <access key id>:<signature>"`` into its credential parts.

    Args:
        value: Raw Authorization header value

    Returns:
        Tuple of (access_key_id, signature), or None if the value is not a
        string with exactly two space-separated tokens whose second token has
        exactly two colon-separated parts
    """
    if not isinstance(value, str):
        return None

    tokens = value.split(" ")
    if len(tokens) != 2:
        return None

    key_tokens = tokens[1].split(":")
    if len(key_tokens) != 2:
        return None

    return key_tokens[0], key_tokens[1]


class _BaseVerifier:
    def __init__(
        self,
        config: SigningConfig | None = None,
        canonical_string_builder: CanonicalStringBuilder | None = None,
    ) -> None:
        self._signer = Signer(config)
        self._canonical_string_builder = canonical_string_builder

    @property
    def config(self) -> SigningConfig:
        return self._signer.config

    def _parse(self, request: ReadableRequest) -> tuple[str, str] | None:
        authorization = get_header(request.headers, "authorization")
        if self.config.debug:
            logger.debug("Verifying request", authorization=authorization)

        parsed = parse_authorization(authorization)
        if parsed is None:
            logger.debug("Request not authenticated", reason="malformed_authorization")
        return parsed

    def _check(
        self,
        request: ReadableRequest,
        access_key_id: str,
        supplied_signature: str,
        credentials: object,
    ) -> VerificationResult:
        if not isinstance(credentials, Credentials) or credentials.access_key_secret is None:
            logger.debug(
                "Request not authenticated",
                reason="unknown_access_key",
                access_key_id=access_key_id,
            )
            return DENIED

        if self._canonical_string_builder is not None:
            canonical_string = self._canonical_string_builder(request)
        else:
            canonical_string = self._signer.canonical_string(request)

        expected = self._signer.signature(credentials, canonical_string)
        if not constant_time_compare(supplied_signature, expected):
            logger.debug(
                "Request not authenticated",
                reason="signature_mismatch",
                access_key_id=access_key_id,
            )
            return DENIED

        return VerificationResult(result=True, access_key_id=access_key_id)


class Verifier(_BaseVerifier):
    """
    Verifies requests using a synchronous credential resolver.

    Malformed headers, unknown keys and wrong signatures all produce the same
    ``False`` so callers cannot tell which check failed.
    """

    def verify(self, request: ReadableRequest, credential_resolver: CredentialResolver) -> bool:
        """
        Check the request's Authorization header.

        Args:
            request: Request to verify; it is not modified
            credential_resolver: Maps an access key id to Credentials or None

        Returns:
            True only if the supplied signature matches
        """
        return self.verify_result(request, credential_resolver).result

    def verify_result(
        self,
        request: ReadableRequest,
        credential_resolver: CredentialResolver,
    ) -> VerificationResult:
        """Like ``verify`` but also reports the authenticated access key id."""
        parsed = self._parse(request)
        if parsed is None:
            return DENIED

        access_key_id, supplied_signature = parsed
        credentials = credential_resolver(access_key_id)
        return self._check(request, access_key_id, supplied_signature, credentials)


class AsyncVerifier(_BaseVerifier):
    """
    Verifies requests using an asynchronous credential resolver.

    Each call awaits the resolver at most once and produces exactly one
    result. No timeout is applied; wrap the call in ``asyncio.wait_for`` to
    bound it.
    """

    async def verify(
        self,
        request: ReadableRequest,
        credential_resolver: AsyncCredentialResolver,
    ) -> VerificationResult:
        """
        Check the request's Authorization header.

        Args:
            request: Request to verify; it is not modified
            credential_resolver: Coroutine function mapping an access key id
                to Credentials or None

        Returns:
            VerificationResult carrying the access key id on success
        """
        parsed = self._parse(request)
        if parsed is None:
            return DENIED

        access_key_id, supplied_signature = parsed
        credentials = await credential_resolver(access_key_id)
        return self._check(request, access_key_id, supplied_signature, credentials)


def callback_resolver(resolver: CallbackCredentialResolver) -> AsyncCredentialResolver:
    """
    Adapt a ``resolver(access_key_id, on_resolved)`` function to a coroutine.

    The first ``on_resolved`` call settles the result. Later calls are
    ignored, so a misbehaving resolver cannot produce a second answer.
    ``on_resolved`` may be called from another thread.
    """

    async def resolve(access_key_id: str) -> Credentials | None:
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Credentials | None] = loop.create_future()

        def settle(credentials: Credentials | None) -> None:
            if future.cancelled():
                logger.debug("Credentials resolved after cancellation", access_key_id=access_key_id)
                return
            if future.done():
                logger.warning(
                    "Credential resolver answered more than once",
                    access_key_id=access_key_id,
                )
                return
            future.set_result(credentials)

        def on_resolved(credentials: Credentials | None) -> None:
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is loop:
                settle(credentials)
            else:
                loop.call_soon_threadsafe(settle, credentials)

        resolver(access_key_id, on_resolved)
        return await future

    return resolve


async def verify_with_callback(
    verifier: AsyncVerifier,
    request: ReadableRequest,
    resolver: CallbackCredentialResolver,
    on_result: Callable[[VerificationResult], None],
) -> None:
    """
    Verify with a callback-style resolver and report through ``on_result``.

    ``on_result`` is called exactly once. If verification raises, it is
    called with a denial before the exception propagates.
    """
    try:
        result = await verifier.verify(request, callback_resolver(resolver))
    except BaseException:
        on_result(DENIED)
        raise
    on_result(result)
