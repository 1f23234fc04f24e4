"""Starlette middleware enforcing HMAC request authentication."""

from __future__ import annotations

import asyncio
import inspect
from collections.abc import Awaitable, Callable, Iterable
from typing import Any

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp

from ofuda.canonical import CanonicalStringBuilder
from ofuda.common.errors import ConfigurationError, ErrorCode, error_response
from ofuda.common.logging import get_logger
from ofuda.common.settings import Settings
from ofuda.config import SigningConfig
from ofuda.http import clear_access_key_id, set_access_key_id
from ofuda.verifier import DENIED, AsyncVerifier, VerificationResult, Verifier

logger = get_logger(__name__)

Responder = Callable[[bool, Request, RequestResponseEndpoint], Awaitable[Response]]


async def default_responder(
    valid: bool,
    request: Request,
    call_next: RequestResponseEndpoint,
) -> Response:
    """Pass authenticated requests on; answer the rest with 401."""
    if valid:
        return await call_next(request)
    return error_response(ErrorCode.UNAUTHORIZED, "Unauthorized", status_code=401)


def _is_async_provider(provider: Callable[..., Any]) -> bool:
    return inspect.iscoroutinefunction(provider) or inspect.iscoroutinefunction(
        getattr(provider, "__call__", None)
    )


class HmacAuthMiddleware(BaseHTTPMiddleware):
    """HMAC auth middleware for signed requests."""

    def __init__(
        self,
        app: ASGIApp,
        credential_provider: Callable[..., Any] | None = None,
        config: SigningConfig | None = None,
        *,
        async_provider: bool | None = None,
        responder: Responder | None = None,
        exempt_paths: Iterable[str] | None = None,
        resolver_timeout: float | None = None,
        canonical_string_builder: CanonicalStringBuilder | None = None,
    ) -> None:
        """
        Initialize HMAC auth middleware.

        Args:
            app: Starlette application
            credential_provider: Maps an access key id to Credentials or None;
                may be a plain function or a coroutine function
            config: Signing configuration shared with clients
            async_provider: Force async (True) or sync (False) resolution
                instead of detecting it from ``credential_provider``
            responder: Decides the response from the verification outcome
            exempt_paths: Paths served without verification
            resolver_timeout: Seconds to wait for async credential resolution
            canonical_string_builder: Custom canonical string, must match the
                one clients sign with

        Raises:
            ConfigurationError: If no credential provider is given
        """
        super().__init__(app)
        if credential_provider is None:
            raise ConfigurationError("HmacAuthMiddleware requires a credential_provider")

        self._provider = credential_provider
        self._async = _is_async_provider(credential_provider) if async_provider is None else async_provider
        self._responder = responder or default_responder
        self._exempt_paths = set(exempt_paths or ())
        self._resolver_timeout = resolver_timeout
        self._verifier = Verifier(config, canonical_string_builder)
        self._async_verifier = AsyncVerifier(config, canonical_string_builder)

    async def _authenticate(self, request: Request) -> VerificationResult:
        if not self._async:
            return await run_in_threadpool(self._verifier.verify_result, request, self._provider)

        try:
            return await asyncio.wait_for(
                self._async_verifier.verify(request, self._provider),
                timeout=self._resolver_timeout,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "Credential resolution timed out",
                path=request.url.path,
                timeout=self._resolver_timeout,
            )
            return DENIED

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in self._exempt_paths:
            return await call_next(request)

        result = await self._authenticate(request)
        if result:
            request.state.access_key_id = result.access_key_id
            set_access_key_id(result.access_key_id)
        else:
            logger.info(
                "Rejected unauthenticated request",
                method=request.method,
                path=request.url.path,
            )

        try:
            return await self._responder(result.result, request, call_next)
        finally:
            clear_access_key_id()


def create_hmac_auth_middleware(
    credential_provider: Callable[..., Any] | None,
    config: SigningConfig | None = None,
    *,
    settings: Settings | None = None,
    async_provider: bool | None = None,
    responder: Responder | None = None,
    exempt_paths: Iterable[str] | None = None,
    resolver_timeout: float | None = None,
    canonical_string_builder: CanonicalStringBuilder | None = None,
) -> type[HmacAuthMiddleware]:
    """
    Factory function to create HMAC auth middleware with configuration.

    Starlette builds its middleware stack lazily, so the provider is checked
    here to fail at setup rather than on the first request. Values missing
    from the arguments are taken from ``settings`` when given.

    Returns:
        Configured middleware class

    Raises:
        ConfigurationError: If no credential provider is given
    """
    if credential_provider is None:
        raise ConfigurationError("HMAC auth middleware requires a credential_provider")

    if settings is not None:
        config = config or settings.signing_config()
        if exempt_paths is None:
            exempt_paths = settings.auth_exempt_paths
        if resolver_timeout is None:
            resolver_timeout = settings.resolver_timeout_seconds

    frozen_exempt_paths = tuple(exempt_paths or ())

    class ConfiguredHmacAuthMiddleware(HmacAuthMiddleware):
        def __init__(self, app: ASGIApp) -> None:
            super().__init__(
                app,
                credential_provider,
                config,
                async_provider=async_provider,
                responder=responder,
                exempt_paths=frozen_exempt_paths,
                resolver_timeout=resolver_timeout,
                canonical_string_builder=canonical_string_builder,
            )

    return ConfiguredHmacAuthMiddleware
