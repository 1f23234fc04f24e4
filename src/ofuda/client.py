"""HTTP client that signs every outgoing request."""

from __future__ import annotations

from email.utils import formatdate
from typing import Any
from urllib.parse import urlsplit

import aiohttp
from aiohttp import payload

from ofuda.canonical import CanonicalStringBuilder
from ofuda.common.logging import get_logger
from ofuda.config import Credentials, SigningConfig
from ofuda.headers import get_header
from ofuda.http import HttpRequest
from ofuda.signer import Signer

logger = get_logger(__name__)


def _body_payload(data: Any) -> payload.Payload:
    """Turn a ``data=`` body into the payload aiohttp would build for it."""
    if isinstance(data, aiohttp.FormData):
        return data()
    try:
        return payload.get_payload(data)
    except payload.LookupError:
        return aiohttp.FormData(data)()


class SigningClientError(Exception):
    """Error sending a signed request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class SigningClient:
    """
    aiohttp client adding an HMAC Authorization header to each request.

    A ``Date`` header is added when the caller does not set one, since the
    date is part of the signed material.
    """

    def __init__(
        self,
        base_url: str,
        credentials: Credentials,
        config: SigningConfig | None = None,
        *,
        timeout: float = 30.0,
        canonical_string_builder: CanonicalStringBuilder | None = None,
    ):
        """
        Initialize the signing client.

        Args:
            base_url: Base URL that request paths are joined to
            credentials: Access key id and secret used for every request
            config: Signing configuration shared with the server
            timeout: Total request timeout in seconds
            canonical_string_builder: Custom canonical string, must match the
                server's

        Raises:
            MissingCredentialField: If the key id or secret is missing
        """
        credentials.validate()
        self._base_url = base_url.rstrip("/")
        self._credentials = credentials
        self._signer = Signer(config)
        self._canonical_string_builder = canonical_string_builder
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: aiohttp.ClientSession | None = None

    async def __aenter__(self) -> SigningClient:
        """Enter async context."""
        self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context."""
        await self.close()

    async def close(self) -> None:
        if self._session:
            await self._session.close()
            self._session = None

    def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure session exists."""
        if not self._session:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    def sign(self, method: str, path: str, headers: dict[str, str] | None = None) -> dict[str, str]:
        """
        Produce the headers to send for a request.

        Args:
            method: HTTP method
            path: Request path
            headers: Caller headers; the dict is not modified

        Returns:
            New header dict including Date and Authorization
        """
        request = HttpRequest(method=method.upper(), path=path, headers=dict(headers or {}))
        if get_header(request.headers, "date") is None:
            request.headers["Date"] = formatdate(usegmt=True)

        self._signer.sign_request(self._credentials, request, self._canonical_string_builder)
        return request.headers

    async def request(
        self,
        method: str,
        path: str,
        headers: dict[str, str] | None = None,
        **kwargs: Any,
    ) -> aiohttp.ClientResponse:
        """
        Sign and send a request.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            headers: Extra headers to send (and sign, where they match)
            **kwargs: Passed through to ``aiohttp.ClientSession.request``

        Returns:
            aiohttp response object

        Raises:
            SigningClientError: On transport failure
        """
        url = f"{self._base_url}/{path.lstrip('/')}"
        headers = dict(headers or {})
        # aiohttp adds Content-Type after signing unless it is set up front
        if get_header(headers, "content-type") is None:
            if kwargs.get("json") is not None:
                headers["Content-Type"] = "application/json"
            elif kwargs.get("data") is not None:
                kwargs["data"] = _body_payload(kwargs["data"])
                headers["Content-Type"] = kwargs["data"].content_type
        signed_headers = self.sign(method, urlsplit(url).path or "/", headers)
        session = self._ensure_session()

        logger.debug("Sending signed request", method=method.upper(), url=url)
        try:
            return await session.request(method.upper(), url, headers=signed_headers, **kwargs)
        except aiohttp.ClientError as e:
            raise SigningClientError(f"Request failed: {e}") from e

    async def get(self, path: str, **kwargs: Any) -> aiohttp.ClientResponse:
        return await self.request("GET", path, **kwargs)

    async def post(self, path: str, **kwargs: Any) -> aiohttp.ClientResponse:
        return await self.request("POST", path, **kwargs)

    async def put(self, path: str, **kwargs: Any) -> aiohttp.ClientResponse:
        return await self.request("PUT", path, **kwargs)

    async def delete(self, path: str, **kwargs: Any) -> aiohttp.ClientResponse:
        return await self.request("DELETE", path, **kwargs)
