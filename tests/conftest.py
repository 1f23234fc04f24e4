"""Pytest configuration and fixtures."""

import base64
import hashlib
import hmac

import pytest

from ofuda.config import Credentials, SigningConfig
from ofuda.http import HttpRequest

EXAMPLE_DATE = "Tue, 01 Jan 2013 00:00:00 GMT"


def expected_signature(secret: str, canonical: str, algorithm: str = "sha1") -> str:
    """Reference HMAC computed independently of ofuda."""
    digest = hmac.new(secret.encode("utf-8"), canonical.encode("utf-8"), getattr(hashlib, algorithm))
    return base64.b64encode(digest.digest()).decode("ascii")


@pytest.fixture
def credentials() -> Credentials:
    """Test credentials."""
    return Credentials(access_key_id="AKID", access_key_secret="secret")


@pytest.fixture
def config() -> SigningConfig:
    """Signing config with an extra-header prefix."""
    return SigningConfig(header_prefix="x-ofuda-")


@pytest.fixture
def resolver(credentials):
    """Sync resolver that only knows the test credentials."""

    def resolve(access_key_id: str) -> Credentials | None:
        return credentials if access_key_id == credentials.access_key_id else None

    return resolve


@pytest.fixture
def async_resolver(credentials):
    """Async resolver that only knows the test credentials."""

    async def resolve(access_key_id: str) -> Credentials | None:
        return credentials if access_key_id == credentials.access_key_id else None

    return resolve


@pytest.fixture
def example_request() -> HttpRequest:
    """The GET request from the worked example."""
    return HttpRequest(method="GET", path="/", headers={"Date": EXAMPLE_DATE})


@pytest.fixture
def full_request() -> HttpRequest:
    """A request exercising every signed element."""
    return HttpRequest(
        method="PUT",
        path="/buckets/photos",
        headers={
            "Content-MD5": "rL0Y20zC+Fzt72VPzMSk2A==",
            "Content-Type": "application/json",
            "Date": EXAMPLE_DATE,
            "x-ofuda-meta": "alpha",
            "x-ofuda-acl": "private",
            "User-Agent": "pytest",
        },
    )
