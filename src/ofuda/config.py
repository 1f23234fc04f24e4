"""Signing configuration and credentials."""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ofuda.common.errors import ConfigurationError, MissingCredentialField

DEFAULT_SERVICE_LABEL = "AuthHmac"
DEFAULT_HASH_ALGORITHM = "sha1"


class SigningConfig(BaseModel):
    """
    Immutable settings shared by signers and verifiers.

    Empty values fall back to the defaults, so ``SigningConfig(hash_algorithm="")``
    signs with sha1. The ``with_*`` methods return a new config and leave this
    one untouched.
    """

    model_config = ConfigDict(frozen=True)

    header_prefix: str | None = None
    service_label: str = DEFAULT_SERVICE_LABEL
    hash_algorithm: str = DEFAULT_HASH_ALGORITHM
    debug: bool = False

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except ValidationError as e:
            messages = "; ".join(error["msg"] for error in e.errors())
            raise ConfigurationError(f"Invalid signing configuration: {messages}") from e

    @field_validator("service_label", mode="before")
    @classmethod
    def default_service_label(cls, value: Any) -> Any:
        return value or DEFAULT_SERVICE_LABEL

    @field_validator("hash_algorithm", mode="before")
    @classmethod
    def default_hash_algorithm(cls, value: Any) -> Any:
        return value or DEFAULT_HASH_ALGORITHM

    @field_validator("debug", mode="before")
    @classmethod
    def default_debug(cls, value: Any) -> Any:
        return value or False

    @field_validator("hash_algorithm")
    @classmethod
    def check_hash_algorithm(cls, value: str) -> str:
        try:
            digest_size = hashlib.new(value).digest_size
        except (ValueError, TypeError) as e:
            raise ValueError(f"Unsupported hash algorithm: {value}") from e
        # variable-length digests (shake_*) cannot back an HMAC
        if not digest_size:
            raise ValueError(f"Unsupported hash algorithm: {value}")
        return value

    def with_header_prefix(self, prefix: str | None) -> SigningConfig:
        return self._replace(header_prefix=prefix)

    def with_service_label(self, service_label: str | None) -> SigningConfig:
        return self._replace(service_label=service_label)

    def with_hash_algorithm(self, hash_algorithm: str | None) -> SigningConfig:
        return self._replace(hash_algorithm=hash_algorithm)

    def with_debug(self, debug: bool | None) -> SigningConfig:
        return self._replace(debug=debug)

    def _replace(self, **changes: Any) -> SigningConfig:
        # model_copy skips validation, so rebuild to apply the defaults
        return SigningConfig(**{**self.model_dump(), **changes})


@dataclass(frozen=True)
class Credentials:
    """An access key id and the secret it names."""

    access_key_id: str | None
    access_key_secret: str | None

    def validate(self) -> None:
        """
        Check both fields are present.

        Raises:
            MissingCredentialField: If either field is None
        """
        if self.access_key_id is None:
            raise MissingCredentialField("access_key_id")
        if self.access_key_secret is None:
            raise MissingCredentialField("access_key_secret")

    def __repr__(self) -> str:
        return f"Credentials(access_key_id={self.access_key_id!r}, access_key_secret='***')"
