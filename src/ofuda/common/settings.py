"""Configuration management using pydantic-settings."""

from __future__ import annotations

from functools import lru_cache
from typing import TYPE_CHECKING

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

if TYPE_CHECKING:
    from ofuda.config import SigningConfig


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="OFUDA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Signing
    header_prefix: str | None = Field(
        default=None,
        description=(
            "Case-sensitive substring selecting extra headers to sign. "
            "ASGI servers lowercase header names, so use a lowercase prefix "
            "(e.g. x-ofuda-) when verifying server side"
        ),
    )
    service_label: str = Field(
        default="AuthHmac",
        description="Label placed before the credential in the Authorization header",
    )
    hash_algorithm: str = Field(
        default="sha1",
        description="Digest name passed to HMAC (sha1, sha256, ...)",
    )
    debug: bool = Field(
        default=False,
        description="Log access key ids and canonical strings while signing",
    )

    # Middleware
    auth_exempt_paths: tuple[str, ...] = Field(
        default=("/health",),
        description="Paths exempt from HMAC verification",
    )
    resolver_timeout_seconds: float | None = Field(
        default=None,
        description="Max seconds to wait for async credential resolution (None = no limit)",
    )

    # Logging
    log_level: str = Field(
        default="INFO",
        description="Minimum log level",
    )
    log_json: bool = Field(
        default=False,
        description="Emit JSON log lines",
    )

    def signing_config(self) -> SigningConfig:
        """Build the immutable signing configuration from these settings."""
        from ofuda.config import SigningConfig

        return SigningConfig(
            header_prefix=self.header_prefix,
            service_label=self.service_label,
            hash_algorithm=self.hash_algorithm,
            debug=self.debug,
        )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings."""
    return Settings()
