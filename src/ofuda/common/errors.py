"""Shared exceptions, error codes and error responses."""

from __future__ import annotations

from typing import Any

from starlette.responses import JSONResponse


class OfudaError(Exception):
    """Base class for ofuda errors."""


class ConfigurationError(OfudaError, ValueError):
    """Signing or verification was set up incorrectly."""


class MissingCredentialField(ConfigurationError):
    """A credential field required for signing was not supplied."""

    def __init__(self, field: str) -> None:
        super().__init__(f"No {field} was provided")
        self.field = field


class ErrorCode:
    UNAUTHORIZED = "unauthorized"


def error_response(
    code: str,
    message: str,
    status_code: int,
    details: dict[str, Any] | None = None,
) -> JSONResponse:
    payload = {
        "error": {
            "code": code,
            "message": message,
        }
    }
    if details:
        payload["error"]["details"] = details
    return JSONResponse(payload, status_code=status_code)
