"""Request abstractions and per-request log context."""

from __future__ import annotations

import contextvars
from collections.abc import Mapping, MutableMapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

import structlog


@runtime_checkable
class ReadableRequest(Protocol):
    """What verification needs from a request."""

    @property
    def method(self) -> str: ...

    @property
    def headers(self) -> Mapping[str, str]: ...


@runtime_checkable
class SignableRequest(Protocol):
    """What signing needs from a request: its headers must be writable."""

    @property
    def method(self) -> str: ...

    @property
    def headers(self) -> MutableMapping[str, str]: ...


@dataclass
class HttpRequest:
    """Minimal mutable HTTP request.

    ``path`` is carried for callers and custom canonical string builders; the
    default canonical string does not include it.
    """

    method: str
    path: str = "/"
    headers: dict[str, str] = field(default_factory=dict)


_access_key_id_var: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "ofuda_access_key_id",
    default=None,
)


def set_access_key_id(value: str | None) -> None:
    """Set the authenticated access key id in context."""
    _access_key_id_var.set(value)
    if value is not None:
        structlog.contextvars.bind_contextvars(access_key_id=value)


def get_access_key_id() -> str | None:
    """Get the authenticated access key id for the current context."""
    return _access_key_id_var.get()


def clear_access_key_id() -> None:
    """Drop the access key id from context and from bound log fields."""
    _access_key_id_var.set(None)
    structlog.contextvars.unbind_contextvars("access_key_id")
