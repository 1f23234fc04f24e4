"""Common utilities for ofuda."""

from ofuda.common.errors import ConfigurationError, MissingCredentialField, OfudaError
from ofuda.common.settings import Settings, get_settings

__all__ = [
    "ConfigurationError",
    "MissingCredentialField",
    "OfudaError",
    "Settings",
    "get_settings",
]
