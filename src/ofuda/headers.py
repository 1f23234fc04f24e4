"""Header lookup helpers used when building canonical strings."""

from __future__ import annotations

from collections.abc import Mapping


def lower_case_headers(headers: Mapping[str, str]) -> dict[str, str]:
    """
    Copy headers into a new dict keyed by lowercased name.

    When two names differ only by case, whichever the mapping yields last
    wins. That order belongs to the mapping implementation, not to ofuda.

    Args:
        headers: Header mapping with case-preserved names

    Returns:
        New dict of lowercased name -> value
    """
    return {name.lower(): value for name, value in headers.items()}


def locate_headers_by_prefix(headers: Mapping[str, str], prefix: str | None) -> list[str]:
    """
    Find header names that contain ``prefix``.

    The match is a case-sensitive substring search against the original
    header name. An empty or missing prefix selects no headers.

    Args:
        headers: Header mapping with case-preserved names
        prefix: Substring to look for

    Returns:
        Matching header names in mapping order, each listed once
    """
    if not prefix:
        return []
    return [name for name in dict.fromkeys(headers.keys()) if prefix in name]


def get_header(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive lookup of a single header value."""
    return lower_case_headers(headers).get(name.lower())
