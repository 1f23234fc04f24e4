"""Canonical string construction for request signatures."""

from __future__ import annotations

from collections.abc import Callable

from ofuda.headers import locate_headers_by_prefix, lower_case_headers
from ofuda.http import ReadableRequest

CanonicalStringBuilder = Callable[[ReadableRequest], str]

BASE_HEADERS: tuple[str, ...] = ("content-md5", "content-type", "date")


def build_canonical_string(request: ReadableRequest, header_prefix: str | None) -> str:
    """
    Assemble the string that gets signed for ``request``.

    Layout, one element per line with no trailing newline::

        METHOD
        content-md5 value or empty
        content-type value or empty
        date value or empty
        lowercased-name:value   (prefixed headers, sorted)

    Args:
        request: Request exposing ``method`` and ``headers``
        header_prefix: Case-sensitive substring selecting extra headers

    Returns:
        Canonical string
    """
    headers = request.headers
    lowered = lower_case_headers(headers)

    base = [request.method]
    base.extend(lowered.get(name) or "" for name in BASE_HEADERS)

    extra = sorted(
        f"{name.lower()}:{headers[name]}"
        for name in locate_headers_by_prefix(headers, header_prefix)
    )

    return "\n".join(base + extra)


def build_canonical_string_with_path(header_prefix: str | None) -> CanonicalStringBuilder:
    """
    Create a builder that also signs the request path.

    Both sides must agree to use it: the signer passes it to
    ``Signer.sign_request`` and the verifier is constructed with it.
    """

    def builder(request: ReadableRequest) -> str:
        path = getattr(request, "path", None)
        if path is None:
            url = getattr(request, "url", None)
            path = getattr(url, "path", "") if url is not None else ""
        return build_canonical_string(request, header_prefix) + "\n" + path

    return builder
