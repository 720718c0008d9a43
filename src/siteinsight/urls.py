"""Syntactic validation of user-supplied website addresses."""

from __future__ import annotations

import re
from urllib.parse import urlparse

from siteinsight.errors import InvalidUrl

DEFAULT_SCHEME = "https"
ALLOWED_SCHEMES = frozenset({"http", "https"})

_SCHEME_PREFIX = re.compile(r"^([a-z][a-z0-9+.\-]*)://", re.IGNORECASE)


def normalize_url(raw: str | None) -> str:
    """Coerce user input into an absolute http(s) URL.

    Input without a scheme gets ``https://`` prepended; the result is otherwise
    returned as typed. No network access happens here.
    """
    text = (raw or "").strip()
    if not text:
        raise InvalidUrl("Please enter a valid URL", payload={"input": raw})

    match = _SCHEME_PREFIX.match(text)
    if match is None:
        candidate = f"{DEFAULT_SCHEME}://{text}"
    elif match.group(1).lower() in ALLOWED_SCHEMES:
        candidate = text
    else:
        raise InvalidUrl(
            f"Unsupported URL scheme: {match.group(1)}", payload={"input": raw}
        )

    if any(ch.isspace() for ch in candidate):
        raise InvalidUrl("URL must not contain whitespace", payload={"input": raw})

    try:
        parsed = urlparse(candidate)
        # Accessing .port validates the numeric range.
        parsed.port
    except ValueError as exc:
        raise InvalidUrl(f"Malformed URL: {candidate}", payload={"input": raw}) from exc

    if parsed.scheme.lower() not in ALLOWED_SCHEMES or not parsed.hostname:
        raise InvalidUrl(f"Malformed URL: {candidate}", payload={"input": raw})
    return candidate


def display_host(url: str) -> str:
    """Hostname used to label history entries; falls back to the raw URL."""
    return urlparse(url).hostname or url
