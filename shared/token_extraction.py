"""
Reset-link parameter extraction — framework-agnostic, pure functions.

Identity providers put recovery credentials either in the query string or in
the URL fragment (implicit-grant style redirects). Query values always win;
the fragment only fills gaps.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Mapping, Optional, Sequence, Union
from urllib.parse import parse_qs, urlsplit

from schemas.models.reset import ResetTokens

TOKEN_KEYS = ("access_token", "refresh_token", "token_hash")

QueryValue = Union[str, Sequence[str], None]


@dataclass(frozen=True)
class ProviderError:
    """An explicit rejection the provider encoded into the redirect URL."""

    error: str
    description: Optional[str] = None


def _first(value: QueryValue) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value or None
    for item in value:
        if item:
            return item
    return None


def parse_fragment(fragment: Optional[str]) -> dict[str, str]:
    """Parse a URL fragment as a query string.

    A leading ``#`` is tolerated. Blank values are dropped.
    """
    if not fragment:
        return {}
    if fragment.startswith("#"):
        fragment = fragment[1:]
    parsed = parse_qs(fragment, keep_blank_values=False)
    return {key: values[0] for key, values in parsed.items() if values}


def _merged_params(
    query: Mapping[str, QueryValue],
    fragment: Optional[str],
    keys: Sequence[str],
) -> dict[str, Optional[str]]:
    params = {key: _first(query.get(key)) for key in keys}
    if all(params.values()):
        return params
    fragment_params = parse_fragment(fragment)
    for key in keys:
        if not params[key]:
            params[key] = fragment_params.get(key) or None
    return params


def extract_reset_tokens(
    query: Mapping[str, QueryValue],
    fragment: Optional[str] = None,
) -> Optional[ResetTokens]:
    """Build ResetTokens from reset-link parameters.

    Args:
        query: Query parameters; values may be strings or lists of strings
            (as produced by ``parse_qs``).
        fragment: The raw URL fragment, with or without the leading ``#``.

    Returns:
        STANDARD tokens when both access and refresh token are present,
        HASH tokens when only a token hash is present, otherwise None.
    """
    params = _merged_params(query, fragment, TOKEN_KEYS)
    access_token = params["access_token"]
    refresh_token = params["refresh_token"]
    token_hash = params["token_hash"]

    if access_token and refresh_token:
        return ResetTokens.standard(access_token, refresh_token)
    if token_hash:
        return ResetTokens.from_hash(token_hash)
    return None


def split_reset_url(url: str) -> tuple[dict[str, list[str]], str]:
    """Split a full reset URL into parsed query parameters and raw fragment.

    Raises:
        ValueError: if the URL cannot be parsed (e.g. an invalid IPv6 host).
    """
    if not isinstance(url, str) or not url.strip():
        raise ValueError("reset URL is empty")
    parts = urlsplit(url.strip())
    return parse_qs(parts.query, keep_blank_values=False), parts.fragment


def extract_reset_tokens_from_url(url: str) -> Optional[ResetTokens]:
    """Convenience wrapper around extract_reset_tokens for a complete URL."""
    query, fragment = split_reset_url(url)
    return extract_reset_tokens(query, fragment)


def extract_provider_error(
    query: Mapping[str, QueryValue],
    fragment: Optional[str] = None,
) -> Optional[ProviderError]:
    """Return the provider's ``error``/``error_description`` pair, if any."""
    params = _merged_params(query, fragment, ("error", "error_description"))
    if not params["error"]:
        return None
    return ProviderError(error=params["error"], description=params["error_description"])
