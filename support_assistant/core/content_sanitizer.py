"""Sanitization of untrusted text before it reaches a prompt.

Tenant hosts and page content come from the client. Angle brackets are
stripped so injected markup cannot open fake prompt sections.
"""

import re

_ANGLE_RE = re.compile(r"[<>]")
_NON_ALNUM_RE = re.compile(r"[^a-zA-Z0-9]")


def strip_angle_brackets(text: str | None) -> str:
    """Remove every '<' and '>' from text. None becomes an empty string."""
    if not text:
        return ""
    return _ANGLE_RE.sub("", text)


def sanitize_host(host: str | None) -> str:
    """Normalize a tenant host for use in prompts and URLs."""
    return strip_angle_brackets(host).strip().lower()


def collection_name_for_host(host: str) -> str:
    """
    Derive the tenant knowledge collection name from a host.

    Non-alphanumerics are dropped, the first letter is upper-cased and the
    rest lower-cased: ``social.gifts`` -> ``Socialgifts``.
    """
    cleaned = _NON_ALNUM_RE.sub("", host)
    if not cleaned:
        return ""
    return cleaned[0].upper() + cleaned[1:].lower()


_ORIGIN_RE = re.compile(r"(https://|http://|www\.)")
_REFERER_RE = re.compile(r"(https://|http://|www\.|/.+$|/)")


def host_from_headers(origin: str | None, referer: str | None, default: str) -> str:
    """Tenant host from the Origin header, else the Referer, else ``default``."""
    if origin:
        return _ORIGIN_RE.sub("", origin)
    if referer:
        return _REFERER_RE.sub("", referer)
    return default
