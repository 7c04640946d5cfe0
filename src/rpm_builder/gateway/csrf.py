"""CSRF token lookup for direct requests through the console proxy."""

from __future__ import annotations

import os
from collections.abc import Mapping

import httpx

CSRF_COOKIE_NAME = "csrf-token"
CSRF_METADATA_KEY = "csrf-token"
CSRF_ENV_VAR = "RPM_BUILDER_CSRF_TOKEN"


def _from_cookies(cookies: httpx.Cookies | Mapping[str, str] | None, name: str) -> str:
    if cookies is None:
        return ""
    if isinstance(cookies, httpx.Cookies):
        # Iterate the jar: Cookies.get() raises on same-name cookies from two domains.
        for cookie in cookies.jar:
            if cookie.name == name and cookie.value:
                return cookie.value
        return ""
    return cookies.get(name) or ""


def resolve_csrf_token(
    cookies: httpx.Cookies | Mapping[str, str] | None = None,
    metadata: Mapping[str, str] | None = None,
    environ: Mapping[str, str] | None = None,
    *,
    cookie_name: str = CSRF_COOKIE_NAME,
    metadata_key: str = CSRF_METADATA_KEY,
    env_var: str = CSRF_ENV_VAR,
) -> str:
    """Find a CSRF token.

    Priority:
    1. the cookie jar (``csrf-token`` cookie set by the console)
    2. document metadata (e.g. the console page's ``<meta name="csrf-token">``)
    3. process globals (``RPM_BUILDER_CSRF_TOKEN``)

    Returns ``""`` when no source has one; callers then send the request
    without a token.
    """
    token = _from_cookies(cookies, cookie_name)
    if token:
        return token

    if metadata:
        token = metadata.get(metadata_key) or ""
        if token:
            return token

    env = os.environ if environ is None else environ
    return env.get(env_var) or ""
