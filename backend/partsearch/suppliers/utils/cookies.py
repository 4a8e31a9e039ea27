"""Cookie header helpers for portals that need a hand-carried session."""

from typing import Dict, Iterable

import httpx


def extract_cookies(headers: httpx.Headers) -> str:
    """Collapse all Set-Cookie headers into a "name=value; name2=value2" string.

    Attributes such as Path or HttpOnly are dropped.
    """
    return cookie_header(headers.get_list("set-cookie"))


def cookie_header(set_cookie_values: Iterable[str]) -> str:
    pairs = []
    for raw in set_cookie_values:
        pair = raw.split(";", 1)[0].strip()
        if "=" in pair:
            pairs.append(pair)
    return merge_cookies("", "; ".join(pairs))


def _parse(header: str) -> Dict[str, str]:
    jar: Dict[str, str] = {}
    for chunk in header.split(";"):
        name, sep, value = chunk.strip().partition("=")
        name = name.strip()
        if name and sep:
            jar[name] = value
    return jar


def merge_cookies(current: str, incoming: str) -> str:
    """Merge two cookie header strings; values in `incoming` win.

    Args:
        current: Cookies accumulated so far
        incoming: Newly received cookies

    Returns:
        Merged header string, first-seen name order preserved
    """
    if not incoming:
        return current or ""
    jar = _parse(current or "")
    jar.update(_parse(incoming))
    return "; ".join(f"{name}={value}" for name, value in jar.items())
