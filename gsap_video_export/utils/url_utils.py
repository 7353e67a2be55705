"""URL helpers."""

from __future__ import annotations

import re

_CODEPEN_RE = re.compile(r"//codepen\.io/(?P<user>[^/]+)/pen/(?P<id>[^/?#]+)")


def page_url(url: str) -> str:
    """Rewrite CodePen pen URLs to the debug view so the pen is not inside an iframe.

    Every other URL is returned unchanged.
    """
    if "//codepen.io/" not in url:
        return url
    match = _CODEPEN_RE.search(url)
    if not match:
        return url
    return f"https://cdpn.io/pen/debug/{match.group('id')}"
