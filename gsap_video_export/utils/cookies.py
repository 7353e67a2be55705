"""Cookie file loading.

Accepts the JSON cookie lists exported by browser extensions and Puppeteer
(``page.cookies()``) and reshapes them into what Playwright's
``BrowserContext.add_cookies`` expects.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Final

from gsap_video_export.errors import CookieFileError

_ALLOWED_KEYS: Final = frozenset(
    {"name", "value", "url", "domain", "path", "expires", "httpOnly", "secure", "sameSite"},
)
_SAME_SITE: Final = {"strict": "Strict", "lax": "Lax", "none": "None", "no_restriction": "None"}


def normalize_cookie(raw: dict[str, Any], *, url: str) -> dict[str, Any]:
    """Return a Playwright cookie dict, filling ``url`` when no domain is given."""
    if "name" not in raw or "value" not in raw:
        raise CookieFileError(f"Cookie entry needs 'name' and 'value': {raw!r}")

    cookie: dict[str, Any] = {k: v for k, v in raw.items() if k in _ALLOWED_KEYS}
    if "expirationDate" in raw and "expires" not in cookie:
        cookie["expires"] = raw["expirationDate"]

    expires = cookie.get("expires")
    if expires is not None:
        try:
            expires = float(expires)
        except (TypeError, ValueError) as exc:
            raise CookieFileError(f"Cookie {raw['name']!r} has an invalid expiry: {expires!r}") from exc
        if expires < 0:
            cookie.pop("expires")
        else:
            cookie["expires"] = expires

    same_site = cookie.get("sameSite")
    if same_site is not None:
        mapped = _SAME_SITE.get(str(same_site).lower())
        if mapped is None:
            cookie.pop("sameSite")
        else:
            cookie["sameSite"] = mapped

    if cookie.get("domain"):
        cookie.pop("url", None)
        cookie.setdefault("path", "/")
    elif not cookie.get("url"):
        cookie.pop("domain", None)
        cookie.pop("path", None)
        cookie["url"] = url

    cookie["name"] = str(cookie["name"])
    cookie["value"] = str(cookie["value"])
    return cookie


def load_cookies(path: Path, *, url: str) -> list[dict[str, Any]]:
    """Read and normalize a JSON cookie file."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise CookieFileError(f"Cookie file not readable: {path} ({exc})") from exc
    except json.JSONDecodeError as exc:
        raise CookieFileError(f"Cookie file is not valid JSON: {path} ({exc})") from exc

    if isinstance(data, dict) and isinstance(data.get("cookies"), list):
        data = data["cookies"]
    if not isinstance(data, list):
        raise CookieFileError(f"Cookie file must contain a list of cookies: {path}")

    cookies = []
    for item in data:
        if not isinstance(item, dict):
            raise CookieFileError(f"Cookie entry must be an object: {item!r}")
        cookies.append(normalize_cookie(item, url=url))
    return cookies
