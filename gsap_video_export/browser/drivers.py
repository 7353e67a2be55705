"""Browser automation drivers.

The pipeline only talks to ``AutomationDriver``/``AutomationSession``; the
Playwright implementation below is the default. Every Playwright error is
normalized to an ``ExportError`` subclass at the point where it happens.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Final, Protocol

from playwright.sync_api import Error as PlaywrightError
from playwright.sync_api import TimeoutError as PlaywrightTimeoutError
from playwright.sync_api import sync_playwright

from gsap_video_export.errors import (
    BrowserLaunchFailure,
    CaptureFailure,
    CookieFileError,
    ExportTimeoutError,
    NavigationFailure,
    ScriptEvaluationFailure,
)

LOGGER = logging.getLogger(__name__)

EVALUATE_TIMEOUT_MARKER: Final = "__gve_evaluate_timeout__"

# Races an in-page function against a timer. The timer comes from the
# time-scrub adapter when present, because the adapter replaces setTimeout.
_GUARDED_EVALUATE: Final = """async ({arg, timeoutMs}) => {
  const run = (__FN__);
  const scrub = window.__timeScrub;
  const setTimer = (scrub && scrub.realSetTimeout) || window.setTimeout.bind(window);
  const clearTimer = (scrub && scrub.realClearTimeout) || window.clearTimeout.bind(window);
  let handle;
  const expired = new Promise((_, reject) => {
    handle = setTimer(() => reject(new Error('__MARKER__')), timeoutMs);
  });
  try {
    return await Promise.race([Promise.resolve().then(() => run(arg)), expired]);
  } finally {
    clearTimer(handle);
  }
}"""


@dataclass(frozen=True)
class LaunchOptions:
    """Browser launch and page settings."""

    width: int
    height: int
    scale: float = 1.0
    headless: bool = True
    channel: str | None = None
    init_scripts: tuple[str, ...] = ()
    evaluate_timeout: float | None = None
    args: tuple[str, ...] = field(default=("--no-sandbox", "--start-fullscreen"))


class AutomationSession(Protocol):
    """One browser page exclusively owned by a pipeline run."""

    def navigate(self, url: str, *, wait_until: str, timeout: float) -> None: ...

    def evaluate(self, script: str, arg: Any = None) -> Any: ...

    def query_selector(self, selector: str) -> Any | None: ...

    def screenshot(self, path: Path, *, selector: str | None = None) -> None: ...

    def set_cookies(self, cookies: list[dict[str, Any]]) -> None: ...

    def add_script(self, source: str) -> None: ...

    def close(self) -> None: ...


class AutomationDriver(Protocol):
    """Factory for automation sessions."""

    def launch(self, options: LaunchOptions) -> AutomationSession: ...


class PlaywrightSession:
    """Playwright-backed session (sync API, one context and one page)."""

    def __init__(self, playwright: Any, browser: Any, context: Any, page: Any, options: LaunchOptions) -> None:
        self._playwright = playwright
        self._browser = browser
        self._context = context
        self._page = page
        self._options = options

    def navigate(self, url: str, *, wait_until: str, timeout: float) -> None:
        try:
            self._page.goto(url, wait_until=wait_until, timeout=timeout * 1000)
        except PlaywrightTimeoutError as exc:
            raise ExportTimeoutError(f"Navigation to {url} timed out after {timeout:g}s") from exc
        except PlaywrightError as exc:
            raise NavigationFailure(f"Navigation to {url} failed: {exc.message}") from exc

    def evaluate(self, script: str, arg: Any = None) -> Any:
        timeout = self._options.evaluate_timeout
        try:
            if timeout is None:
                return self._page.evaluate(script, arg)
            guarded = _GUARDED_EVALUATE.replace("__FN__", script).replace(
                "__MARKER__", EVALUATE_TIMEOUT_MARKER,
            )
            return self._page.evaluate(guarded, {"arg": arg, "timeoutMs": timeout * 1000})
        except PlaywrightTimeoutError as exc:
            raise ExportTimeoutError(f"Page evaluation timed out: {exc.message}") from exc
        except PlaywrightError as exc:
            if EVALUATE_TIMEOUT_MARKER in exc.message:
                raise ExportTimeoutError(
                    f"Page evaluation exceeded {timeout:g}s",
                ) from exc
            raise ScriptEvaluationFailure(f"Page evaluation failed: {exc.message}") from exc

    def query_selector(self, selector: str) -> Any | None:
        try:
            return self._page.query_selector(selector)
        except PlaywrightError as exc:
            raise ScriptEvaluationFailure(f"Selector query failed: {exc.message}") from exc

    def screenshot(self, path: Path, *, selector: str | None = None) -> None:
        try:
            if selector is None:
                self._page.screenshot(path=str(path))
                return
            element = self._page.query_selector(selector)
            if element is None:
                raise CaptureFailure(f"Selector {selector} no longer matches a node")
            element.screenshot(path=str(path))
        except PlaywrightTimeoutError as exc:
            raise ExportTimeoutError(f"Screenshot timed out: {exc.message}") from exc
        except PlaywrightError as exc:
            raise CaptureFailure(f"Screenshot failed: {exc.message}") from exc

    def set_cookies(self, cookies: list[dict[str, Any]]) -> None:
        try:
            self._context.add_cookies(cookies)
        except PlaywrightError as exc:
            raise CookieFileError(f"Browser rejected cookies: {exc.message}") from exc

    def add_script(self, source: str) -> None:
        try:
            self._page.add_script_tag(content=source)
        except PlaywrightError as exc:
            raise ScriptEvaluationFailure(f"Custom script failed: {exc.message}") from exc

    def close(self) -> None:
        for name, closer in (
            ("context", self._context.close),
            ("browser", self._browser.close),
            ("playwright", self._playwright.stop),
        ):
            try:
                closer()
            except PlaywrightError as exc:
                LOGGER.warning("Failed to close %s: %s", name, exc.message)


class PlaywrightDriver:
    """Launches Chromium (bundled, or system Chrome through ``channel``)."""

    def launch(self, options: LaunchOptions) -> PlaywrightSession:
        try:
            playwright = sync_playwright().start()
        except (PlaywrightError, OSError) as exc:
            message = exc.message if isinstance(exc, PlaywrightError) else str(exc)
            raise BrowserLaunchFailure(f"Playwright failed to start: {message}") from exc
        try:
            browser = playwright.chromium.launch(
                headless=options.headless,
                channel=options.channel,
                args=list(options.args),
            )
            context = browser.new_context(
                viewport={"width": options.width, "height": options.height},
                device_scale_factor=options.scale,
            )
            for script in options.init_scripts:
                context.add_init_script(script=script)
            page = context.new_page()
        except PlaywrightError as exc:
            playwright.stop()
            raise BrowserLaunchFailure(f"Browser failed to start: {exc.message}") from exc
        LOGGER.debug(
            "Browser ready: %sx%s @%sx headless=%s channel=%s",
            options.width,
            options.height,
            options.scale,
            options.headless,
            options.channel or "bundled",
        )
        return PlaywrightSession(playwright, browser, context, page, options)
