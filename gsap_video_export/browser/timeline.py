"""Timeline resolution inside the page.

Identifiers are looked up in a ``TimelineRegistry`` that maps them to a
provider. The default provider targets GSAP's global timeline; any other
identifier is handled by the expression provider, which turns a dotted path
such as ``app.timelines[0]`` into segments walked in the page. Locked-down
registries drop the expression provider entirely.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from gsap_video_export.browser import page_scripts
from gsap_video_export.config import DEFAULT_TIMELINE
from gsap_video_export.errors import ScriptEvaluationFailure

if TYPE_CHECKING:
    from gsap_video_export.browser.drivers import AutomationSession

LOGGER = logging.getLogger(__name__)

_ROOT_RE = re.compile(r"[A-Za-z_$][\w$]*")
_SEGMENT_RE = re.compile(
    r"""\.(?P<attr>[A-Za-z_$][\w$]*)|\[(?P<index>\d+)\]|\[(?P<quote>["'])(?P<key>[^"'\]]*)(?P=quote)\]""",
)
_GLOBAL_ROOTS = frozenset({"window", "globalThis", "self"})


@dataclass(frozen=True)
class TimelineLocator:
    """Serializable description of where a timeline lives in the page."""

    kind: str
    path: tuple[str | int, ...] = ()

    def to_arg(self) -> dict[str, Any]:
        return {"kind": self.kind, "path": list(self.path)}


TimelineProvider = Callable[[str], "TimelineLocator | None"]


def global_timeline_provider(_identifier: str) -> TimelineLocator:
    return TimelineLocator(kind="global")


def parse_timeline_path(expression: str) -> tuple[str | int, ...] | None:
    """Split ``a.b[0]["c"]`` into ``("a", "b", 0, "c")``; ``None`` if malformed."""
    text = expression.strip()
    root = _ROOT_RE.match(text)
    if not root:
        return None
    path: list[str | int] = [root.group(0)]
    pos = root.end()
    while pos < len(text):
        m = _SEGMENT_RE.match(text, pos)
        if not m:
            return None
        if m.group("attr") is not None:
            path.append(m.group("attr"))
        elif m.group("index") is not None:
            path.append(int(m.group("index")))
        else:
            path.append(m.group("key"))
        pos = m.end()
    while len(path) > 1 and path[0] in _GLOBAL_ROOTS:
        path.pop(0)
    if path[0] in _GLOBAL_ROOTS or isinstance(path[0], int):
        return None
    return tuple(path)


def expression_timeline_provider(identifier: str) -> TimelineLocator | None:
    path = parse_timeline_path(identifier)
    if path is None:
        LOGGER.debug("Timeline expression is not a property path: %s", identifier)
        return None
    return TimelineLocator(kind="path", path=path)


class TimelineRegistry:
    """Maps timeline identifiers to locator providers."""

    def __init__(self, *, locked_down: bool = False) -> None:
        self._providers: dict[str, TimelineProvider] = {
            DEFAULT_TIMELINE: global_timeline_provider,
        }
        self._fallback: TimelineProvider | None = (
            None if locked_down else expression_timeline_provider
        )

    def register(self, identifier: str, provider: TimelineProvider) -> None:
        self._providers[identifier] = provider

    def locate(self, identifier: str) -> TimelineLocator | None:
        provider = self._providers.get(identifier, self._fallback)
        if provider is None:
            return None
        return provider(identifier)


class TimelineHandle:
    """A resolved timeline bound to one page session."""

    def __init__(self, session: AutomationSession, locator: TimelineLocator, identifier: str) -> None:
        self._session = session
        self.locator = locator
        self.identifier = identifier

    def duration(self) -> float:
        value = self._session.evaluate(page_scripts.TIMELINE_DURATION, self.locator.to_arg())
        if value is None:
            raise ScriptEvaluationFailure(f"Timeline '{self.identifier}' is no longer available")
        return float(value)

    def set_progress(self, fraction: float) -> float:
        arg = {"locator": self.locator.to_arg(), "position": fraction}
        return float(self._session.evaluate(page_scripts.SET_PROGRESS, arg))

    def seek_ms(self, position_ms: float) -> float:
        return float(self._session.evaluate(page_scripts.SEEK_TIME, position_ms))


def resolve_timeline(
    session: AutomationSession, identifier: str, registry: TimelineRegistry,
) -> TimelineHandle | None:
    """Resolve ``identifier`` to a handle, or ``None`` when the page has no such timeline."""
    locator = registry.locate(identifier)
    if locator is None:
        return None
    try:
        found = session.evaluate(page_scripts.DISCOVER_TIMELINE, locator.to_arg())
    except ScriptEvaluationFailure as exc:
        LOGGER.debug("Timeline lookup failed for %s: %s", identifier, exc)
        return None
    if not found:
        return None
    return TimelineHandle(session, locator, identifier)
