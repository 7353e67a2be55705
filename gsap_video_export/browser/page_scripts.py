"""Functions evaluated inside the page context.

Each constant is the source of a single JavaScript arrow function taking one
argument. Timeline functions receive a locator produced by
``TimelineLocator.to_arg()`` and resolve it with ``_RESOLVE_TIMELINE``.
"""

from __future__ import annotations

from typing import Final

# Walks a locator to a timeline object without evaluating arbitrary code.
# Only the root segment may name a lexical global, and it is validated as a
# plain identifier before it reaches the Function constructor.
_RESOLVE_TIMELINE: Final = """
const resolveTimeline = (locator) => {
  try {
    if (!locator) return null;
    if (locator.kind === 'global') {
      return (window.gsap && window.gsap.globalTimeline) || null;
    }
    const path = locator.path || [];
    if (!path.length) return null;
    const root = String(path[0]);
    let value;
    if (root in window) {
      value = window[root];
    } else if (/^[A-Za-z_$][\\w$]*$/.test(root)) {
      value = Function('return typeof ' + root + " === 'undefined' ? undefined : " + root)();
    }
    for (const key of path.slice(1)) {
      if (value === null || value === undefined) return null;
      value = value[key];
    }
    if (!value || typeof value.duration !== 'function') return null;
    return value;
  } catch (e) {
    return null;
  }
};
"""


def _with_resolver(body: str) -> str:
    return "(arg) => {\n" + _RESOLVE_TIMELINE + body + "\n}"


DISCOVER_SELECTOR: Final = """(selector) => {
  if (selector === 'document') return true;
  try {
    return document.querySelector(selector) !== null;
  } catch (e) {
    return false;
  }
}"""

SCROLL_INTO_VIEW: Final = """(selector) => {
  const el = document.querySelector(selector);
  if (!el) return false;
  if (typeof el.scrollIntoViewIfNeeded === 'function') {
    el.scrollIntoViewIfNeeded();
  } else {
    el.scrollIntoView();
  }
  return true;
}"""

DISCOVER_FRAMEWORK: Final = """() => {
  const versions = window.gsapVersions;
  if (versions && versions.length) return String(versions[0]);
  return null;
}"""

DISCOVER_TIMELINE: Final = _with_resolver("return resolveTimeline(arg) !== null;")

TIMELINE_DURATION: Final = _with_resolver(
    """const tl = resolveTimeline(arg);
if (!tl) return null;
return Number(tl.duration());""",
)

SET_PROGRESS: Final = _with_resolver(
    """const tl = resolveTimeline(arg.locator);
if (!tl) throw new Error('timeline is no longer available');
tl.pause();
tl.progress(arg.position);
return tl.progress();""",
)

HAS_TIME_SCRUB: Final = """() => !!(window.__timeScrub && typeof window.__timeScrub.goTo === 'function')"""

SEEK_TIME: Final = """async (ms) => {
  await window.__timeScrub.goTo(ms);
  return window.__timeScrub.now();
}"""
