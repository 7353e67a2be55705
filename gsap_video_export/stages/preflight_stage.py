"""Preflight checks run before any frame is captured.

Checks run in a fixed order and stop at the first failure:
selector, GSAP presence, timeline lookup, duration sanity.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import TYPE_CHECKING, Final

from gsap_video_export.browser import page_scripts
from gsap_video_export.browser.timeline import TimelineHandle, TimelineRegistry, resolve_timeline
from gsap_video_export.config import ADVANCE_SEEK, ExportConfig
from gsap_video_export.errors import (
    FrameworkNotFound,
    InfiniteDuration,
    InvalidSelector,
    ScriptEvaluationFailure,
    TimelineNotFound,
    ZeroDuration,
)
from gsap_video_export.utils.logging_utils import format_duration, status_line

if TYPE_CHECKING:
    from gsap_video_export.browser.drivers import AutomationSession

LOGGER = logging.getLogger(__name__)

# Longer timelines are treated as looping (repeat: -1) or unbounded.
MAX_DURATION_SECONDS: Final = 3600


@dataclass(frozen=True)
class PreflightResult:
    """Validated timeline and frame count for the run."""

    handle: TimelineHandle
    duration: float
    total_frames: int
    framework_version: str


def total_frames_for(duration: float, fps: int) -> int:
    """Number of frames needed to cover ``duration`` seconds at ``fps``."""
    return math.ceil(duration * fps)


def validate_duration(duration: float) -> float:
    """Reject durations that cannot be exported."""
    if not math.isfinite(duration) or duration <= 0:
        raise ZeroDuration(f"Timeline duration is not usable: {duration}")
    if duration > MAX_DURATION_SECONDS:
        raise InfiniteDuration(
            f"Timeline duration {duration:.1f}s exceeds {MAX_DURATION_SECONDS}s; "
            "is the timeline repeating forever?",
        )
    return duration


def check_selector(session: AutomationSession, selector: str) -> None:
    if not session.evaluate(page_scripts.DISCOVER_SELECTOR, selector):
        raise InvalidSelector(f"Selector {selector} does not match any element")
    status_line("Selector", f"({selector}) OK")
    if selector != "document":
        session.evaluate(page_scripts.SCROLL_INTO_VIEW, selector)


def check_framework(session: AutomationSession) -> str:
    version = session.evaluate(page_scripts.DISCOVER_FRAMEWORK)
    if not version:
        raise FrameworkNotFound("GSAP was not found on the page (window.gsapVersions is empty)")
    status_line("GSAP", f"v{version}")
    return str(version)


def check_timeline(
    session: AutomationSession, identifier: str, registry: TimelineRegistry,
) -> TimelineHandle:
    handle = resolve_timeline(session, identifier, registry)
    if handle is None:
        raise TimelineNotFound(f"Timeline {identifier} was not found on the page")
    status_line("Timeline", f"({identifier}) OK")
    return handle


def check_time_scrub(session: AutomationSession) -> None:
    if not session.evaluate(page_scripts.HAS_TIME_SCRUB):
        raise ScriptEvaluationFailure("Time-scrub adapter is missing from the page")


def run_preflight(
    session: AutomationSession, config: ExportConfig, registry: TimelineRegistry,
) -> PreflightResult:
    """Run all preflight checks and compute the total frame count."""
    check_selector(session, config.selector)
    version = check_framework(session)
    handle = check_timeline(session, config.timeline, registry)

    duration = validate_duration(handle.duration())
    status_line("Duration", format_duration(round(duration, 1)))

    total = total_frames_for(duration, config.fps)
    status_line("Frames", str(total))

    if config.advance == ADVANCE_SEEK:
        check_time_scrub(session)

    LOGGER.debug("Preflight ok: duration=%.3fs frames=%d gsap=%s", duration, total, version)
    return PreflightResult(
        handle=handle,
        duration=duration,
        total_frames=total,
        framework_version=version,
    )
