"""Tests for the ordered preflight checks."""

from __future__ import annotations

import math

import pytest

from conftest import FakeSession
from gsap_video_export.browser import page_scripts
from gsap_video_export.browser.timeline import TimelineRegistry
from gsap_video_export.errors import (
    FrameworkNotFound,
    InfiniteDuration,
    InvalidSelector,
    ScriptEvaluationFailure,
    TimelineNotFound,
    ZeroDuration,
)
from gsap_video_export.stages.preflight_stage import (
    MAX_DURATION_SECONDS,
    run_preflight,
    total_frames_for,
    validate_duration,
)


@pytest.mark.parametrize(
    ("duration", "fps"),
    [(2.0, 60), (1.25, 24), (0.5, 30), (12.345, 60), (3600.0, 1)],
)
def test_total_frames_is_ceil_of_duration_times_fps(duration: float, fps: int) -> None:
    assert total_frames_for(duration, fps) == math.ceil(duration * fps)


def test_two_seconds_at_sixty_fps_is_120_frames(make_config) -> None:
    result = run_preflight(FakeSession(), make_config(), TimelineRegistry())
    assert result.total_frames == 120
    assert result.framework_version == "3.12.5"
    assert result.duration == 2.0


@pytest.mark.parametrize("duration", [0.0, -1.0, float("nan"), float("inf")])
def test_unusable_durations_raise_zero_duration(duration: float) -> None:
    with pytest.raises(ZeroDuration):
        validate_duration(duration)


def test_durations_over_ceiling_raise_infinite_duration() -> None:
    assert validate_duration(MAX_DURATION_SECONDS) == MAX_DURATION_SECONDS
    with pytest.raises(InfiniteDuration):
        validate_duration(MAX_DURATION_SECONDS + 0.5)


def test_document_selector_passes_on_empty_page(make_config) -> None:
    session = FakeSession(selectors=())
    run_preflight(session, make_config(selector="document"), TimelineRegistry())
    assert session.scrolled == []


def test_missing_selector_aborts_before_timeline_lookup(make_config) -> None:
    session = FakeSession()
    with pytest.raises(InvalidSelector):
        run_preflight(session, make_config(selector="#missing"), TimelineRegistry())
    scripts = [script for script, _arg in session.calls]
    assert page_scripts.DISCOVER_TIMELINE not in scripts
    assert page_scripts.DISCOVER_FRAMEWORK not in scripts


def test_matched_selector_is_scrolled_into_view(make_config) -> None:
    session = FakeSession(selectors=("#stage",))
    run_preflight(session, make_config(selector="#stage"), TimelineRegistry())
    assert session.scrolled == ["#stage"]


def test_missing_gsap_raises_framework_not_found(make_config) -> None:
    with pytest.raises(FrameworkNotFound):
        run_preflight(FakeSession(gsap_version=None), make_config(), TimelineRegistry())


def test_undefined_custom_timeline_raises_timeline_not_found(make_config) -> None:
    with pytest.raises(TimelineNotFound):
        run_preflight(FakeSession(), make_config(timeline="myTimeline"), TimelineRegistry())


def test_locked_down_mode_rejects_custom_timelines(make_config) -> None:
    session = FakeSession(timelines={"gsap": 1.0, "myTimeline": 1.0})
    with pytest.raises(TimelineNotFound):
        run_preflight(session, make_config(timeline="myTimeline"), TimelineRegistry(locked_down=True))


def test_seek_strategy_requires_time_scrub_adapter(make_config) -> None:
    with pytest.raises(ScriptEvaluationFailure):
        run_preflight(FakeSession(time_scrub=False), make_config(advance="timeweb"), TimelineRegistry())
    result = run_preflight(FakeSession(time_scrub=True), make_config(advance="timeweb"), TimelineRegistry())
    assert result.total_frames == 120
