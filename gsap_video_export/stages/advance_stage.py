"""Frame advance strategies.

A strategy maps a frame index to exactly one animation state and applies it
in the page. Both strategies are pure functions of the index: calling
``advance(i)`` twice leaves the page in the same state.
"""

from __future__ import annotations

from typing import Final, Protocol

from gsap_video_export.browser.timeline import TimelineHandle
from gsap_video_export.config import ADVANCE_PROGRESS, ADVANCE_SEEK
from gsap_video_export.errors import ConfigError

# Keeps seek targets just past a frame boundary so timing engines that round
# down never land on the previous frame.
EPSILON_MS: Final = 0.01


class AdvanceStrategy(Protocol):
    def advance(self, frame_index: int) -> None: ...


def progress_position(frame_index: int, total_frames: int) -> float:
    """Normalized timeline position of ``frame_index``, clamped to [0, 1]."""
    if total_frames <= 0:
        return 0.0
    return min(max(frame_index / total_frames, 0.0), 1.0)


def seek_position_ms(frame_index: int, fps: int) -> float:
    """Millisecond position of ``frame_index`` at ``fps``."""
    return frame_index * (1000 / fps) + EPSILON_MS


class ProgressAdvance:
    """Pause the timeline and set its progress directly."""

    def __init__(self, handle: TimelineHandle, total_frames: int) -> None:
        self._handle = handle
        self._total_frames = total_frames

    def advance(self, frame_index: int) -> None:
        self._handle.set_progress(progress_position(frame_index, self._total_frames))


class SeekAdvance:
    """Force the page clock to the frame's time through the time-scrub adapter."""

    def __init__(self, handle: TimelineHandle, fps: int) -> None:
        self._handle = handle
        self._fps = fps

    def advance(self, frame_index: int) -> None:
        self._handle.seek_ms(seek_position_ms(frame_index, self._fps))


def build_strategy(kind: str, handle: TimelineHandle, *, total_frames: int, fps: int) -> AdvanceStrategy:
    if kind == ADVANCE_PROGRESS:
        return ProgressAdvance(handle, total_frames)
    if kind == ADVANCE_SEEK:
        return SeekAdvance(handle, fps)
    raise ConfigError(f"Unknown advance strategy: {kind}")
