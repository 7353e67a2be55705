"""Sequential frame capture into a temporary, run-scoped directory."""

from __future__ import annotations

import logging
import shutil
import tempfile
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from gsap_video_export.errors import Cancelled, CaptureFailure, InvalidFrameRange

if TYPE_CHECKING:
    from types import TracebackType

    from gsap_video_export.browser.drivers import AutomationSession
    from gsap_video_export.stages.advance_stage import AdvanceStrategy

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameRange:
    """Half-open range ``[start_frame, end_frame)`` of timeline frames."""

    start_frame: int
    end_frame: int
    total_frames: int

    @classmethod
    def resolve(cls, total_frames: int, *, start: int | None = None, end: int | None = None) -> FrameRange:
        start_frame = start or 0
        end_frame = total_frames if end is None else end
        if start_frame < 0 or end_frame <= start_frame:
            raise InvalidFrameRange(
                f"Frame range [{start_frame}, {end_frame}) is empty (timeline has {total_frames} frames)",
            )
        if end_frame > total_frames:
            LOGGER.warning(
                "frame-end %d is past the last frame (%d); trailing frames repeat the final state",
                end_frame,
                total_frames,
            )
        return cls(start_frame=start_frame, end_frame=end_frame, total_frames=total_frames)

    def __len__(self) -> int:
        return self.end_frame - self.start_frame

    def __iter__(self):
        return iter(range(self.start_frame, self.end_frame))


@dataclass(frozen=True)
class CaptureProgress:
    completed: int
    total: int
    elapsed: float


@dataclass(frozen=True)
class CaptureResult:
    frames_dir: Path
    frame_count: int
    seconds: float


class CaptureSession:
    """Exclusively owned temporary directory holding ``0.png``, ``1.png``, ...

    The directory is removed when the ``with`` block exits, whatever the outcome.
    """

    FRAME_SUFFIX = ".png"

    def __init__(self, *, prefix: str = "gve-frames-") -> None:
        self._prefix = prefix
        self._path: Path | None = None

    @property
    def path(self) -> Path:
        if self._path is None:
            raise RuntimeError("CaptureSession is not open")
        return self._path

    @property
    def input_pattern(self) -> str:
        return str(self.path / f"%d{self.FRAME_SUFFIX}")

    def frame_path(self, index: int) -> Path:
        return self.path / f"{index}{self.FRAME_SUFFIX}"

    def __enter__(self) -> CaptureSession:
        self._path = Path(tempfile.mkdtemp(prefix=self._prefix))
        LOGGER.debug("Capture session opened: %s", self._path)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.cleanup()

    def cleanup(self) -> None:
        if self._path is None:
            return
        shutil.rmtree(self._path, ignore_errors=True)
        LOGGER.debug("Capture session removed: %s", self._path)
        self._path = None


def check_cancelled(cancel_event: threading.Event | None) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise Cancelled("Export cancelled")


def capture_frames(
    session: AutomationSession,
    strategy: AdvanceStrategy,
    frame_range: FrameRange,
    store: CaptureSession,
    *,
    selector: str | None = None,
    on_progress: Callable[[CaptureProgress], None] | None = None,
    cancel_event: threading.Event | None = None,
) -> CaptureResult:
    """Advance and screenshot every frame in ``frame_range``, one at a time.

    Files are numbered from zero regardless of ``frame_range.start_frame`` so the
    encoder always reads a contiguous sequence. ``selector=None`` captures the
    whole viewport.
    """
    started = time.monotonic()
    total = len(frame_range)
    for step, frame_index in enumerate(frame_range):
        check_cancelled(cancel_event)
        strategy.advance(frame_index)
        try:
            session.screenshot(store.frame_path(step), selector=selector)
        except OSError as exc:
            raise CaptureFailure(f"Could not write frame {frame_index}: {exc}") from exc
        if on_progress is not None:
            on_progress(CaptureProgress(completed=step + 1, total=total, elapsed=time.monotonic() - started))

    seconds = time.monotonic() - started
    LOGGER.debug("Captured %d frames in %.2fs", total, seconds)
    return CaptureResult(frames_dir=store.path, frame_count=total, seconds=seconds)
