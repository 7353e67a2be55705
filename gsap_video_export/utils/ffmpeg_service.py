"""Helpers for running the ffmpeg binary on a numbered PNG sequence.

``FfmpegEncoder.run`` starts ffmpeg and returns an ``EncodeRun``: a one-shot
iterator of progress updates read from ``-progress pipe:1``. The iterator
ends when ffmpeg exits successfully and raises ``EncodeFailure`` otherwise.
"""

from __future__ import annotations

import logging
import shutil
import subprocess
import time
from collections import deque
from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Final

from gsap_video_export.errors import EncodeFailure

if TYPE_CHECKING:
    from gsap_video_export.stages.encode_stage import EncodeJob

LOGGER = logging.getLogger(__name__)

ERROR_TAIL_LINES: Final = 20


@dataclass(frozen=True)
class EncodeProgress:
    percent: float
    frame: int


def ffmpeg_color(color: str) -> str:
    """ffmpeg filter syntax for a ``#RRGGBB`` color; names pass through."""
    if color.startswith("#"):
        return "0x" + color[1:]
    return color


def build_ffmpeg_command(job: EncodeJob, ffmpeg: str = "ffmpeg") -> list[str]:
    """Build the ffmpeg command line for an encode job."""
    width, height = job.resolution.split("x")
    color = ffmpeg_color(job.pad_color)
    vf = (
        f"scale={width}:{height}:force_original_aspect_ratio=decrease,"
        f"pad={width}:{height}:(ow-iw)/2:(oh-ih)/2:color={color}"
    )
    cmd = [
        ffmpeg,
        "-y",
        "-hide_banner",
        "-nostats",
        "-loglevel",
        "error",
        *job.input_options,
        "-framerate",
        str(job.fps),
        "-i",
        job.input_pattern,
        "-c:v",
        job.codec,
        "-vf",
        vf,
        *job.output_options,
        "-progress",
        "pipe:1",
        str(job.output_path),
    ]
    return [str(part) for part in cmd]


def parse_progress_line(line: str) -> tuple[str, str] | None:
    """Split a ``key=value`` line from ``-progress`` output."""
    key, sep, value = line.strip().partition("=")
    if not sep or not key or " " in key:
        return None
    return key, value.strip()


class EncodeRun:
    """A running ffmpeg process exposed as a lazy, non-restartable progress stream."""

    def __init__(self, proc: subprocess.Popen[str], *, frame_count: int, started_at: float) -> None:
        self._proc = proc
        self._frame_count = frame_count
        self._consumed = False
        self.started_at = started_at
        self.finished_at: float | None = None

    @property
    def seconds(self) -> float:
        if self.finished_at is None:
            raise RuntimeError("Encode has not finished")
        return self.finished_at - self.started_at

    def __iter__(self) -> Iterator[EncodeProgress]:
        if self._consumed:
            raise RuntimeError("EncodeRun can only be iterated once")
        self._consumed = True
        return self._events()

    def wait(self) -> float:
        """Drain the progress stream and return the encode duration in seconds."""
        for _ in self:
            pass
        return self.seconds

    def _percent(self, frame: int) -> float:
        if self._frame_count <= 0:
            return 0.0
        return min(100.0, frame * 100.0 / self._frame_count)

    def _events(self) -> Iterator[EncodeProgress]:
        proc = self._proc
        tail: deque[str] = deque(maxlen=ERROR_TAIL_LINES)
        frame = 0
        last = 0.0
        try:
            if proc.stdout is not None:
                for raw in proc.stdout:
                    parsed = parse_progress_line(raw)
                    if parsed is None:
                        if raw.strip():
                            tail.append(raw.strip())
                        continue
                    key, value = parsed
                    if key == "frame":
                        try:
                            frame = int(value)
                        except ValueError:
                            continue
                    elif key == "progress":
                        last = max(last, self._percent(frame))
                        yield EncodeProgress(percent=last, frame=frame)
            returncode = proc.wait()
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            self.finished_at = time.monotonic()

        if returncode != 0:
            detail = "\n".join(tail)
            LOGGER.debug("ffmpeg output:\n%s", detail)
            raise EncodeFailure(f"ffmpeg exited with code {returncode}", detail=detail)
        if last < 100.0:
            yield EncodeProgress(percent=100.0, frame=frame)


class FfmpegEncoder:
    """Encoder collaborator backed by the ffmpeg CLI."""

    def __init__(self, binary: str = "ffmpeg") -> None:
        self.binary = binary

    def _resolve_binary(self) -> str:
        path = shutil.which(self.binary)
        if path is None:
            raise EncodeFailure(
                f"ffmpeg binary not found: {self.binary}. Install ffmpeg and make sure it is on PATH.",
            )
        return path

    def run(self, job: EncodeJob) -> EncodeRun:
        cmd = build_ffmpeg_command(job, self._resolve_binary())
        LOGGER.debug("Running: %s", " ".join(cmd))
        Path(job.output_path).parent.mkdir(parents=True, exist_ok=True)
        try:
            proc = subprocess.Popen(
                cmd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
            )
        except OSError as exc:
            raise EncodeFailure(f"Could not start ffmpeg: {exc}") from exc
        return EncodeRun(proc, frame_count=job.frame_count, started_at=time.monotonic())
