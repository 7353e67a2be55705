"""RU: Стадия кодирования: геометрия первого кадра, цвет паддинга и запуск ffmpeg.

EN: Encode stage: first-frame geometry, padding color and the ffmpeg run.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

from PIL import Image, UnidentifiedImageError

from gsap_video_export.config import AUTO, ExportConfig, parse_size, split_options
from gsap_video_export.errors import EncodeFailure
from gsap_video_export.utils.logging_utils import status_line

if TYPE_CHECKING:
    from gsap_video_export.utils.ffmpeg_service import EncodeProgress, EncodeRun

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class FrameGeometry:
    """Native size and top-left pixel color of the first captured frame."""

    width: int
    height: int
    corner_color: str

    @property
    def size(self) -> str:
        return f"{self.width}x{self.height}"


@dataclass(frozen=True)
class EncodeJob:
    input_pattern: str
    codec: str
    fps: int
    resolution: str
    pad_color: str
    input_options: tuple[str, ...]
    output_options: tuple[str, ...]
    output_path: Path
    frame_count: int


@dataclass(frozen=True)
class EncodeResult:
    output_path: Path
    seconds: float


class Encoder(Protocol):
    def run(self, job: EncodeJob) -> EncodeRun: ...


def rgb_hex(red: int, green: int, blue: int) -> str:
    """Uppercase ``#RRGGBB`` for an RGB triple."""
    return f"#{red:02X}{green:02X}{blue:02X}"


def read_frame_geometry(frame_path: Path) -> FrameGeometry:
    """Decode a captured frame and sample its top-left pixel."""
    try:
        with Image.open(frame_path) as img:
            rgb = img.convert("RGB")
            red, green, blue = rgb.getpixel((0, 0))
            width, height = rgb.size
    except (OSError, UnidentifiedImageError) as exc:
        raise EncodeFailure(f"Could not read first frame {frame_path}: {exc}") from exc
    return FrameGeometry(width=width, height=height, corner_color=rgb_hex(red, green, blue))


def resolve_output_size(resolution: str, geometry: FrameGeometry) -> str:
    """``auto`` keeps the native frame size; anything else must be ``WxH``."""
    if resolution == AUTO:
        return geometry.size
    width, height = parse_size(resolution, field="resolution")
    return f"{width}x{height}"


def resolve_pad_color(color: str, geometry: FrameGeometry) -> str:
    """``auto`` uses the corner pixel of the first frame."""
    if color == AUTO:
        return geometry.corner_color
    return color


def build_encode_job(
    config: ExportConfig, geometry: FrameGeometry, *, input_pattern: str, frame_count: int,
) -> EncodeJob:
    return EncodeJob(
        input_pattern=input_pattern,
        codec=config.codec,
        fps=config.fps,
        resolution=resolve_output_size(config.resolution, geometry),
        pad_color=resolve_pad_color(config.color, geometry),
        input_options=split_options(config.input_options),
        output_options=split_options(config.output_options),
        output_path=config.output,
        frame_count=frame_count,
    )


def encode_frames(
    job: EncodeJob,
    encoder: Encoder,
    *,
    on_progress: Callable[[EncodeProgress], None] | None = None,
) -> EncodeResult:
    """Run the encoder to completion, forwarding progress updates."""
    run = encoder.run(job)
    for update in run:
        if on_progress is not None:
            on_progress(update)
    LOGGER.debug("Encoded %s in %.2fs", job.output_path, run.seconds)
    return EncodeResult(output_path=job.output_path, seconds=run.seconds)


def report_job(job: EncodeJob, *, resolution: str, color: str) -> None:
    status_line("Output resolution", f"{'(auto) ' if resolution == AUTO else ''}{job.resolution}")
    status_line("Padding color", f"{'(auto) ' if color == AUTO else ''}{job.pad_color.upper()}")
