"""Export GSAP animations to video by capturing them frame by frame."""

from __future__ import annotations

__version__ = "0.3.0"

from gsap_video_export.config import ExportConfig  # noqa: E402
from gsap_video_export.errors import ExportError  # noqa: E402
from gsap_video_export.pipeline import InfoResult, RunResult, export_video  # noqa: E402

__all__ = [
    "ExportConfig",
    "ExportError",
    "InfoResult",
    "RunResult",
    "__version__",
    "export_video",
]
