"""Run configuration for a single export.

``ExportConfig.from_mapping`` merges defaults exactly once and validates every
field; the resulting value is frozen and shared read-only by all stages.
"""

from __future__ import annotations

import re
import shlex
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Final

import yaml

from gsap_video_export.errors import ConfigError

ADVANCE_PROGRESS: Final = "gsap"
ADVANCE_SEEK: Final = "timeweb"
ADVANCE_STRATEGIES: Final = (ADVANCE_PROGRESS, ADVANCE_SEEK)

MODE_CLI: Final = "cli"
MODE_LIBRARY: Final = "library"

DOCUMENT_SELECTOR: Final = "document"
DEFAULT_TIMELINE: Final = "gsap"
AUTO: Final = "auto"

_SIZE_RE = re.compile(r"^\s*(\d+)\s*x\s*(\d+)\s*$", re.IGNORECASE)
_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")

DEFAULTS: Final[dict[str, Any]] = {
    "selector": DOCUMENT_SELECTOR,
    "timeline": DEFAULT_TIMELINE,
    "script": None,
    "advance": ADVANCE_PROGRESS,
    "fps": 60,
    "viewport": "1920x1080",
    "scale": 1.0,
    "codec": "libx264",
    "resolution": AUTO,
    "color": AUTO,
    "output": "video.mp4",
    "frame_start": None,
    "frame_end": None,
    "input_options": "",
    "output_options": '"-pix_fmt yuv420p -crf 18"',
    "cookies": None,
    "headless": True,
    "chrome": False,
    "info": False,
    "verbose": False,
    "quiet": False,
    "mode": MODE_LIBRARY,
    "navigation_timeout": 60.0,
    "evaluate_timeout": 30.0,
    "navigation_retries": 2,
    "retry_backoff": 1.0,
    "wait_until": "networkidle",
    "locked_down": False,
    "ffmpeg": "ffmpeg",
}


def parse_size(value: str, *, field: str) -> tuple[int, int]:
    """Parse a ``WxH`` string into a positive ``(width, height)`` pair."""
    match = _SIZE_RE.match(str(value))
    if not match:
        raise ConfigError(f"{field} must look like WIDTHxHEIGHT, got: {value!r}")
    width, height = int(match.group(1)), int(match.group(2))
    if width <= 0 or height <= 0:
        raise ConfigError(f"{field} must be positive, got: {value!r}")
    return width, height


def normalize_color(value: str) -> str:
    """Uppercase a hex color and prefix ``#``; other ffmpeg color names pass through."""
    text = str(value).strip()
    match = _HEX_RE.match(text)
    if match:
        return f"#{match.group(1).upper()}"
    if not text:
        raise ConfigError("color must not be empty")
    return text


def split_options(raw: str) -> tuple[str, ...]:
    """Tokenize a raw ffmpeg option string like a shell would.

    A single pair of quotes wrapping the whole string is dropped first, so
    ``'"-pix_fmt yuv420p -crf 18"'`` yields four tokens.
    """
    text = raw.strip()
    if len(text) >= 2 and text[0] == text[-1] and text[0] in ("'", '"'):
        text = text[1:-1]
    try:
        return tuple(shlex.split(text))
    except ValueError as exc:
        raise ConfigError(f"Could not parse encoder options {raw!r}: {exc}") from exc


@dataclass(frozen=True)
class Viewport:
    width: int
    height: int
    scale: float = 1.0


@dataclass(frozen=True)
class ExportConfig:
    """Fully-resolved, immutable configuration of one export run."""

    url: str
    selector: str
    timeline: str
    script: Path | None
    advance: str
    fps: int
    viewport: Viewport
    codec: str
    resolution: str
    color: str
    output: Path
    frame_start: int | None
    frame_end: int | None
    input_options: str
    output_options: str
    cookies: Path | None
    headless: bool
    chrome: bool
    info: bool
    verbose: bool
    quiet: bool
    mode: str
    navigation_timeout: float
    evaluate_timeout: float
    navigation_retries: int
    retry_backoff: float
    wait_until: str
    locked_down: bool
    ffmpeg: str

    @property
    def is_cli(self) -> bool:
        return self.mode == MODE_CLI

    @property
    def whole_page(self) -> bool:
        return self.selector == DOCUMENT_SELECTOR

    @classmethod
    def from_mapping(cls, *sources: Mapping[str, Any] | None) -> ExportConfig:
        """Merge ``DEFAULTS`` with each source in order and validate the result.

        Keys may use dashes (``frame-start``) or underscores (``frame_start``).
        ``None`` values never override an earlier source.
        """
        merged: dict[str, Any] = dict(DEFAULTS)
        known = set(DEFAULTS) | {"url"}
        for source in sources:
            if not source:
                continue
            for key, value in source.items():
                name = str(key).replace("-", "_")
                if name not in known:
                    raise ConfigError(f"Unknown option: {key}")
                if value is not None:
                    merged[name] = value
        return cls._validated(merged)

    @classmethod
    def _validated(cls, raw: dict[str, Any]) -> ExportConfig:
        url = str(raw.get("url") or "").strip()
        if not url:
            raise ConfigError("url is required")

        advance = str(raw["advance"]).strip().lower()
        if advance not in ADVANCE_STRATEGIES:
            raise ConfigError(
                f"advance must be one of {', '.join(ADVANCE_STRATEGIES)}; got: {advance}",
            )

        mode = str(raw["mode"]).strip().lower()
        if mode not in (MODE_CLI, MODE_LIBRARY):
            raise ConfigError(f"mode must be 'cli' or 'library'; got: {mode}")

        fps = _positive_int(raw["fps"], field="fps")
        try:
            scale = float(raw["scale"])
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"scale must be a number; got: {raw['scale']!r}") from exc
        if scale <= 0:
            raise ConfigError("scale must be greater than 0")
        width, height = parse_size(raw["viewport"], field="viewport")

        resolution = str(raw["resolution"]).strip().lower()
        if resolution != AUTO:
            w, h = parse_size(resolution, field="resolution")
            resolution = f"{w}x{h}"

        color = str(raw["color"]).strip()
        color = AUTO if color.lower() == AUTO else normalize_color(color)

        frame_start = _optional_frame(raw["frame_start"], field="frame-start")
        frame_end = _optional_frame(raw["frame_end"], field="frame-end")
        if frame_start is not None and frame_end is not None and frame_start >= frame_end:
            raise ConfigError("frame-end must be greater than frame-start")

        # Malformed encoder options must fail before the browser launches.
        input_options = str(raw["input_options"] or "")
        output_options = str(raw["output_options"] or "")
        split_options(input_options)
        split_options(output_options)

        return cls(
            url=url,
            selector=str(raw["selector"]).strip() or DOCUMENT_SELECTOR,
            timeline=str(raw["timeline"]).strip() or DEFAULT_TIMELINE,
            script=_optional_path(raw["script"]),
            advance=advance,
            fps=fps,
            viewport=Viewport(width=width, height=height, scale=scale),
            codec=str(raw["codec"]).strip(),
            resolution=resolution,
            color=color,
            output=Path(str(raw["output"])),
            frame_start=frame_start,
            frame_end=frame_end,
            input_options=input_options,
            output_options=output_options,
            cookies=_optional_path(raw["cookies"]),
            headless=_flag(raw["headless"], field="headless"),
            chrome=_flag(raw["chrome"], field="chrome"),
            info=_flag(raw["info"], field="info"),
            verbose=_flag(raw["verbose"], field="verbose"),
            quiet=_flag(raw["quiet"], field="quiet"),
            mode=mode,
            navigation_timeout=_positive_float(raw["navigation_timeout"], field="navigation_timeout"),
            evaluate_timeout=_positive_float(raw["evaluate_timeout"], field="evaluate_timeout"),
            navigation_retries=_non_negative(int, raw["navigation_retries"], field="navigation_retries"),
            retry_backoff=_non_negative(float, raw["retry_backoff"], field="retry_backoff"),
            wait_until=str(raw["wait_until"]),
            locked_down=_flag(raw["locked_down"], field="locked_down"),
            ffmpeg=str(raw["ffmpeg"]),
        )


def load_config_file(path: Path) -> dict[str, Any]:
    """Read a YAML config file into a plain mapping."""
    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except OSError as exc:
        raise ConfigError(f"Config file not readable: {path} ({exc})") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"Config file is not valid YAML: {path} ({exc})") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    return data


_TRUE_WORDS: Final = frozenset({"1", "true", "yes", "on"})
_FALSE_WORDS: Final = frozenset({"0", "false", "no", "off", ""})


def _flag(value: object, *, field: str) -> bool:
    """Parse a boolean option; strings such as ``"false"`` or ``"yes"`` are accepted."""
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        word = value.strip().lower()
        if word in _TRUE_WORDS:
            return True
        if word in _FALSE_WORDS:
            return False
    raise ConfigError(f"{field} must be true or false; got: {value!r}")


def _integer(value: object, *, field: str) -> int:
    """Whole numbers only; ``29.97`` is rejected rather than truncated."""
    if isinstance(value, bool):
        raise ConfigError(f"{field} must be an integer; got: {value!r}")
    if isinstance(value, float):
        if not value.is_integer():
            raise ConfigError(f"{field} must be a whole number; got: {value!r}")
        return int(value)
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field} must be an integer; got: {value!r}") from exc


def _positive_int(value: object, *, field: str) -> int:
    number = _integer(value, field=field)
    if number <= 0:
        raise ConfigError(f"{field} must be greater than 0")
    return number


def _positive_float(value: object, *, field: str) -> float:
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{field} must be a number; got: {value!r}") from exc
    if number <= 0:
        raise ConfigError(f"{field} must be greater than 0")
    return number


def _non_negative(kind: type, value: object, *, field: str) -> Any:
    if kind is int:
        number = _integer(value, field=field)
    else:
        try:
            number = kind(value)
        except (TypeError, ValueError) as exc:
            raise ConfigError(f"{field} must be a number; got: {value!r}") from exc
    if number < 0:
        raise ConfigError(f"{field} must not be negative")
    return number


def _optional_frame(value: object, *, field: str) -> int | None:
    if value is None or value == "":
        return None
    number = _integer(value, field=field)
    if number < 0:
        raise ConfigError(f"{field} must not be negative")
    return number


def _optional_path(value: object) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value))
