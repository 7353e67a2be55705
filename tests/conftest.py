"""Shared fakes: an in-memory page that renders real PNGs and a scripted ffmpeg."""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any

import pytest
from PIL import Image

from gsap_video_export.browser import page_scripts
from gsap_video_export.config import ExportConfig
from gsap_video_export.errors import NavigationFailure
from gsap_video_export.utils.ffmpeg_service import EncodeRun
from gsap_video_export.utils.logging_utils import DEFAULT_LOGGER_NAME


class FakeSession:
    """Stands in for a browser page running a GSAP animation."""

    def __init__(
        self,
        *,
        selectors: tuple[str, ...] = (),
        gsap_version: str | None = "3.12.5",
        timelines: dict[str, float] | None = None,
        size: tuple[int, int] = (80, 45),
        corner: tuple[int, int, int] = (18, 18, 18),
        time_scrub: bool = False,
        nav_failures: int = 0,
    ) -> None:
        self.selectors = set(selectors)
        self.gsap_version = gsap_version
        self.timelines = {"gsap": 2.0} if timelines is None else timelines
        self.size = size
        self.corner = corner
        self.time_scrub = time_scrub
        self.nav_failures = nav_failures

        self.position = 0.0
        self.position_ms = 0.0
        self.calls: list[tuple[str, Any]] = []
        self.events: list[str] = []
        self.navigations: list[str] = []
        self.scrolled: list[str] = []
        self.cookies: list[dict[str, Any]] = []
        self.scripts: list[str] = []
        self.screenshots: list[tuple[Path, str | None]] = []
        self.closed = 0

    def _lookup(self, locator: dict[str, Any]) -> float | None:
        if locator["kind"] == "global":
            return self.timelines.get("gsap")
        key = ".".join(str(p) for p in locator["path"])
        return self.timelines.get(key)

    def navigate(self, url: str, *, wait_until: str, timeout: float) -> None:
        self.navigations.append(url)
        if self.nav_failures > 0:
            self.nav_failures -= 1
            raise NavigationFailure(f"net::ERR_CONNECTION_RESET at {url}")

    def evaluate(self, script: str, arg: Any = None) -> Any:
        self._ensure_open()
        self.calls.append((script, arg))
        if script == page_scripts.DISCOVER_SELECTOR:
            return arg == "document" or arg in self.selectors
        if script == page_scripts.SCROLL_INTO_VIEW:
            self.scrolled.append(arg)
            return True
        if script == page_scripts.DISCOVER_FRAMEWORK:
            return self.gsap_version
        if script == page_scripts.DISCOVER_TIMELINE:
            return self._lookup(arg) is not None
        if script == page_scripts.TIMELINE_DURATION:
            return self._lookup(arg)
        if script == page_scripts.SET_PROGRESS:
            self.events.append(f"advance:{arg['position']}")
            self.position = arg["position"]
            return self.position
        if script == page_scripts.HAS_TIME_SCRUB:
            return self.time_scrub
        if script == page_scripts.SEEK_TIME:
            self.events.append(f"seek:{arg}")
            self.position_ms = arg
            return arg
        raise AssertionError(f"Unexpected page script: {script[:60]}")

    def query_selector(self, selector: str) -> object | None:
        return object() if selector in self.selectors else None

    def screenshot(self, path: Path, *, selector: str | None = None) -> None:
        self._ensure_open()
        self.events.append(f"shot:{Path(path).name}")
        shade = int(round(self.position * 255)) if not self.time_scrub else int(self.position_ms) % 256
        img = Image.new("RGB", self.size, (shade, shade, shade))
        img.putpixel((0, 0), self.corner)
        img.save(path, format="PNG")
        self.screenshots.append((Path(path), selector))

    def set_cookies(self, cookies: list[dict[str, Any]]) -> None:
        self.cookies.extend(cookies)

    def add_script(self, source: str) -> None:
        self.scripts.append(source)

    def close(self) -> None:
        self.closed += 1

    def _ensure_open(self) -> None:
        if self.closed:
            raise AssertionError("session used after close")


class FakeDriver:
    def __init__(self, session: FakeSession, *, error: Exception | None = None) -> None:
        self.session = session
        self.error = error
        self.options: list[Any] = []

    def launch(self, options: Any) -> FakeSession:
        self.options.append(options)
        if self.error is not None:
            raise self.error
        return self.session


class FakeProc:
    """Minimal ``subprocess.Popen`` stand-in for ffmpeg ``-progress`` output."""

    def __init__(self, lines: list[str], returncode: int = 0) -> None:
        self.stdout = iter(lines)
        self.returncode = returncode
        self.killed = False

    def wait(self, timeout: float | None = None) -> int:
        return self.returncode

    def poll(self) -> int:
        return self.returncode

    def kill(self) -> None:
        self.killed = True


def progress_lines(frame_count: int, steps: int = 2) -> list[str]:
    lines: list[str] = []
    for i in range(1, steps + 1):
        frame = frame_count * i // steps
        lines += [f"frame={frame}\n", "fps=0.0\n", "progress=continue\n" if i < steps else "progress=end\n"]
    return lines


class FakeEncoder:
    """Records jobs and what existed on disk when encoding began."""

    def __init__(self, *, returncode: int = 0, session: FakeSession | None = None) -> None:
        self.returncode = returncode
        self.session = session
        self.jobs: list[Any] = []
        self.frames_on_disk: list[str] = []
        self.session_closed_at_start: bool | None = None

    def run(self, job: Any) -> EncodeRun:
        self.jobs.append(job)
        frames_dir = Path(job.input_pattern).parent
        self.frames_on_disk = sorted(p.name for p in frames_dir.glob("*.png"))
        if self.session is not None:
            self.session_closed_at_start = self.session.closed > 0
        lines = progress_lines(job.frame_count)
        if self.returncode:
            lines = ["[libx264 @ 0x1] width not divisible by 2 (81x45)\n"]
        return EncodeRun(
            FakeProc(lines, self.returncode),  # type: ignore[arg-type]
            frame_count=job.frame_count,
            started_at=time.monotonic(),
        )


@pytest.fixture(autouse=True)
def propagate_package_logs(monkeypatch: pytest.MonkeyPatch) -> None:
    """Route the package logger to the root logger so ``caplog`` sees it."""
    monkeypatch.setattr(logging.getLogger(DEFAULT_LOGGER_NAME), "propagate", True)


@pytest.fixture
def make_config(tmp_path: Path):
    def _make(**overrides: Any) -> ExportConfig:
        base = {"url": "https://example.test/anim.html", "output": str(tmp_path / "out.mp4")}
        base.update(overrides)
        return ExportConfig.from_mapping(base)

    return _make


@pytest.fixture
def fake_session() -> FakeSession:
    return FakeSession()
