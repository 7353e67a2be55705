"""RU: Оркестрация пайплайна экспорта GSAP-анимации в видео.

Пайплайн выполняет стадии строго по порядку:
1) Запуск браузера и загрузка страницы
2) Preflight (селектор, GSAP, таймлайн, длительность)
3) Покадровый захват во временную директорию
4) Кодирование последовательности кадров через ffmpeg

EN: Pipeline orchestration for exporting a GSAP animation to video.

The pipeline runs its stages strictly in order:
1) Browser launch and page load
2) Preflight (selector, GSAP, timeline, duration)
3) Frame-by-frame capture into a temporary directory
4) Encoding the frame sequence with ffmpeg
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from importlib import resources
from pathlib import Path
from typing import TYPE_CHECKING

from tqdm import tqdm

from gsap_video_export.browser.drivers import (
    AutomationDriver,
    AutomationSession,
    LaunchOptions,
    PlaywrightDriver,
)
from gsap_video_export.browser.timeline import TimelineRegistry
from gsap_video_export.config import ADVANCE_SEEK, ExportConfig
from gsap_video_export.errors import ExportError, NavigationFailure, ScriptEvaluationFailure
from gsap_video_export.stages.advance_stage import build_strategy
from gsap_video_export.stages.capture_stage import (
    CaptureProgress,
    CaptureSession,
    FrameRange,
    capture_frames,
    check_cancelled,
)
from gsap_video_export.stages.encode_stage import (
    Encoder,
    FrameGeometry,
    build_encode_job,
    encode_frames,
    read_frame_geometry,
    report_job,
)
from gsap_video_export.stages.preflight_stage import run_preflight
from gsap_video_export.utils.cookies import load_cookies
from gsap_video_export.utils.ffmpeg_service import EncodeProgress, FfmpegEncoder
from gsap_video_export.utils.logging_utils import DEFAULT_LOGGER_NAME, status_line
from gsap_video_export.utils.url_utils import page_url

if TYPE_CHECKING:
    from types import TracebackType

log = logging.getLogger(DEFAULT_LOGGER_NAME)

ProgressCallback = Callable[[str, float, float], None]


@dataclass(frozen=True)
class RunResult:
    """Outcome of a successful export."""

    output_file: Path
    capture_seconds: float
    encode_seconds: float
    frame_count: int
    geometry: FrameGeometry


@dataclass(frozen=True)
class InfoResult:
    """Outcome of an inspect-only run (``info``); no video is produced."""

    duration: float
    frames: int
    framework: str
    timeline: str


class SessionLease:
    """Owns the automation session and closes it exactly once."""

    def __init__(self, driver: AutomationDriver, options: LaunchOptions) -> None:
        self._driver = driver
        self._options = options
        self._session: AutomationSession | None = None
        self.released = False

    @property
    def session(self) -> AutomationSession:
        if self._session is None:
            raise RuntimeError("Automation session is not available")
        return self._session

    def __enter__(self) -> SessionLease:
        self._session = self._driver.launch(self._options)
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.release()

    def release(self) -> None:
        if self._session is None:
            return
        session, self._session = self._session, None
        self.released = True
        session.close()


def time_scrub_source() -> str:
    """Source of the virtual-clock adapter injected for the seek strategy."""
    return (
        resources.files("gsap_video_export.browser")
        .joinpath("time_scrub.js")
        .read_text(encoding="utf-8")
    )


def launch_options(config: ExportConfig) -> LaunchOptions:
    init_scripts = (time_scrub_source(),) if config.advance == ADVANCE_SEEK else ()
    return LaunchOptions(
        width=config.viewport.width,
        height=config.viewport.height,
        scale=config.viewport.scale,
        headless=config.headless,
        channel="chrome" if config.chrome else None,
        init_scripts=init_scripts,
        evaluate_timeout=config.evaluate_timeout,
    )


def navigate_with_retry(
    session: AutomationSession,
    url: str,
    *,
    wait_until: str,
    timeout: float,
    retries: int,
    backoff: float,
    sleep: Callable[[float], None] = time.sleep,
) -> None:
    """Navigate, retrying ``NavigationFailure`` with exponential backoff."""
    attempts = max(1, 1 + retries)
    for attempt in range(1, attempts + 1):
        try:
            session.navigate(url, wait_until=wait_until, timeout=timeout)
            return
        except NavigationFailure as exc:
            if attempt >= attempts:
                raise
            delay = backoff * (2 ** (attempt - 1))
            log.warning(
                "Navigation failed (%d/%d): %s; retrying in %.1fs", attempt, attempts, exc, delay,
            )
            sleep(delay)


def inject_custom_script(session: AutomationSession, script: Path | None) -> None:
    """Run a user script in the page; a missing file is skipped with a warning."""
    if script is None:
        return
    if not script.exists():
        log.warning("Custom script not found, skipping: %s", script)
        return
    try:
        source = script.read_text(encoding="utf-8")
    except OSError as exc:
        raise ScriptEvaluationFailure(f"Custom script not readable: {script} ({exc})") from exc
    session.add_script(source)
    status_line("Script", f"({script.name}) OK")


def export_video(
    config: ExportConfig,
    *,
    driver: AutomationDriver | None = None,
    encoder: Encoder | None = None,
    registry: TimelineRegistry | None = None,
    cancel_event: threading.Event | None = None,
    on_progress: ProgressCallback | None = None,
) -> RunResult | InfoResult:
    """RU: Экспортирует анимацию в видео (или только инспектирует её при ``info``).

    Любая ошибка поднимается как подкласс ``ExportError``; браузер закрывается
    ровно один раз на любом пути, временные кадры всегда удаляются.

    EN: Export the animation to video (or only inspect it when ``info`` is set).

    Args:
        config: Fully-resolved run configuration.
        driver: Automation driver; Playwright by default.
        encoder: Encoder collaborator; ffmpeg by default.
        registry: Timeline registry; built from ``config.locked_down`` by default.
        cancel_event: Checked between frames and before encoding.
        on_progress: Called as ``(phase, current, total)`` for "capture" and "encode".

    Raises:
        ExportError: Typed failure; the browser is closed and frames removed first.
    """
    driver = driver or PlaywrightDriver()
    encoder = encoder or FfmpegEncoder(config.ffmpeg)
    registry = registry or TimelineRegistry(locked_down=config.locked_down)
    show_bars = config.is_cli and not config.quiet

    url = page_url(config.url)
    log.info("%s", url)
    cookies = load_cookies(config.cookies, url=url) if config.cookies else None

    with SessionLease(driver, launch_options(config)) as lease:
        session = lease.session
        if cookies:
            session.set_cookies(cookies)
        navigate_with_retry(
            session,
            url,
            wait_until=config.wait_until,
            timeout=config.navigation_timeout,
            retries=config.navigation_retries,
            backoff=config.retry_backoff,
        )
        status_line("Browser", "OK")
        inject_custom_script(session, config.script)

        preflight = run_preflight(session, config, registry)
        if config.info:
            return InfoResult(
                duration=preflight.duration,
                frames=preflight.total_frames,
                framework=preflight.framework_version,
                timeline=config.timeline,
            )

        frame_range = FrameRange.resolve(
            preflight.total_frames, start=config.frame_start, end=config.frame_end,
        )
        strategy = build_strategy(
            config.advance, preflight.handle, total_frames=preflight.total_frames, fps=config.fps,
        )

        with CaptureSession() as store:
            log.info("Exporting animation frames")
            with tqdm(total=len(frame_range), disable=not show_bars, unit="frame") as bar:

                def _on_capture(update: CaptureProgress) -> None:
                    bar.update(1)
                    if on_progress is not None:
                        on_progress("capture", update.completed, update.total)

                capture = capture_frames(
                    session,
                    strategy,
                    frame_range,
                    store,
                    selector=None if config.whole_page else config.selector,
                    on_progress=_on_capture,
                    cancel_event=cancel_event,
                )

            # All frames exist on disk; the browser is not needed for encoding.
            lease.release()
            check_cancelled(cancel_event)

            geometry = read_frame_geometry(store.frame_path(0))
            job = build_encode_job(
                config, geometry, input_pattern=store.input_pattern, frame_count=capture.frame_count,
            )
            report_job(job, resolution=config.resolution, color=config.color)

            log.info("Rendering video")
            with tqdm(total=100, disable=not show_bars, unit="%") as bar:

                def _on_encode(update: EncodeProgress) -> None:
                    bar.update(update.percent - bar.n)
                    if on_progress is not None:
                        on_progress("encode", update.percent, 100.0)

                encoded = encode_frames(job, encoder, on_progress=_on_encode)

    status_line("Export", f"{capture.seconds:.2f}s")
    status_line("Render", f"{encoded.seconds:.2f}s")
    return RunResult(
        output_file=encoded.output_path,
        capture_seconds=capture.seconds,
        encode_seconds=encoded.seconds,
        frame_count=capture.frame_count,
        geometry=geometry,
    )


def run_cli(config: ExportConfig, **kwargs: object) -> int:
    """Run an export for the command line and return the process exit code.

    Failures are reported as a single failed status line; the cause is logged
    at debug level.
    """
    try:
        result = export_video(config, **kwargs)  # type: ignore[arg-type]
    except ExportError as exc:
        status_line(exc.label, exc.status, ok=False)
        log.debug("%s: %s", exc.code, exc)
        if exc.detail:
            log.debug("%s", exc.detail)
        return 1
    if isinstance(result, RunResult):
        log.info("Video successfully exported as %s", result.output_file)
    return 0
