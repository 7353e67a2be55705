"""Command line entry point: ``gsap-video-export <url>``."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Any

from gsap_video_export import __version__
from gsap_video_export.config import MODE_CLI, ExportConfig, load_config_file
from gsap_video_export.errors import ConfigError
from gsap_video_export.pipeline import run_cli
from gsap_video_export.utils.logging_utils import setup_logging


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="gsap-video-export",
        description="Export a GreenSock (GSAP) animation to video, frame by frame.",
        epilog="Options may also be set in a YAML file passed with --config; flags win.",
    )
    ap.add_argument("url", nargs="?", help="Page with the animation")
    ap.add_argument("--config", type=Path, help="YAML file with default options")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    browser = ap.add_argument_group("browser")
    browser.add_argument("-s", "--script", help="Custom script to run in the page before export")
    browser.add_argument("-S", "--selector", help="DOM selector to capture (default: document)")
    browser.add_argument("-t", "--timeline", help="GSAP timeline object (default: gsap)")
    browser.add_argument("-z", "--scale", type=float, help="Device scale factor (default: 1)")
    browser.add_argument("-V", "--viewport", help="Viewport size (default: 1920x1080)")
    browser.add_argument("-i", "--info", action="store_true", default=None, help="Info only")
    browser.add_argument("--frame-start", type=int, help="Start frame")
    browser.add_argument("--frame-end", type=int, help="End frame (exclusive)")
    browser.add_argument(
        "--chrome", action="store_true", default=None, help="Use the system installed Chrome",
    )
    browser.add_argument("--cookies", help="Cookies JSON file")
    browser.add_argument(
        "-a",
        "--advance",
        choices=("gsap", "timeweb"),
        help="Frame advance method (default: gsap)",
    )
    browser.add_argument(
        "--headless",
        action=argparse.BooleanOptionalAction,
        default=None,
        help="Headless mode (default: enabled)",
    )
    browser.add_argument("--navigation-timeout", type=float, help="Seconds (default: 60)")
    browser.add_argument("--evaluate-timeout", type=float, help="Seconds (default: 30)")
    browser.add_argument(
        "--navigation-retries", type=int, help="Retries after a failed page load (default: 2)",
    )
    browser.add_argument(
        "--locked-down",
        action="store_true",
        default=None,
        help="Only allow the global GSAP timeline",
    )

    video = ap.add_argument_group("video")
    video.add_argument("-p", "--color", help="Padding color, hex or 'auto' (default: auto)")
    video.add_argument("-c", "--codec", help="Video codec (default: libx264)")
    video.add_argument("-e", "--input-options", help="FFmpeg input options")
    video.add_argument("-E", "--output-options", help="FFmpeg output options")
    video.add_argument("-o", "--output", help="Filename (default: video.mp4)")
    video.add_argument("-f", "--fps", type=int, help="Framerate (default: 60)")
    video.add_argument("-v", "--resolution", help="Output resolution WxH or 'auto' (default: auto)")
    video.add_argument("--ffmpeg", help="ffmpeg binary (default: ffmpeg)")

    tool = ap.add_argument_group("tool")
    tool.add_argument("-q", "--verbose", action="store_true", default=None, help="Verbose output")
    tool.add_argument("--quiet", action="store_true", default=None, help="Only errors")
    return ap


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    values = vars(args).copy()
    values.pop("config", None)
    values["mode"] = MODE_CLI
    return values


def main(argv: list[str] | None = None) -> int:
    """Parse flags, resolve the configuration once and run the export."""
    ap = build_parser()
    args = ap.parse_args(argv)

    try:
        file_conf = load_config_file(args.config) if args.config else {}
        config = ExportConfig.from_mapping(file_conf, _cli_overrides(args))
    except ConfigError as exc:
        ap.error(str(exc))

    setup_logging(verbose=config.verbose, quiet=config.quiet)
    return run_cli(config)


if __name__ == "__main__":
    sys.exit(main())
