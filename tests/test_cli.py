"""Tests for the command line entry point."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import pytest

from gsap_video_export import cli
from gsap_video_export.config import DEFAULTS, ExportConfig

if TYPE_CHECKING:
    MonkeyPatch = pytest.MonkeyPatch


@pytest.fixture
def captured(monkeypatch: MonkeyPatch) -> list[ExportConfig]:
    seen: list[ExportConfig] = []

    def fake_run_cli(config: ExportConfig, **_kwargs: object) -> int:
        seen.append(config)
        return 0

    monkeypatch.setattr(cli, "run_cli", fake_run_cli)
    monkeypatch.setattr(cli, "setup_logging", lambda **_kw: None)
    return seen


def test_main_builds_cli_config(captured: list[ExportConfig]) -> None:
    code = cli.main([
        "https://example.test/anim.html",
        "-S", "#stage",
        "-t", "myTimeline",
        "-f", "30",
        "-V", "1280x720",
        "-z", "2",
        "-v", "auto",
        "-p", "ffffff",
        "--frame-start", "5",
        "--frame-end", "15",
        "-a", "timeweb",
        "--no-headless",
        "-o", "clip.mp4",
    ])
    assert code == 0
    config = captured[0]
    assert config.mode == "cli"
    assert config.is_cli
    assert config.selector == "#stage"
    assert config.timeline == "myTimeline"
    assert config.fps == 30
    assert (config.viewport.width, config.viewport.height, config.viewport.scale) == (1280, 720, 2.0)
    assert config.color == "#FFFFFF"
    assert (config.frame_start, config.frame_end) == (5, 15)
    assert config.advance == "timeweb"
    assert config.headless is False
    assert config.output == Path("clip.mp4")


def test_unset_flags_keep_defaults(captured: list[ExportConfig]) -> None:
    cli.main(["https://example.test"])
    config = captured[0]
    assert config.fps == 60
    assert config.headless is True
    assert config.info is False
    assert config.output_options == '"-pix_fmt yuv420p -crf 18"'


def test_flags_override_config_file(captured: list[ExportConfig], tmp_path: Path) -> None:
    conf = tmp_path / "export.yaml"
    conf.write_text("url: https://from-file.test\nfps: 24\ncodec: libx265\n", encoding="utf-8")
    cli.main(["--config", str(conf), "-f", "50"])
    config = captured[0]
    assert config.url == "https://from-file.test"
    assert config.fps == 50
    assert config.codec == "libx265"


def test_missing_url_is_a_usage_error(captured: list[ExportConfig]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main([])
    assert excinfo.value.code == 2
    assert captured == []


def test_invalid_advance_choice_is_rejected(captured: list[ExportConfig]) -> None:
    with pytest.raises(SystemExit):
        cli.main(["https://example.test", "-a", "realtime"])


def test_exit_code_comes_from_run_cli(monkeypatch: MonkeyPatch) -> None:
    monkeypatch.setattr(cli, "run_cli", lambda _config: 1)
    monkeypatch.setattr(cli, "setup_logging", lambda **_kw: None)
    assert cli.main(["https://example.test"]) == 1


def test_bare_url_runs_with_default_scale(captured: list[ExportConfig]) -> None:
    assert cli.main(["https://example.test"]) == 0
    assert captured[0].viewport.scale == 1.0


def test_scale_from_config_file(captured: list[ExportConfig], tmp_path: Path) -> None:
    conf = tmp_path / "export.yaml"
    conf.write_text("url: https://from-file.test\nscale: 1.5\n", encoding="utf-8")
    assert cli.main(["--config", str(conf)]) == 0
    assert captured[0].viewport.scale == 1.5


def test_every_flag_maps_to_a_config_option() -> None:
    dests = set(vars(cli.build_parser().parse_args(["https://example.test"])))
    assert dests - {"config"} <= set(DEFAULTS) | {"url"}


def test_malformed_encoder_options_are_a_usage_error(captured: list[ExportConfig]) -> None:
    with pytest.raises(SystemExit) as excinfo:
        cli.main(["https://example.test", "-E", '-metadata title="oops'])
    assert excinfo.value.code == 2
    assert captured == []
