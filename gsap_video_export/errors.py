"""Typed failures raised by the export pipeline.

Every failure is normalized to one of these classes where it is detected, so
callers only ever see an ``ExportError`` subclass carrying a stable ``code``.
"""

from __future__ import annotations

from typing import ClassVar


class ExportError(RuntimeError):
    """Base class for all terminal export failures."""

    code: ClassVar[str] = "ExportError"
    label: ClassVar[str] = "Export"

    def __init__(self, message: str = "", *, detail: str | None = None) -> None:
        super().__init__(message or self.code)
        self.detail = detail

    @property
    def status(self) -> str:
        """Short status text shown on the failed CLI line."""
        return "FAIL"


class ConfigError(ExportError, ValueError):
    code = "ConfigError"
    label = "Config"


class BrowserLaunchFailure(ExportError):
    code = "BrowserLaunchFailure"
    label = "Browser"


class NavigationFailure(ExportError):
    code = "NavigationFailure"
    label = "Browser"


class ScriptEvaluationFailure(ExportError):
    code = "ScriptEvaluationFailure"
    label = "Script"


class InvalidSelector(ExportError):
    code = "InvalidSelector"
    label = "Selector"


class FrameworkNotFound(ExportError):
    code = "FrameworkNotFound"
    label = "GSAP"


class TimelineNotFound(ExportError):
    code = "TimelineNotFound"
    label = "Timeline"


class ZeroDuration(ExportError):
    code = "ZeroDuration"
    label = "Duration"


class InfiniteDuration(ExportError):
    code = "InfiniteDuration"
    label = "Duration"

    @property
    def status(self) -> str:
        return "INFINITE"


class InvalidFrameRange(ExportError):
    code = "InvalidFrameRange"
    label = "Frames"


class CaptureFailure(ExportError):
    code = "CaptureFailure"
    label = "Capture"


class EncodeFailure(ExportError):
    code = "EncodeFailure"
    label = "Render"


class CookieFileError(ExportError):
    code = "CookieFileError"
    label = "Cookies"


class ExportTimeoutError(ExportError):
    """Navigation or an in-page evaluation exceeded its configured timeout."""

    code = "TimeoutError"
    label = "Timeout"


class Cancelled(ExportError):
    code = "Cancelled"
    label = "Export"

    @property
    def status(self) -> str:
        return "CANCELLED"
