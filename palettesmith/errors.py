"""Error codes and error handling utilities for Palettesmith."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path
from typing import Any


class ErrorCode(Enum):
    """Standardized error codes for Palettesmith operations."""

    # File system errors
    FILE_NOT_FOUND = auto()
    FILE_ACCESS_DENIED = auto()
    FILE_TOO_LARGE = auto()
    FILE_NOT_TEXT = auto()
    PATH_INVALID = auto()

    # Plugin loading errors
    MANIFEST_MISSING = auto()
    MANIFEST_INVALID = auto()
    SPEC_MISSING = auto()
    SPEC_INVALID = auto()
    DUPLICATE_PLUGIN = auto()
    PLUGIN_DIR_UNREADABLE = auto()

    # Template errors
    TEMPLATE_UNREADABLE = auto()
    TEMPLATE_SYNTAX = auto()
    TEMPLATE_RENDER_FAILED = auto()

    # Color errors
    COLOR_EMPTY = auto()
    COLOR_INVALID_CHARACTERS = auto()
    COLOR_INVALID_LENGTH = auto()
    COLOR_UNSUPPORTED_FORMAT = auto()

    # Configuration errors
    CONFIG_INVALID = auto()
    CONFIG_PERMISSION_DENIED = auto()
    PRESET_UNKNOWN = auto()


ERROR_MESSAGES: dict[ErrorCode, str] = {
    ErrorCode.FILE_NOT_FOUND: "The file was not found. It may have been moved or deleted.",
    ErrorCode.FILE_ACCESS_DENIED: "Access denied. Check file permissions.",
    ErrorCode.FILE_TOO_LARGE: "The file is larger than the allowed limit.",
    ErrorCode.FILE_NOT_TEXT: "The file is not valid UTF-8 text.",
    ErrorCode.PATH_INVALID: "The specified path is invalid or inaccessible.",

    ErrorCode.MANIFEST_MISSING: "Plugin manifest not found.",
    ErrorCode.MANIFEST_INVALID: "Plugin manifest is malformed.",
    ErrorCode.SPEC_MISSING: "Plugin spec file not found.",
    ErrorCode.SPEC_INVALID: "Plugin spec file is malformed.",
    ErrorCode.DUPLICATE_PLUGIN: "Another plugin already uses this ID.",
    ErrorCode.PLUGIN_DIR_UNREADABLE: "The plugins directory could not be listed.",

    ErrorCode.TEMPLATE_UNREADABLE: "The template file could not be read.",
    ErrorCode.TEMPLATE_SYNTAX: "The template contains a syntax error.",
    ErrorCode.TEMPLATE_RENDER_FAILED: "The template could not be rendered.",

    ErrorCode.COLOR_EMPTY: "Color value cannot be empty.",
    ErrorCode.COLOR_INVALID_CHARACTERS: "Color value contains invalid characters.",
    ErrorCode.COLOR_INVALID_LENGTH: "Hex colors need exactly 3, 6 or 8 digits.",
    ErrorCode.COLOR_UNSUPPORTED_FORMAT: "Unsupported color format.",

    ErrorCode.CONFIG_INVALID: "Configuration is invalid. Reset to defaults?",
    ErrorCode.CONFIG_PERMISSION_DENIED: "Cannot save configuration. Check folder permissions.",
    ErrorCode.PRESET_UNKNOWN: "Unknown preset. Supported presets are 'generic' and 'omarchy'.",
}


@dataclass
class PalettesmithError(Exception):
    """Base exception for Palettesmith with error code and context."""

    code: ErrorCode
    message: str = ""
    path: Path | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.message:
            self.message = ERROR_MESSAGES.get(self.code, "An unexpected error occurred.")

    def __str__(self) -> str:
        parts = [self.message]
        if self.path:
            parts.append(f" ({self.path})")
        if self.details:
            details_str = " | ".join(f"{k}={v}" for k, v in self.details.items())
            parts.append(f" [{details_str}]")
        return "".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for logging or JSON output."""
        return {
            "code": self.code.name,
            "message": self.message,
            "path": str(self.path) if self.path else None,
            "details": self.details,
        }


class PluginLoadError(PalettesmithError):
    """A plugin manifest or spec could not be loaded."""


class TemplateCompileError(PalettesmithError):
    """A template file is unreadable or has invalid syntax."""


class RenderError(PalettesmithError):
    """A compiled template failed while executing."""


class ColorParseError(PalettesmithError):
    """Color text could not be parsed."""


class ConfigError(PalettesmithError):
    """Application or theme configuration could not be loaded or applied."""


def classify_os_error(exc: Exception) -> ErrorCode:
    """Map a filesystem exception onto an error code."""
    if isinstance(exc, FileNotFoundError):
        return ErrorCode.FILE_NOT_FOUND
    if isinstance(exc, PermissionError):
        return ErrorCode.FILE_ACCESS_DENIED
    if isinstance(exc, UnicodeDecodeError):
        return ErrorCode.FILE_NOT_TEXT
    return ErrorCode.PATH_INVALID


def format_error_for_user(error: PalettesmithError | Exception) -> str:
    """Format an error as a single line for reports and the CLI."""
    if isinstance(error, PalettesmithError):
        text = error.message
        if error.path:
            text = f"{text} ({error.path.name})"
        return text
    return f"{type(error).__name__}: {error}"
