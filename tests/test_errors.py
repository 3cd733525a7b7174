"""Tests for error codes and user-facing formatting."""

from __future__ import annotations

from pathlib import Path

from palettesmith.errors import (
    ERROR_MESSAGES,
    ErrorCode,
    PluginLoadError,
    classify_os_error,
    format_error_for_user,
)


def test_every_code_has_a_default_message() -> None:
    assert set(ERROR_MESSAGES) == set(ErrorCode)


def test_default_message_and_to_dict() -> None:
    error = PluginLoadError(ErrorCode.SPEC_MISSING, path=Path("/plugins/kitty/spec.json"), details={"id": "kitty"})
    assert error.message == ERROR_MESSAGES[ErrorCode.SPEC_MISSING]
    assert error.to_dict() == {
        "code": "SPEC_MISSING",
        "message": ERROR_MESSAGES[ErrorCode.SPEC_MISSING],
        "path": "/plugins/kitty/spec.json",
        "details": {"id": "kitty"},
    }
    assert str(error).endswith("(/plugins/kitty/spec.json) [id=kitty]")


def test_classify_os_error() -> None:
    assert classify_os_error(FileNotFoundError()) is ErrorCode.FILE_NOT_FOUND
    assert classify_os_error(PermissionError()) is ErrorCode.FILE_ACCESS_DENIED
    assert classify_os_error(UnicodeDecodeError("utf-8", b"\xff", 0, 1, "bad")) is ErrorCode.FILE_NOT_TEXT
    assert classify_os_error(IsADirectoryError()) is ErrorCode.PATH_INVALID


def test_format_error_for_user() -> None:
    error = PluginLoadError(ErrorCode.MANIFEST_INVALID, "bad manifest", path=Path("/x/plugin.json"))
    assert format_error_for_user(error) == "bad manifest (plugin.json)"
    assert format_error_for_user(ValueError("boom")) == "ValueError: boom"
