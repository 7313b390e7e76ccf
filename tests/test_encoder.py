"""Tests for the encoder availability probe."""

from __future__ import annotations

import subprocess
import sys
from pathlib import Path
from typing import Any

import pytest

from camfeed.media.encoder import (
    check_encoder_availability,
    installation_instructions,
    require_encoder,
)
from camfeed.media.errors import EncoderUnavailableError


def _runner(returncode: int = 0, stdout: str = "", stderr: str = ""):
    calls: list[list[str]] = []

    def run(args: list[str], **_: Any) -> subprocess.CompletedProcess[str]:
        calls.append(list(args))
        return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr=stderr)

    run.calls = calls  # type: ignore[attr-defined]
    return run


def _missing(args: list[str], **_: Any) -> subprocess.CompletedProcess[str]:
    raise FileNotFoundError(2, "No such file or directory", args[0])


def test_available_encoder_reports_version() -> None:
    runner = _runner(stdout="ffmpeg version 6.1.1 Copyright (c) 2000-2023 the FFmpeg developers")

    availability = check_encoder_availability("ffmpeg", runner=runner)

    assert availability.available is True
    assert availability.version == "6.1.1"
    assert availability.path == "ffmpeg"
    assert availability.error is None
    assert runner.calls == [["ffmpeg", "-version"]]  # type: ignore[attr-defined]


def test_unparseable_version_is_still_available() -> None:
    availability = check_encoder_availability(
        "/usr/local/bin/ffmpeg", runner=_runner(stdout="custom build")
    )

    assert availability.available is True
    assert availability.version is None
    assert availability.path == "/usr/local/bin/ffmpeg"


def test_missing_executable_is_unavailable() -> None:
    availability = check_encoder_availability("ffmpeg", runner=_missing)

    assert availability.available is False
    assert availability.path is None
    assert availability.error


def test_non_zero_exit_is_unavailable() -> None:
    availability = check_encoder_availability(
        "ffmpeg", runner=_runner(returncode=127, stderr="not found")
    )

    assert availability.available is False
    assert availability.error == "not found"


@pytest.mark.parametrize(
    ("platform", "expected"),
    [
        ("darwin", "brew install ffmpeg"),
        ("linux", "sudo apt-get install ffmpeg"),
        ("win32", "winget install FFmpeg"),
        ("sunos5", "Ensure ffmpeg is available in your PATH."),
    ],
)
def test_installation_instructions_per_platform(platform: str, expected: str) -> None:
    text = installation_instructions(platform)

    assert expected in text
    assert "https://ffmpeg.org/download.html" in text


def test_installation_instructions_default_to_host(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("camfeed.media.encoder.sys.platform", "darwin")

    assert "brew install ffmpeg" in installation_instructions()


def test_require_encoder_raises_with_guidance() -> None:
    with pytest.raises(EncoderUnavailableError) as excinfo:
        require_encoder("ffmpeg", runner=_missing, platform="linux")

    message = str(excinfo.value)
    assert "ffmpeg" in message
    assert "sudo apt-get install ffmpeg" in message


def test_require_encoder_returns_availability() -> None:
    availability = require_encoder("ffmpeg", runner=_runner(stdout="ffmpeg version 7.0"))

    assert availability.version == "7.0"


@pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell script")
def test_non_utf8_version_banner_is_still_available(tmp_path: Path) -> None:
    script = tmp_path / "ffmpeg"
    script.write_bytes(b"#!/bin/sh\nprintf 'ffmpeg version 6.0 \\377\\376 built\\n'\nexit 0\n")
    script.chmod(0o755)

    availability = check_encoder_availability(str(script))

    assert availability.available is True
    assert availability.version == "6.0"
