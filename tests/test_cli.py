"""Smoke tests for the CLI entrypoint."""

from __future__ import annotations

import json
import os
import subprocess
from pathlib import Path
from typing import Any

import pytest
from click.testing import CliRunner

from camfeed.cli import cli


def _env_with_home(tmp_path: Path) -> dict[str, str]:
    env = dict(os.environ)
    env["HOME"] = str(tmp_path / "home")
    return env


def test_cli_help_displays_commands() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["--help"])

    assert result.exit_code == 0
    assert "mock camera feeds" in result.output
    for command in ("classify", "convert", "check", "config"):
        assert command in result.output


def test_cli_classify_lists_classes() -> None:
    runner = CliRunner()
    result = runner.invoke(cli, ["classify", "clip.mp4", "photo.png", "notes.txt"])

    assert result.exit_code == 0
    assert "video" in result.output
    assert "image" in result.output
    assert "unrecognized" in result.output


def test_cli_convert_native_feed_json(tmp_path: Path) -> None:
    feed = tmp_path / "default.y4m"
    feed.write_bytes(b"YUV4MPEG2")
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["convert", str(feed), "--video-dir", str(tmp_path / "videos"), "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["feed"] == str(feed.resolve())
    assert payload["format"] == "native"


def test_cli_convert_unsupported_format_json(tmp_path: Path) -> None:
    notes = tmp_path / "notes.txt"
    notes.write_text("hello", encoding="utf-8")
    runner = CliRunner()

    result = runner.invoke(cli, ["convert", str(notes), "--json"], env=_env_with_home(tmp_path))

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "unsupported_format"
    assert payload["error"]["details"]["extension"] == ".txt"
    assert ".mp4" in payload["error"]["details"]["supported"]


def test_cli_convert_missing_source(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli, ["convert", str(tmp_path / "missing.mp4")], env=_env_with_home(tmp_path)
    )

    assert result.exit_code == 1
    assert "Source file not found" in result.output


def test_cli_convert_uses_encoder(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    clip = tmp_path / "clip.mp4"
    clip.write_bytes(b"mp4")
    calls: list[list[str]] = []

    def _run(args: list[str], **_: Any) -> subprocess.CompletedProcess[str]:
        calls.append(list(args))
        Path(args[-1]).write_bytes(b"feed")
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")

    monkeypatch.setattr("camfeed.media.converter.subprocess.run", _run)
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["convert", str(clip), "--video-dir", str(tmp_path / "videos"), "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 0
    payload = json.loads(result.output)
    assert payload["feed"].endswith(".mjpeg")
    assert Path(payload["feed"]).parent == (tmp_path / "videos").resolve() / ".cache"
    assert len(calls) == 1


def test_cli_check_reports_missing_encoder(tmp_path: Path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli,
        ["check", "--ffmpeg", str(tmp_path / "no-such-ffmpeg"), "--json"],
        env=_env_with_home(tmp_path),
    )

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "encoder_unavailable"
    assert "ffmpeg.org" in payload["error"]["message"]


def test_cli_rejects_unknown_log_level(tmp_path: Path) -> None:
    feed = tmp_path / "default.y4m"
    feed.write_bytes(b"YUV4MPEG2")
    env = _env_with_home(tmp_path)
    env["CAMFEED__LOGGING__LEVEL"] = "verbose"
    runner = CliRunner()

    result = runner.invoke(cli, ["convert", str(feed), "--json"], env=env)

    assert result.exit_code == 1
    payload = json.loads(result.output)
    assert payload["error"]["code"] == "config_error"
    assert "logging.level" in payload["error"]["message"]
