"""Encoder (FFmpeg) availability checks and installation guidance."""

from __future__ import annotations

import logging
import re
import subprocess
import sys
from typing import Callable, Optional

from pydantic import BaseModel

from .errors import EncoderUnavailableError

LOGGER = logging.getLogger(__name__)

DEFAULT_FFMPEG = "ffmpeg"

Runner = Callable[..., "subprocess.CompletedProcess[str]"]

_VERSION_PATTERN = re.compile(r"ffmpeg version (\S+)")

_INSTALL_INSTRUCTIONS = {
    "darwin": (
        "FFmpeg is required but not found. Install it using:\n"
        "  brew install ffmpeg\n"
        "\n"
        "Or download from: https://ffmpeg.org/download.html"
    ),
    "linux": (
        "FFmpeg is required but not found. Install it using:\n"
        "  Ubuntu/Debian: sudo apt-get install ffmpeg\n"
        "  Fedora: sudo dnf install ffmpeg\n"
        "  Arch: sudo pacman -S ffmpeg\n"
        "\n"
        "Or download from: https://ffmpeg.org/download.html"
    ),
    "win32": (
        "FFmpeg is required but not found. Install it using:\n"
        "  winget install FFmpeg\n"
        "  OR\n"
        "  choco install ffmpeg\n"
        "\n"
        "Or download from: https://ffmpeg.org/download.html\n"
        "After downloading, add the bin folder to your PATH."
    ),
}

_GENERIC_INSTRUCTIONS = (
    "FFmpeg is required but not found.\n"
    "Download from: https://ffmpeg.org/download.html\n"
    "Ensure ffmpeg is available in your PATH."
)


class EncoderAvailability(BaseModel):
    """Result of probing the encoder executable.

    Attributes:
        available: Whether the encoder ran successfully.
        path: Executable that was probed, when available.
        version: Self-reported version string; informational only.
        error: Failure description when unavailable.
    """

    available: bool
    path: Optional[str] = None
    version: Optional[str] = None
    error: Optional[str] = None


def check_encoder_availability(
    ffmpeg_path: str = DEFAULT_FFMPEG,
    *,
    runner: Runner = subprocess.run,
) -> EncoderAvailability:
    """Run ``ffmpeg -version`` and report whether the encoder can be executed.

    A missing version string does not make the encoder unavailable; only a
    failure to execute or a non-zero exit status does.
    """
    try:
        completed = runner(
            [ffmpeg_path, "-version"],
            capture_output=True,
            text=True,
            errors="replace",
            check=False,
        )
    except OSError as exc:
        LOGGER.debug("Encoder probe for %s failed to execute: %s", ffmpeg_path, exc)
        return EncoderAvailability(available=False, error=str(exc))

    if completed.returncode != 0:
        detail = (completed.stderr or "").strip() or f"exit status {completed.returncode}"
        LOGGER.debug("Encoder probe for %s exited with an error: %s", ffmpeg_path, detail)
        return EncoderAvailability(available=False, error=detail)

    output = completed.stdout or completed.stderr or ""
    match = _VERSION_PATTERN.search(output)
    version = match.group(1) if match else None
    LOGGER.debug("Encoder %s available (version %s)", ffmpeg_path, version or "unknown")
    return EncoderAvailability(available=True, path=ffmpeg_path, version=version)


def installation_instructions(platform: str | None = None) -> str:
    """Return FFmpeg installation guidance for ``platform`` (defaults to the host)."""
    key = platform if platform is not None else sys.platform
    return _INSTALL_INSTRUCTIONS.get(key, _GENERIC_INSTRUCTIONS)


def require_encoder(
    ffmpeg_path: str = DEFAULT_FFMPEG,
    *,
    runner: Runner = subprocess.run,
    platform: str | None = None,
) -> EncoderAvailability:
    """Return the probe result, raising when the encoder cannot be executed.

    Raises:
        EncoderUnavailableError: If the encoder is missing or fails to run.
    """
    availability = check_encoder_availability(ffmpeg_path, runner=runner)
    if not availability.available:
        guidance = installation_instructions(platform)
        raise EncoderUnavailableError(
            f"Encoder '{ffmpeg_path}' is unavailable ({availability.error}).\n\n{guidance}"
        )
    return availability


__all__ = [
    "DEFAULT_FFMPEG",
    "EncoderAvailability",
    "check_encoder_availability",
    "installation_instructions",
    "require_encoder",
]
