"""Media conversion errors."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class CamfeedMediaError(Exception):
    """Base exception for feed conversion and encoder operations."""


class SourceNotFoundError(CamfeedMediaError, FileNotFoundError):
    """Raised when a source media file does not exist."""

    def __init__(self, path: Path | str, message: str | None = None) -> None:
        self.path = Path(path)
        super().__init__(message or f"Source file not found: {self.path}")


class UnsupportedFormatError(CamfeedMediaError):
    """Raised when a file extension is outside the supported allow-list."""

    def __init__(self, path: Path | str, extension: str, supported: Sequence[str]) -> None:
        self.path = Path(path)
        self.extension = extension
        self.supported = tuple(supported)
        shown = extension or "<none>"
        super().__init__(
            f'Unsupported format "{shown}" for file "{self.path}". '
            f"Supported formats: {', '.join(self.supported)}"
        )


class EncoderUnavailableError(CamfeedMediaError):
    """Raised when the encoder executable cannot be run."""


class ConversionError(CamfeedMediaError):
    """Raised when the encoder runs but fails to produce a feed."""

    def __init__(self, source: Path | str, encoder_output: str) -> None:
        self.source = Path(source)
        self.encoder_output = encoder_output
        super().__init__(f"Failed to convert {self.source}: {encoder_output}")


__all__ = [
    "CamfeedMediaError",
    "SourceNotFoundError",
    "UnsupportedFormatError",
    "EncoderUnavailableError",
    "ConversionError",
]
