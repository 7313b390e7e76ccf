"""Extension-based classification of camera feed sources."""

from __future__ import annotations

from enum import Enum
from pathlib import Path
from typing import Optional


class FormatClass(str, Enum):
    """Conversion class of a media file."""

    NATIVE = "native"
    CONVERTIBLE_VIDEO = "video"
    CONVERTIBLE_IMAGE = "image"
    UNRECOGNIZED = "unrecognized"


# GIFs are decoded as video streams so animated frames survive conversion.
_EXTENSION_TO_CLASS: dict[str, FormatClass] = {
    ".mjpeg": FormatClass.NATIVE,
    ".y4m": FormatClass.NATIVE,
    ".mp4": FormatClass.CONVERTIBLE_VIDEO,
    ".webm": FormatClass.CONVERTIBLE_VIDEO,
    ".avi": FormatClass.CONVERTIBLE_VIDEO,
    ".mov": FormatClass.CONVERTIBLE_VIDEO,
    ".gif": FormatClass.CONVERTIBLE_VIDEO,
    ".png": FormatClass.CONVERTIBLE_IMAGE,
    ".jpg": FormatClass.CONVERTIBLE_IMAGE,
    ".jpeg": FormatClass.CONVERTIBLE_IMAGE,
    ".bmp": FormatClass.CONVERTIBLE_IMAGE,
}

SUPPORTED_EXTENSIONS: tuple[str, ...] = tuple(_EXTENSION_TO_CLASS)


def extension_of(path: Path | str) -> str:
    """Return the lower-cased extension of ``path`` including the leading dot."""
    return Path(path).suffix.lower()


def classify(path: Path | str) -> FormatClass:
    """Return the format class for ``path`` based solely on its extension.

    Unknown or missing extensions classify as `FormatClass.UNRECOGNIZED`.
    """
    return _EXTENSION_TO_CLASS.get(extension_of(path), FormatClass.UNRECOGNIZED)


def requires_conversion(path: Path | str) -> bool:
    """Return True when ``path`` must be transcoded before the browser can read it."""
    return classify(path) in (FormatClass.CONVERTIBLE_VIDEO, FormatClass.CONVERTIBLE_IMAGE)


def native_format_for(path: Path | str) -> Optional[str]:
    """Return `mjpeg` or `y4m` for native feeds, otherwise None."""
    if classify(path) is not FormatClass.NATIVE:
        return None
    return extension_of(path).lstrip(".")


__all__ = [
    "FormatClass",
    "SUPPORTED_EXTENSIONS",
    "classify",
    "extension_of",
    "native_format_for",
    "requires_conversion",
]
