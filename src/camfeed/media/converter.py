"""Conversion of arbitrary media into native camera feeds with a content cache.

The converter turns videos and still images into a container the browser's
fake capture device can read directly (MJPEG or Y4M). Converted feeds are
stored under ``<video_directory>/.cache`` by content fingerprint so repeated
requests for the same bytes never re-run the encoder. Output is always
written to a temporary file first and renamed into place, so the final path
either does not exist or holds a complete feed.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from camfeed.config.models import ConversionSettings, ImageMode, OutputFormat

from .encoder import DEFAULT_FFMPEG, Runner
from .errors import ConversionError, SourceNotFoundError, UnsupportedFormatError
from .fingerprint import FingerprintComputer
from .formats import SUPPORTED_EXTENSIONS, FormatClass, classify, extension_of

LOGGER = logging.getLogger(__name__)

CACHE_DIRNAME = ".cache"
TEMP_SUFFIX = ".tmp"

# JPEG uses full-range YUV; RGBA sources come out green without this.
_PIXEL_FORMATS: dict[str, str] = {"mjpeg": "yuvj420p", "y4m": "yuv420p"}
_MJPEG_QUALITY = "2"


class ConverterOptions(BaseModel):
    """Immutable settings for a `FormatConverter`.

    Attributes:
        video_directory: Directory that hosts the `.cache` subdirectory.
        ffmpeg_path: Encoder executable.
        cache_enabled: Whether converted feeds are cached by fingerprint.
        output_format: Target native container.
        image_mode: `still` for a single frame, `loop` for a synthesized clip.
        image_frame_rate: Frame rate of synthesized image clips.
        image_duration: Length in seconds of synthesized image clips.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    video_directory: Path
    ffmpeg_path: str = DEFAULT_FFMPEG
    cache_enabled: bool = True
    output_format: OutputFormat = "mjpeg"
    image_mode: ImageMode = "still"
    image_frame_rate: int = Field(default=30, gt=0)
    image_duration: int = Field(default=5, gt=0)

    @classmethod
    def from_settings(cls, settings: ConversionSettings) -> "ConverterOptions":
        """Build converter options from the persisted conversion settings."""
        return cls.model_validate(settings.model_dump(mode="python"))


class FormatConverter:
    """Convert source media into native feeds, reusing cached conversions."""

    def __init__(
        self,
        options: ConverterOptions,
        *,
        runner: Runner | None = None,
        fingerprints: FingerprintComputer | None = None,
    ) -> None:
        self._options = options
        self._cache_dir = Path(options.video_directory).expanduser().resolve() / CACHE_DIRNAME
        self._runner = runner or subprocess.run
        self._fingerprints = fingerprints or FingerprintComputer()

    @property
    def options(self) -> ConverterOptions:
        """Return the immutable converter options."""
        return self._options

    @property
    def cache_dir(self) -> Path:
        """Return the directory holding cached conversions."""
        return self._cache_dir

    def initialize(self) -> Optional[Path]:
        """Create the cache directory when caching is enabled.

        Returns:
            Optional[Path]: The cache directory, or None when caching is disabled.
        """
        if not self._options.cache_enabled:
            return None
        self._cache_dir.mkdir(parents=True, exist_ok=True)
        return self._cache_dir

    def get_output_extension(self) -> str:
        """Return the file extension of the configured output container."""
        return f".{self._options.output_format}"

    def cache_path_for(self, source: Path | str) -> Path:
        """Return the fingerprint-addressed cache path for an existing source."""
        return self._cache_file(self._fingerprints.compute(self._resolve(source)))

    def get_cached_path(self, source: Path | str) -> Optional[Path]:
        """Return the cached conversion of ``source`` if one exists.

        Never raises for a missing source; returns None whenever caching is
        disabled, the source is absent, or no entry exists yet.
        """
        if not self._options.cache_enabled:
            return None
        absolute = self._resolve(source)
        if not absolute.is_file():
            return None
        cached = self._cache_file(self._fingerprints.compute(absolute))
        return cached if cached.exists() else None

    def convert(self, source: Path | str) -> Path:
        """Return a path to a native feed for ``source``, converting on a cache miss.

        Args:
            source: Video, image, or native feed to prepare.

        Returns:
            Path: The resolved source when already native, otherwise the converted feed.

        Raises:
            SourceNotFoundError: If ``source`` does not exist.
            UnsupportedFormatError: If the extension is not in the allow-list.
            ConversionError: If the encoder fails.
        """
        absolute = self._resolve(source)
        if not absolute.is_file():
            raise SourceNotFoundError(absolute)

        format_class = classify(absolute)
        if format_class is FormatClass.NATIVE:
            return absolute
        if format_class is FormatClass.UNRECOGNIZED:
            raise UnsupportedFormatError(absolute, extension_of(absolute), SUPPORTED_EXTENSIONS)

        fingerprint = self._fingerprints.compute(absolute)
        if self._options.cache_enabled:
            destination = self._cache_file(fingerprint)
            if destination.exists():
                LOGGER.debug("Cache hit for %s -> %s", absolute, destination)
                return destination
        else:
            destination = absolute.with_name(absolute.stem + self.get_output_extension())

        LOGGER.info("Converting %s to %s", absolute, destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        temp_path = destination.with_name(destination.name + TEMP_SUFFIX)
        if format_class is FormatClass.CONVERTIBLE_VIDEO:
            args = self._video_args(absolute, temp_path)
        else:
            args = self._image_args(absolute, temp_path)

        try:
            self._run_encoder(args, absolute)
            if not temp_path.exists():
                raise ConversionError(absolute, f"Encoder produced no output at {temp_path}")
            os.replace(temp_path, destination)
        except BaseException:
            self._discard(temp_path)
            raise
        return destination

    # Internal helpers -------------------------------------------------

    def _resolve(self, source: Path | str) -> Path:
        return Path(source).expanduser().resolve()

    def _cache_file(self, fingerprint: str) -> Path:
        return self._cache_dir / f"{fingerprint}{self.get_output_extension()}"

    def _output_args(self, output: Path) -> list[str]:
        fmt = self._options.output_format
        args = ["-pix_fmt", _PIXEL_FORMATS[fmt], "-f", fmt]
        if fmt == "mjpeg":
            args.extend(["-q:v", _MJPEG_QUALITY])
        args.extend(["-y", str(output)])
        return args

    def _video_args(self, source: Path, output: Path) -> list[str]:
        return [self._options.ffmpeg_path, "-i", str(source), *self._output_args(output)]

    def _image_args(self, source: Path, output: Path) -> list[str]:
        if self._options.image_mode == "loop":
            return [
                self._options.ffmpeg_path,
                "-loop",
                "1",
                "-i",
                str(source),
                "-t",
                str(self._options.image_duration),
                "-r",
                str(self._options.image_frame_rate),
                *self._output_args(output),
            ]
        # A single frame is enough; the browser replays the feed in a loop.
        return [
            self._options.ffmpeg_path,
            "-i",
            str(source),
            "-frames:v",
            "1",
            *self._output_args(output),
        ]

    def _run_encoder(self, args: list[str], source: Path) -> None:
        LOGGER.debug("Running encoder: %s", args)
        try:
            completed = self._runner(
                args,
                capture_output=True,
                text=True,
                errors="replace",
                check=False,
            )
        except OSError as exc:
            raise ConversionError(source, str(exc)) from exc

        if completed.returncode != 0:
            stderr = (completed.stderr or "").strip()
            message = stderr or f"Command failed with exit status {completed.returncode}: {args[0]}"
            raise ConversionError(source, message)

    def _discard(self, temp_path: Path) -> None:
        try:
            temp_path.unlink(missing_ok=True)
        except OSError as exc:  # pragma: no cover
            LOGGER.warning("Could not remove temporary file %s: %s", temp_path, exc)


__all__ = [
    "CACHE_DIRNAME",
    "TEMP_SUFFIX",
    "ConverterOptions",
    "FormatConverter",
]
