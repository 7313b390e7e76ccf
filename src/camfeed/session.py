"""Per-worker camera feed sessions for browser test runners.

This module holds the runner-agnostic glue around `FormatConverter`: it
prepares the video directory, provisions one feed file per worker, appends
the Chromium fake-capture flags to typed capabilities, and swaps a worker's
feed at runtime. It never holds a reference to a browser or runner object;
the integrating test runner calls into it and owns any browser refresh.
"""

from __future__ import annotations

import logging
import os
import re
import shutil
import subprocess
from pathlib import Path
from typing import Any, Iterable, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from camfeed.config.exceptions import ConfigError
from camfeed.config.models import ConversionSettings, ImageMode, OutputFormat
from camfeed.media.converter import TEMP_SUFFIX, ConverterOptions, FormatConverter
from camfeed.media.encoder import DEFAULT_FFMPEG, Runner, require_encoder
from camfeed.media.errors import SourceNotFoundError
from camfeed.media.formats import native_format_for, requires_conversion

LOGGER = logging.getLogger(__name__)

FAKE_CAPTURE_FLAG = "--use-file-for-fake-video-capture"
_FAKE_CAPTURE_PATTERN = re.compile(re.escape(FAKE_CAPTURE_FLAG) + r"=(\S+)")
_MEDIA_STREAM_FLAGS = (
    "--use-fake-device-for-media-stream",
    "--use-fake-ui-for-media-stream",
)


class CameraServiceOptions(BaseModel):
    """Validated options for a camera feed session.

    Attributes:
        default_camera_feed: Feed each worker starts with.
        video_directory: Directory holding per-worker feeds and the cache.
        ffmpeg_path: Encoder executable.
        cache_enabled: Whether converted feeds are cached by fingerprint.
        output_format: Native container for converted feeds.
        image_mode: Image conversion mode (`still` or `loop`).
        image_frame_rate: Frame rate for looped image clips.
        image_duration: Duration in seconds for looped image clips.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    default_camera_feed: str = Field(min_length=1)
    video_directory: str = Field(min_length=1)
    ffmpeg_path: str = DEFAULT_FFMPEG
    cache_enabled: bool = True
    output_format: OutputFormat = "mjpeg"
    image_mode: ImageMode = "still"
    image_frame_rate: int = Field(default=30, gt=0)
    image_duration: int = Field(default=5, gt=0)

    @classmethod
    def parse(cls, data: Mapping[str, Any]) -> "CameraServiceOptions":
        """Validate raw options, raising `ConfigError` on missing or invalid values."""
        try:
            return cls.model_validate(dict(data))
        except ValidationError as exc:
            raise ConfigError(
                "Please configure a default camera feed path (/path/to/default.mjpeg) "
                f"and a video directory: {exc}"
            ) from exc

    @classmethod
    def from_settings(
        cls, default_camera_feed: str, settings: ConversionSettings
    ) -> "CameraServiceOptions":
        """Combine persisted conversion settings with a default feed."""
        return cls.parse({"default_camera_feed": default_camera_feed, **settings.model_dump()})

    def converter_options(self) -> ConverterOptions:
        """Return the converter options implied by these session options."""
        data = self.model_dump(exclude={"default_camera_feed"})
        return ConverterOptions.model_validate(data)


class ChromeOptions(BaseModel):
    """The `goog:chromeOptions` capability with an explicit argument list."""

    model_config = ConfigDict(extra="allow", frozen=True)

    args: Optional[List[str]] = None


class BrowserCapabilities(BaseModel):
    """Typed subset of WebDriver capabilities touched by camera sessions."""

    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    browser_name: Optional[str] = Field(default=None, alias="browserName")
    chrome_options: Optional[ChromeOptions] = Field(default=None, alias="goog:chromeOptions")

    def is_chromium(self) -> bool:
        """Return True for Chrome and Chromium based browsers."""
        return "chrom" in (self.browser_name or "").lower()

    def with_args(self, args: Iterable[str]) -> "BrowserCapabilities":
        """Return a copy whose Chrome options carry ``args`` after any existing arguments."""
        chrome = self.chrome_options or ChromeOptions()
        merged = [*(chrome.args or []), *args]
        return self.model_copy(
            update={"chrome_options": chrome.model_copy(update={"args": merged})}
        )

    def to_dict(self) -> dict[str, Any]:
        """Return the WebDriver wire representation."""
        return self.model_dump(by_alias=True, exclude_none=True)


def find_feed_path(capabilities: BrowserCapabilities) -> Optional[Path]:
    """Return the fake-capture file configured in ``capabilities``, if any."""
    if capabilities.chrome_options is None:
        return None
    for arg in capabilities.chrome_options.args or []:
        match = _FAKE_CAPTURE_PATTERN.search(arg)
        if match:
            return Path(match.group(1))
    return None


class CameraSession:
    """Provision and swap per-worker camera feeds."""

    def __init__(
        self,
        options: CameraServiceOptions,
        *,
        converter: FormatConverter | None = None,
        runner: Runner = subprocess.run,
    ) -> None:
        self._options = options
        self._video_dir = Path(options.video_directory).expanduser().resolve()
        self._runner = runner
        self._converter = converter or FormatConverter(options.converter_options(), runner=runner)

    @property
    def converter(self) -> FormatConverter:
        """Return the converter backing this session."""
        return self._converter

    @property
    def video_directory(self) -> Path:
        """Return the resolved video directory."""
        return self._video_dir

    def prepare(self) -> Path:
        """Create the video directory and verify the encoder when it will be needed.

        Raises:
            EncoderUnavailableError: If the default feed needs conversion and
                the encoder cannot be executed.
        """
        self._video_dir.mkdir(parents=True, exist_ok=True)
        if requires_conversion(self._options.default_camera_feed):
            availability = require_encoder(
                self._converter.options.ffmpeg_path, runner=self._runner
            )
            LOGGER.info("Using encoder %s (version %s)", availability.path, availability.version)
        self._converter.initialize()
        return self._video_dir

    def feed_path(self, worker_id: str, extension: str | None = None) -> Path:
        """Return the session feed path for ``worker_id``."""
        suffix = extension or self._converter.get_output_extension()
        return self._video_dir / f"{worker_id}{suffix}"

    def start_worker(
        self,
        worker_id: str,
        capabilities: BrowserCapabilities | Mapping[str, Any],
    ) -> BrowserCapabilities:
        """Provision the default feed for a worker and wire the capture flags.

        Args:
            worker_id: Identifier of the runner worker (used as the feed file name).
            capabilities: Capabilities requested for the worker's browser.

        Returns:
            BrowserCapabilities: Capabilities with the fake media flags appended, or
            the original capabilities for browsers without fake capture support.
        """
        if not isinstance(capabilities, BrowserCapabilities):
            capabilities = BrowserCapabilities.model_validate(dict(capabilities))

        if not capabilities.is_chromium():
            LOGGER.info(
                "Injecting camera source only supported in Chrome browsers "
                "(current browserName: %s)",
                capabilities.browser_name,
            )
            return capabilities

        feed = self._converter.convert(self._options.default_camera_feed)
        container = native_format_for(feed) or self._converter.options.output_format
        session_feed = self.feed_path(worker_id, f".{container}")
        _replace_contents(feed, session_feed)
        LOGGER.debug("Worker %s feed written to %s", worker_id, session_feed)

        return capabilities.with_args([*_MEDIA_STREAM_FLAGS, f"{FAKE_CAPTURE_FLAG}={session_feed}"])

    def change_camera_source(self, feed_path: Path | str, source: Path | str) -> Path:
        """Replace the bytes of an active session feed with a converted ``source``.

        Raises:
            SourceNotFoundError: If the session feed or the new source is missing.
            UnsupportedFormatError: If ``source`` has an unsupported extension.
            ConversionError: If the encoder fails.
        """
        target = Path(feed_path).expanduser().resolve()
        if not target.exists():
            raise SourceNotFoundError(target, f"Default camera feed {target} does not exist")

        candidate = Path(source).expanduser().resolve()
        if not candidate.exists():
            raise SourceNotFoundError(
                candidate, f"New source camera feed {candidate} does not exist"
            )

        feed = self._converter.convert(candidate)
        if native_format_for(feed) != native_format_for(target):
            LOGGER.warning(
                "Feed %s is %s but session file %s expects %s",
                feed,
                feed.suffix,
                target,
                target.suffix,
            )
        _replace_contents(feed, target)
        return target

    def change_camera_source_for(
        self, capabilities: BrowserCapabilities, source: Path | str
    ) -> Optional[Path]:
        """Swap the feed configured in ``capabilities``; no-op when none is configured."""
        feed_path = find_feed_path(capabilities)
        if feed_path is None:
            return None
        return self.change_camera_source(feed_path, source)


def _replace_contents(source: Path, target: Path) -> None:
    temp_path = target.with_name(target.name + TEMP_SUFFIX)
    try:
        shutil.copyfile(source, temp_path)
        os.replace(temp_path, target)
    except BaseException:
        temp_path.unlink(missing_ok=True)
        raise


__all__ = [
    "FAKE_CAPTURE_FLAG",
    "BrowserCapabilities",
    "CameraServiceOptions",
    "CameraSession",
    "ChromeOptions",
    "find_feed_path",
]
