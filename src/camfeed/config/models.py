"""Configuration models describing camfeed settings."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

OutputFormat = Literal["mjpeg", "y4m"]
ImageMode = Literal["still", "loop"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class CamfeedBaseModel(BaseModel):
    """Shared configuration for camfeed Pydantic models."""

    model_config = ConfigDict(extra="forbid")


class ConversionSettings(CamfeedBaseModel):
    """Options governing how source media is turned into a native camera feed.

    Attributes:
        video_directory: Directory holding session feeds and the `.cache` subdirectory.
        ffmpeg_path: Encoder executable, resolved through PATH when not absolute.
        cache_enabled: Whether converted feeds are stored by content fingerprint.
        output_format: Native container the browser reads (`mjpeg` or `y4m`).
        image_mode: `still` emits one frame; `loop` synthesizes a clip from the image.
        image_frame_rate: Frame rate used when `image_mode` is `loop`.
        image_duration: Clip length in seconds when `image_mode` is `loop`.
    """

    video_directory: str = "./videos"
    ffmpeg_path: str = "ffmpeg"
    cache_enabled: bool = True
    output_format: OutputFormat = "mjpeg"
    image_mode: ImageMode = "still"
    image_frame_rate: int = Field(default=30, gt=0)
    image_duration: int = Field(default=5, gt=0)


class LoggingSettings(CamfeedBaseModel):
    """Runtime logging configuration.

    Attributes:
        level: Logging verbosity level.
    """

    level: LogLevel = "WARNING"

    @field_validator("level", mode="before")
    @classmethod
    def normalize_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value


class CamfeedConfig(CamfeedBaseModel):
    """Top-level configuration struct for camfeed.

    Attributes:
        conversion: Media conversion settings.
        logging: Logging configuration.
    """

    conversion: ConversionSettings = Field(default_factory=ConversionSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


__all__ = [
    "CamfeedBaseModel",
    "ConversionSettings",
    "LoggingSettings",
    "CamfeedConfig",
    "OutputFormat",
    "ImageMode",
    "LogLevel",
]
