"""Media classification, encoder probing, and cached feed conversion."""

from .converter import CACHE_DIRNAME, ConverterOptions, FormatConverter
from .encoder import (
    EncoderAvailability,
    check_encoder_availability,
    installation_instructions,
    require_encoder,
)
from .errors import (
    CamfeedMediaError,
    ConversionError,
    EncoderUnavailableError,
    SourceNotFoundError,
    UnsupportedFormatError,
)
from .fingerprint import FingerprintComputer
from .formats import SUPPORTED_EXTENSIONS, FormatClass, classify, requires_conversion

__all__ = [
    "CACHE_DIRNAME",
    "CamfeedMediaError",
    "ConversionError",
    "ConverterOptions",
    "EncoderAvailability",
    "EncoderUnavailableError",
    "FingerprintComputer",
    "FormatClass",
    "FormatConverter",
    "SUPPORTED_EXTENSIONS",
    "SourceNotFoundError",
    "UnsupportedFormatError",
    "check_encoder_availability",
    "classify",
    "installation_instructions",
    "require_encoder",
    "requires_conversion",
]
