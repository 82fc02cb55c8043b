"""CEF codec core: scanning, escaping, field mapping and normalization."""

from __future__ import annotations

from .codec import PARSE_FAILURE_TAG, CefCodec, CefDecoder, CefEncoder, DecodeResult
from .config import CefCodecConfig, resolve_codec_config
from .errors import (
    CefCodecError,
    InvalidEncoding,
    InvalidFieldPath,
    InvalidTimestamp,
    MalformedMessage,
)
from .event import CefEvent
from .mapping import CEF_FIELDS, CefField, FieldMappingTable, build_mapping_table

__all__ = [
    "CEF_FIELDS",
    "PARSE_FAILURE_TAG",
    "CefCodec",
    "CefCodecConfig",
    "CefCodecError",
    "CefDecoder",
    "CefEncoder",
    "CefEvent",
    "CefField",
    "DecodeResult",
    "FieldMappingTable",
    "InvalidEncoding",
    "InvalidFieldPath",
    "InvalidTimestamp",
    "MalformedMessage",
    "build_mapping_table",
    "resolve_codec_config",
]
