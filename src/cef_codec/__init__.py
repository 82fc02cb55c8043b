"""ArcSight Common Event Format (CEF) codec."""

from __future__ import annotations

from .core import CefCodec, CefCodecConfig, CefDecoder, CefEncoder, CefEvent, DecodeResult

__all__ = [
    "CefCodec",
    "CefCodecConfig",
    "CefDecoder",
    "CefEncoder",
    "CefEvent",
    "DecodeResult",
]
