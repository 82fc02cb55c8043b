"""Exceptions raised by the CEF codec core."""

from __future__ import annotations


class CefCodecError(ValueError):
    """Base class for codec errors."""


class InvalidEncoding(CefCodecError):
    """Payload is not valid UTF-8 text."""


class InvalidTimestamp(CefCodecError):
    """A timestamp value could not be normalized."""


class MalformedMessage(CefCodecError):
    """Payload does not carry a CEF header at all."""


class InvalidFieldPath(CefCodecError):
    """A field path could not be parsed."""
