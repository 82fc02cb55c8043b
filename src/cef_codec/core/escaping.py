"""Escape and sanitize helpers for CEF header and extension text.

Header fields escape ``|`` and ``\\``; extension values escape ``=`` and ``\\``
and carry newlines as a literal ``\\n``. Extension keys are reduced to ASCII
alphanumerics on the way out.
"""

from __future__ import annotations

import re
from typing import Any

_HEADER_ESCAPE_RE = re.compile(r"\\([\\|])")
_EXTENSION_VALUE_ESCAPE_RE = re.compile(r"\\([\\=])")
_EXTENSION_KEY_ILLEGAL_RE = re.compile(r"[^a-zA-Z0-9]")

_HEADER_SANITIZE = {
    "\\": "\\\\",
    "|": "\\|",
    "\n": " ",
    "\r": " ",
}
_HEADER_SANITIZE_RE = re.compile(r"[\\|\n\r]")

_EXTENSION_VALUE_SANITIZE = {
    "\\": "\\\\",
    "=": "\\=",
    "\n": "\\n",
    "\r": "\\n",
}
_EXTENSION_VALUE_SANITIZE_RE = re.compile(r"[\\=\n\r]")


def unescape_header(value: str) -> str:
    """Resolve ``\\|`` and ``\\\\`` in a raw header field."""
    return _HEADER_ESCAPE_RE.sub(r"\1", value)


def unescape_extension_value(value: str) -> str:
    """Resolve ``\\=`` and ``\\\\`` in a raw extension value."""
    return _EXTENSION_VALUE_ESCAPE_RE.sub(r"\1", value)


def sanitize_header(value: Any) -> str:
    """Escape pipes and backslashes; newlines are not allowed in headers."""
    text = str(value).replace("\r\n", "\n")
    return _HEADER_SANITIZE_RE.sub(lambda m: _HEADER_SANITIZE[m.group(0)], text)


def sanitize_extension_value(value: Any) -> str:
    """Escape equals signs and backslashes, canonicalize newlines to ``\\n``."""
    text = str(value).replace("\r\n", "\n")
    return _EXTENSION_VALUE_SANITIZE_RE.sub(
        lambda m: _EXTENSION_VALUE_SANITIZE[m.group(0)], text
    )


def sanitize_extension_key(value: Any) -> str:
    """Keys must be a single alphanumeric word."""
    return _EXTENSION_KEY_ILLEGAL_RE.sub("", str(value))
