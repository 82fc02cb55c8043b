"""Escape-aware scanners for the CEF header and extension sections."""

from __future__ import annotations

import re
from dataclasses import dataclass

from .escaping import unescape_header

HEADER_FIELD_COUNT = 7
CEF_PREFIX = "CEF:"

# A header field is a lazy run of escaped pipes, escaped backslashes or
# non-pipe characters, captured up to the first unescaped pipe.
_HEADER_PATTERN = r"(?:\\\||\\\\|[^|])*?"
_HEADER_SCANNER = re.compile(rf"({_HEADER_PATTERN})\|")

# Keys are `\w+`, optionally followed by dot-joined subkeys and one
# square-bracketed index, and must be directly followed by `=`.
_EXTENSION_KEY_PATTERN = r"(?:\w+(?:\.[^.=\s|\\\[\]]+)*(?:\[[0-9]+\])?(?==))"

# Values may contain unescaped whitespace, except a whitespace run that is
# followed by something that looks like the next `key=`.
_EXTENSION_VALUE_PATTERN = rf"(?:\S|\s++(?!{_EXTENSION_KEY_PATTERN}=))*"

_EXTENSION_SCANNER = re.compile(
    rf"({_EXTENSION_KEY_PATTERN})=({_EXTENSION_VALUE_PATTERN})\s*",
    re.ASCII,
)


@dataclass(frozen=True, slots=True)
class HeaderScan:
    """Unescaped header fields (at most 7) and the unconsumed remainder."""

    fields: tuple[str, ...]
    remainder: str


@dataclass(frozen=True, slots=True)
class ExtensionEntry:
    key: str
    raw_value: str


def scan_header(text: str) -> HeaderScan:
    """Capture up to seven pipe-terminated header fields.

    Scanning stops early when no further unescaped pipe is found; the missing
    slots are simply absent.
    """
    fields: list[str] = []
    rest = text
    for _ in range(HEADER_FIELD_COUNT):
        m = _HEADER_SCANNER.match(rest)
        if m is None:
            break
        fields.append(unescape_header(m.group(1)))
        rest = rest[m.end() :]
    return HeaderScan(fields=tuple(fields), remainder=rest)


def split_version(value: str) -> tuple[str | None, str]:
    """Split an optional syslog prefix off the version field and drop `CEF:`.

    ``"<13>Jan 18 host CEF:0"`` gives ``("<13>Jan 18 host", "0")``.
    """
    syslog: str | None = None
    if " " in value:
        syslog, _, value = value.rpartition(" ")
    return syslog, value.removeprefix(CEF_PREFIX)


def scan_extensions(text: str) -> list[ExtensionEntry]:
    """Tokenize the extension section into key/raw-value pairs, in order."""
    if not text or "=" not in text:
        return []
    return [
        ExtensionEntry(key=m.group(1), raw_value=m.group(2))
        for m in _EXTENSION_SCANNER.finditer(text.strip())
    ]
