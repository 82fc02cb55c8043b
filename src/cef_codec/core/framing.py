"""Delimiter-based message framing for streamed CEF input."""

from __future__ import annotations

from typing import AnyStr, Generic


def expand_delimiter(delimiter: str) -> str:
    """Turn the two-character sequences ``\\r`` and ``\\n`` into CR and LF."""
    return delimiter.replace("\\r", "\r").replace("\\n", "\n")


class DelimitedFramer(Generic[AnyStr]):
    """Buffered tokenizer: split incoming chunks on a delimiter.

    Works on ``str`` or ``bytes`` chunks (a text delimiter is UTF-8 encoded for
    bytes). Feed one kind per instance. The incomplete tail is held until the
    next `extract` or `flush`, so a delimiter may straddle two chunks.
    """

    def __init__(self, delimiter: str = "\n") -> None:
        if not delimiter:
            raise ValueError("delimiter must not be empty")
        self.delimiter = delimiter
        self._tail: AnyStr | None = None

    def _delimiter_for(self, data: AnyStr) -> AnyStr:
        if isinstance(data, bytes):
            return self.delimiter.encode("utf-8")  # type: ignore[return-value]
        return self.delimiter  # type: ignore[return-value]

    def extract(self, data: AnyStr) -> list[AnyStr]:
        """Return every complete message now available."""
        if self._tail:
            data = self._tail + data
        parts = data.split(self._delimiter_for(data))
        self._tail = parts.pop()
        return parts

    def flush(self) -> AnyStr | None:
        """Return and clear the buffered tail (None when nothing is buffered)."""
        tail, self._tail = self._tail, None
        return tail or None
