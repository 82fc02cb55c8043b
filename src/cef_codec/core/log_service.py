"""Read CEF files into events and write events out as CEF.

This module is the file-level integration point: it streams bytes through the
framer and the codec, so one bad line only produces one failure event.
"""

from __future__ import annotations

import gzip
import io
import logging
from collections.abc import AsyncIterator, Iterable, Mapping
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import aiofiles
from aiofiles.threadpool import wrap

from .codec import PARSE_FAILURE_TAG, CefCodec
from .config import CefCodecConfig
from .event import CefEvent
from .framing import DelimitedFramer

LOGGER = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 64 * 1024
DEFAULT_FILE_DELIMITER = "\n"


@asynccontextmanager
async def _open_binary(path: Path):
    """Open a CEF file for async binary reading (plain or gzip)."""
    if path.suffix.lower() == ".gz":
        f = io.BufferedReader(gzip.open(path, mode="rb"))
        af = wrap(f)
        try:
            yield af
        finally:
            await af.close()
    else:
        async with aiofiles.open(path, mode="rb") as f:
            yield f


async def iter_events(
    log_path: str | Path,
    *,
    config: CefCodecConfig | None = None,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    contains: str | None = None,
    include_failures: bool = True,
    limit: int | None = None,
) -> AsyncIterator[CefEvent]:
    """Yield one decoded event per message in the file.

    Messages are split on the configured delimiter, or on newlines when none is
    set. Blank messages are skipped.
    """
    path = Path(log_path)
    if not path.is_file():
        raise FileNotFoundError(f"CEF file not found: {path}")
    if chunk_size < 1:
        raise ValueError("chunk_size must be >= 1")
    if limit is not None and limit < 1:
        raise ValueError("limit must be > 0")

    config = config or CefCodecConfig()
    # the framer owns delimiting here; the codec sees single messages
    codec = CefCodec(config.model_copy(update={"delimiter": None}))
    delimiter = config.delimiter or DEFAULT_FILE_DELIMITER
    framer: DelimitedFramer[bytes] = DelimitedFramer(delimiter)
    # CRLF files under the default newline framing
    strip_cr = delimiter == DEFAULT_FILE_DELIMITER
    contains_b = contains.encode("utf-8") if contains is not None else None

    emitted = 0
    failures = 0

    def accept(message: bytes) -> CefEvent | None:
        nonlocal failures
        if strip_cr:
            message = message.rstrip(b"\r")
        if not message.strip():
            return None
        if contains_b is not None and contains_b not in message:
            return None
        event = codec.decoder.decode(message)
        if PARSE_FAILURE_TAG in event.tags:
            failures += 1
            if not include_failures:
                return None
        return event

    async with _open_binary(path) as f:
        while True:
            chunk = await f.read(chunk_size)
            if not chunk:
                break
            for message in framer.extract(chunk):
                event = accept(message)
                if event is None:
                    continue
                yield event
                emitted += 1
                if limit is not None and emitted >= limit:
                    LOGGER.debug("Stopped after %s events from %s", emitted, path)
                    return

    tail = framer.flush()
    if tail is not None:
        event = accept(tail)
        if event is not None:
            yield event
            emitted += 1

    LOGGER.debug("Decoded %s events from %s (%s failures)", emitted, path, failures)


async def get_events(
    log_path: str | Path,
    **iter_kwargs,
) -> list[CefEvent]:
    """Collect iter_events into a list."""
    return [event async for event in iter_events(log_path, **iter_kwargs)]


async def write_events(
    log_path: str | Path,
    events: Iterable[CefEvent | Mapping[str, Any]],
    *,
    config: CefCodecConfig | None = None,
    append: bool = True,
) -> int:
    """Encode events to a file, one message per delimiter. Returns the count."""
    path = Path(log_path)
    config = config or CefCodecConfig()
    if config.delimiter is None:
        config = config.model_copy(update={"delimiter": DEFAULT_FILE_DELIMITER})

    lines: list[str] = []
    codec = CefCodec(config, on_event=lambda _event, text: lines.append(text))
    for event in events:
        codec.encode(event)

    async with aiofiles.open(path, mode="a" if append else "w", encoding="utf-8") as f:
        await f.write("".join(lines))

    LOGGER.debug("Wrote %s CEF messages to %s", len(lines), path)
    return len(lines)
