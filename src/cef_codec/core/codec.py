"""CEF decoder, encoder and the codec facade that ties them together.

Decoding never raises: a payload that cannot be decoded yields a fallback event
carrying the payload under ``message`` and tagged ``_cefparsefailure``.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from .config import HEADER_TEMPLATE_FIELDS, CefCodecConfig, header_default
from .errors import InvalidEncoding, InvalidFieldPath, MalformedMessage
from .escaping import (
    sanitize_extension_key,
    sanitize_extension_value,
    sanitize_header,
    unescape_extension_value,
)
from .event import CefEvent
from .framing import DelimitedFramer
from .interpolation import interpolate
from .mapping import FieldMappingTable, build_mapping_table
from .normalize import format_timestamp, normalize_severity, normalize_timestamp
from .scanning import scan_extensions, scan_header, split_version

LOGGER = logging.getLogger(__name__)

PARSE_FAILURE_TAG = "_cefparsefailure"
CEF_HEADER_VERSION = "CEF:0"

RawMessage = str | bytes
EventSink = Callable[[CefEvent, str], None]


def _payload_text(data: RawMessage) -> str:
    if isinstance(data, bytes):
        return data.decode("utf-8", errors="replace")
    return data


def _ensure_text(data: RawMessage) -> str:
    """Return `data` as text, failing on anything that is not valid UTF-8."""
    if isinstance(data, bytes):
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise InvalidEncoding("invalid byte sequence in UTF-8") from exc
    try:
        data.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise InvalidEncoding("invalid byte sequence in UTF-8") from exc
    return data


def _unquote(text: str) -> str:
    # Some flex connectors wrap the whole message in double quotes.
    if len(text) >= 2 and text[0] == '"' and text[-1] == '"':
        return text[1:-1]
    return text


def _mapping_for(config: CefCodecConfig) -> FieldMappingTable:
    return build_mapping_table(config.device, config.ecs_compatibility, config.reverse_mapping)


def failure_event(payload: str) -> CefEvent:
    """Fallback event for a payload that could not be decoded."""
    event = CefEvent({"message": payload})
    event.add_tag(PARSE_FAILURE_TAG)
    return event


@dataclass(frozen=True, slots=True)
class DecodeResult:
    """Outcome of decoding one message: the event, or the payload and cause."""

    payload: str
    event: CefEvent = field(compare=False)
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, payload: str, event: CefEvent) -> DecodeResult:
        return cls(payload=payload, event=event)

    @classmethod
    def failure(cls, payload: str, error: Exception) -> DecodeResult:
        return cls(payload=payload, event=failure_event(payload), error=error)


class CefDecoder:
    """Turn one CEF message into a `CefEvent`."""

    def __init__(
        self,
        config: CefCodecConfig | None = None,
        mapping: FieldMappingTable | None = None,
    ) -> None:
        self.config = config or CefCodecConfig()
        self.mapping = mapping or _mapping_for(self.config)

    def parse(self, data: RawMessage) -> DecodeResult:
        """Decode `data`; failures come back as a failure result, not an exception."""
        payload = _payload_text(data)
        try:
            event = self._parse(data, payload)
        except Exception as exc:  # every failure becomes a fallback event
            return DecodeResult.failure(payload, exc)
        return DecodeResult.success(payload, event)

    def decode(self, data: RawMessage) -> CefEvent:
        """Decode `data`, logging failures and returning the fallback event."""
        result = self.parse(data)
        if not result.ok:
            LOGGER.error(
                "Failed to decode CEF payload. Generating failure event with payload in "
                "message field. exception=%s message=%s data=%r",
                type(result.error).__name__,
                result.error,
                result.payload,
            )
        return result.event

    def _parse(self, data: RawMessage, payload: str) -> CefEvent:
        event = CefEvent()
        if self.config.raw_data_field:
            event.set(self.config.raw_data_field, payload)

        text = _unquote(_ensure_text(data))

        header = scan_header(text)
        if not header.fields:
            raise MalformedMessage("no CEF header found")
        for path, value in zip(self.mapping.header_fields, header.fields):
            event.set(path, value)

        syslog, version = split_version(header.fields[0])
        if syslog is not None:
            event.set(self.mapping.syslog_header_field, syslog)
        event.set(self.mapping.header_fields[0], version)

        for entry in scan_extensions(header.remainder):
            path = self.mapping.decode_target(entry.key)
            value: Any = unescape_extension_value(entry.raw_value)
            if path == self.mapping.timestamp_field:
                value = normalize_timestamp(value)
            event.set(path, value)

        return event


class CefEncoder:
    """Render a `CefEvent` as a CEF message."""

    def __init__(
        self,
        config: CefCodecConfig | None = None,
        mapping: FieldMappingTable | None = None,
    ) -> None:
        self.config = config or CefCodecConfig()
        self.mapping = mapping or _mapping_for(self.config)

    def header(self, event: CefEvent) -> str:
        values = [CEF_HEADER_VERSION]
        for name in HEADER_TEMPLATE_FIELDS:
            value = sanitize_header(interpolate(getattr(self.config, name), event))
            values.append(value or header_default(name))
        values.append(self.severity(event))
        return "|".join(values)

    def severity(self, event: CefEvent) -> str:
        raw = sanitize_header(interpolate(self.config.severity, event)).strip()
        return normalize_severity(raw, default=header_default("severity"))

    def extension_pair(self, field_name: str, event: CefEvent) -> str | None:
        """Return ``key=value`` for `field_name`, or None when it has no value."""
        try:
            value = event.get(field_name)
        except InvalidFieldPath:
            LOGGER.debug("Skipping unaddressable extension field %r", field_name)
            return None
        if value is None:
            return None

        key = sanitize_extension_key(self.mapping.encode_key(field_name))

        if isinstance(value, (list, dict)):
            rendered = sanitize_extension_value(
                json.dumps(value, separators=(",", ":"), default=str)
            )
        elif isinstance(value, datetime):
            rendered = format_timestamp(value)
        elif isinstance(value, bool):
            rendered = "true" if value else "false"
        else:
            rendered = sanitize_extension_value(value)
        return f"{key}={rendered}"

    def extension(self, event: CefEvent) -> str:
        pairs = (self.extension_pair(name, event) for name in self.config.fields)
        return " ".join(p for p in pairs if p is not None)

    def encode(self, event: CefEvent | Mapping[str, Any]) -> str:
        if not isinstance(event, CefEvent):
            event = CefEvent(event)
        return f"{self.header(event)}|{self.extension(event)}{self.config.delimiter or ''}"


class CefCodec:
    """Decoder + encoder over one configuration and one shared mapping table.

    With a `delimiter` configured, `decode` accepts arbitrary stream chunks and
    buffers incomplete messages until the next call or `flush`. Keep one codec
    per stream in that case.
    """

    def __init__(
        self,
        config: CefCodecConfig | None = None,
        *,
        on_event: EventSink | None = None,
    ) -> None:
        self.config = config or CefCodecConfig()
        self.mapping = _mapping_for(self.config)
        self.decoder = CefDecoder(self.config, self.mapping)
        self.encoder = CefEncoder(self.config, self.mapping)
        self.on_event = on_event
        self._framer: DelimitedFramer | None = (
            DelimitedFramer(self.config.delimiter) if self.config.delimiter else None
        )

    def decode(self, data: RawMessage) -> list[CefEvent]:
        if self._framer is None:
            return [self.decoder.decode(data)]
        return [self.decoder.decode(message) for message in self._framer.extract(data)]

    def flush(self) -> list[CefEvent]:
        """Decode whatever is left in the framing buffer."""
        if self._framer is None:
            return []
        tail = self._framer.flush()
        return [] if tail is None else [self.decoder.decode(tail)]

    def encode(self, event: CefEvent | Mapping[str, Any]) -> str:
        if not isinstance(event, CefEvent):
            event = CefEvent(event)
        text = self.encoder.encode(event)
        if self.on_event is not None:
            self.on_event(event, text)
        return text
