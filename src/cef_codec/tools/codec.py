"""Tool implementations behind the MCP server and the CLI.

Keep this layer thin: validate inputs, translate them into core calls, and
return JSON-serializable data structures.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from datetime import datetime
from typing import Any

from cef_codec.core.codec import PARSE_FAILURE_TAG, CefCodec, CefDecoder
from cef_codec.core.config import CefCodecConfig, resolve_codec_config
from cef_codec.core.event import CefEvent
from cef_codec.core.log_service import get_events
from cef_codec.core.normalize import format_timestamp

DEFAULT_LIMIT = 200
HARD_LIMIT = 5000


def to_jsonable(value: Any) -> Any:
    """Recursively convert datetimes to ISO strings."""
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, Mapping):
        return {k: to_jsonable(v) for k, v in value.items()}
    if isinstance(value, list):
        return [to_jsonable(v) for v in value]
    return value


def event_to_dict(event: CefEvent) -> dict[str, Any]:
    return to_jsonable(event.to_dict())


def build_config(
    *,
    ecs_compatibility: str | None = None,
    device: str | None = None,
    **options: Any,
) -> CefCodecConfig:
    """Build a config from tool arguments; None means "use the default".

    Environment overrides apply first, explicit arguments win over them.
    """
    values = {k: v for k, v in options.items() if v is not None}
    cfg = resolve_codec_config(CefCodecConfig(**values))

    explicit = {}
    if ecs_compatibility is not None:
        explicit["ecs_compatibility"] = ecs_compatibility
    if device is not None:
        explicit["device"] = device
    if not explicit:
        return cfg
    return CefCodecConfig(**{**cfg.model_dump(), **explicit})


def decode_message_impl(
    *,
    message: str,
    ecs_compatibility: str | None = None,
    device: str | None = None,
    raw_data_field: str | None = None,
) -> dict[str, Any]:
    """Decode a single CEF message."""
    cfg = build_config(
        ecs_compatibility=ecs_compatibility,
        device=device,
        raw_data_field=raw_data_field,
    )
    result = CefDecoder(cfg).parse(message)
    out: dict[str, Any] = {"ok": result.ok, "event": event_to_dict(result.event)}
    if result.error is not None:
        out["error"] = f"{type(result.error).__name__}: {result.error}"
    return out


def encode_event_impl(
    *,
    event: Mapping[str, Any],
    fields: Sequence[str] | None = None,
    reverse_mapping: bool = False,
    vendor: str | None = None,
    product: str | None = None,
    version: str | None = None,
    signature: str | None = None,
    name: str | None = None,
    severity: str | None = None,
    ecs_compatibility: str | None = None,
    device: str | None = None,
) -> dict[str, Any]:
    """Encode one structured event as a CEF message."""
    cfg = build_config(
        ecs_compatibility=ecs_compatibility,
        device=device,
        fields=tuple(fields or ()),
        reverse_mapping=reverse_mapping,
        vendor=vendor,
        product=product,
        version=version,
        signature=signature,
        name=name,
        severity=severity,
    )
    return {"message": CefCodec(cfg).encode(event)}


async def decode_file_impl(
    *,
    log_path: str,
    ecs_compatibility: str | None = None,
    device: str | None = None,
    delimiter: str | None = None,
    contains: str | None = None,
    include_failures: bool = True,
    limit: int | None = None,
) -> dict[str, Any]:
    """Decode every message in a CEF file.

    `limit` defaults to DEFAULT_LIMIT and is capped at HARD_LIMIT.
    """
    if limit is None:
        limit = DEFAULT_LIMIT
    if limit <= 0:
        raise ValueError("limit must be > 0")
    limit = min(limit, HARD_LIMIT)

    cfg = build_config(
        ecs_compatibility=ecs_compatibility,
        device=device,
        delimiter=delimiter,
    )
    events = await get_events(
        log_path,
        config=cfg,
        contains=contains,
        include_failures=include_failures,
        limit=limit,
    )
    failures = sum(1 for e in events if PARSE_FAILURE_TAG in e.tags)
    return {
        "count": len(events),
        "failures": failures,
        "events": [event_to_dict(e) for e in events],
    }
