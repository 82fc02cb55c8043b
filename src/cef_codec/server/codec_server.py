"""MCP server entrypoint (stdio transport).

Exposes the codec as tools (decode, encode, decode a file) and the CEF field
dictionary as resources.

Run locally (stdio):
    python -m cef_codec.server.codec_server
"""

from __future__ import annotations

import logging
import os
import sys
from collections.abc import Sequence
from typing import Any

from mcp.server.fastmcp import FastMCP

from cef_codec.resources.registry import register_resources, resolve_cef_file
from cef_codec.tools.codec import decode_file_impl, decode_message_impl, encode_event_impl

LOGGER = logging.getLogger(__name__)


def _configure_logging() -> None:
    """Configure a reasonable default logging setup.

    The MCP client typically captures stderr; keeping logs concise makes them easier to consume.
    """
    level_name = os.getenv("CEF_CODEC_LOG_LEVEL", "INFO").upper()
    level = getattr(logging, level_name, logging.INFO)
    logging.basicConfig(
        stream=sys.stderr,
        level=level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


mcp = FastMCP("cef-codec", json_response=True)

register_resources(mcp)


@mcp.tool()
def decode_cef(
    message: str,
    ecs_compatibility: str | None = None,
    device: str | None = None,
    raw_data_field: str | None = None,
) -> dict[str, Any]:
    """Decode one CEF message into a structured event.

    Parameters
    ----------
    message:
        A single CEF line, optionally preceded by a syslog header.
    ecs_compatibility:
        "disabled" (legacy CEF field names) or "v1" (ECS field paths).
    device:
        "observer" or "host": which ECS object receives device fields.
    raw_data_field:
        When set, the raw message is also stored under this field.

    Returns
    -------
    dict:
        {"ok": bool, "event": dict, "error"?: str}. Undecodable input yields
        ok=false and an event tagged "_cefparsefailure".
    """
    return decode_message_impl(
        message=message,
        ecs_compatibility=ecs_compatibility,
        device=device,
        raw_data_field=raw_data_field,
    )


@mcp.tool()
def encode_cef(
    event: dict[str, Any],
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
    """Encode a structured event as a CEF message.

    Header arguments accept %{field} references into the event. `fields` lists
    the event fields emitted as extension pairs; `reverse_mapping` emits the
    abbreviated CEF keys (src, dst, ...) instead of full names.

    Returns
    -------
    dict:
        {"message": str}
    """
    return encode_event_impl(
        event=event,
        fields=fields,
        reverse_mapping=reverse_mapping,
        vendor=vendor,
        product=product,
        version=version,
        signature=signature,
        name=name,
        severity=severity,
        ecs_compatibility=ecs_compatibility,
        device=device,
    )


@mcp.tool()
async def decode_cef_file(
    log_path: str,
    ecs_compatibility: str | None = None,
    device: str | None = None,
    delimiter: str | None = None,
    contains: str | None = None,
    include_failures: bool = True,
    limit: int | None = None,
) -> dict[str, Any]:
    """Decode a CEF file (plain or .gz) under CEF_CODEC_BASE_DIR.

    Returns
    -------
    dict:
        {"count": int, "failures": int, "events": list[dict]}
    """
    path = resolve_cef_file(log_path)
    return await decode_file_impl(
        log_path=str(path),
        ecs_compatibility=ecs_compatibility,
        device=device,
        delimiter=delimiter,
        contains=contains,
        include_failures=include_failures,
        limit=limit,
    )


def main(argv: Sequence[str] | None = None) -> None:
    """Start the MCP server over stdio."""
    _configure_logging()
    LOGGER.debug("Starting MCP server (transport=stdio)")
    _ = argv or sys.argv[1:]
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
