"""MCP resource registry.

Resources are addressable by URI and can be fetched by the MCP client on demand.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from cef_codec.core.config import CefCodecConfig
from cef_codec.core.mapping import build_mapping_table

ALLOWED_FILE_SUFFIXES = {".cef", ".log", ".txt"}
BASE_DIR_ENV = "CEF_CODEC_BASE_DIR"

SAMPLE_CEF = (
    "CEF:0|Security|threatmanager|1.0|100|worm successfully stopped|10|"
    "src=10.0.0.1 dst=2.1.2.2 spt=1232\n"
    "<13>Jan 18 11:07:53 host CEF:0|Vendor|Product|2.3|42|Login\\|Attempt|3|"
    "suser=alice msg=Detected a threat. No action needed rt=1580000000000\n"
)


def base_dir() -> Path:
    """Return the resolved base directory for file access."""
    raw = os.getenv(BASE_DIR_ENV, os.getcwd())
    return Path(raw).resolve()


def safe_resolve(path: str) -> Path:
    """Resolve a path under the configured base directory."""
    base = base_dir()
    p = Path(path).expanduser()
    if not p.is_absolute():
        p = base / p
    p = p.resolve()
    if base not in p.parents and p != base:
        raise ValueError("Path escapes base dir")
    return p


def _allowed_suffix(path: Path) -> str:
    """Return the effective suffix for allowlist checks."""
    suffix = path.suffix.lower()
    if suffix == ".gz":
        suffix = path.with_suffix("").suffix.lower()
    return suffix


def resolve_cef_file(path: str) -> Path:
    """Resolve and validate a CEF file path."""
    resolved = safe_resolve(path)
    if not resolved.is_file():
        raise FileNotFoundError(f"File not found: {resolved}")
    if _allowed_suffix(resolved) not in ALLOWED_FILE_SUFFIXES:
        allowed = ", ".join(sorted(ALLOWED_FILE_SUFFIXES))
        raise ValueError(f"File type not allowed. Allowed: {allowed}.")
    return resolved


def field_table(ecs_compatibility: str, device: str) -> list[dict[str, str]]:
    """Return the CEF dictionary as resolved for one mode and device role."""
    table = build_mapping_table(device, ecs_compatibility, False)
    return [
        {"name": name, "key": key, "field": target}
        for name, key, target in table.iter_fields()
    ]


def register_resources(mcp: FastMCP) -> None:
    """Register resource handlers on the MCP server."""

    @mcp.resource("app://cef-codec/help")
    def help_resource() -> str:
        """Return a short list of available resource URIs."""
        allowed = ", ".join(sorted(ALLOWED_FILE_SUFFIXES))
        return (
            "Resources:\n"
            "- app://cef-codec/help\n"
            "- app://cef-codec/examples/sample-cef\n"
            "- app://cef-codec/schemas/config\n"
            "- cef://fields/{ecs_compatibility}/{device} "
            "(ecs_compatibility: disabled|v1, device: observer|host)\n"
            f"\nFiles for decode_cef_file are restricted to {BASE_DIR_ENV} "
            f"(allowed: {allowed}, .gz)\n"
            f"Base directory: {base_dir()}\n"
        )

    @mcp.resource("app://cef-codec/examples/sample-cef")
    def sample_cef() -> str:
        """Return a tiny CEF sample for demos and tests."""
        return SAMPLE_CEF

    @mcp.resource("app://cef-codec/schemas/config")
    def config_schema() -> dict[str, Any]:
        """Return the JSON schema of the codec options."""
        return CefCodecConfig.model_json_schema()

    @mcp.resource("cef://fields/{ecs_compatibility}/{device}")
    def fields_resource(ecs_compatibility: str, device: str) -> list[dict[str, str]]:
        """Return the CEF field dictionary (name, key, target field)."""
        return field_table(ecs_compatibility, device)
