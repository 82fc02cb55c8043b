"""Codec configuration."""

from __future__ import annotations

import os
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .framing import expand_delimiter

ECS_ENV = "CEF_CODEC_ECS_COMPATIBILITY"
DEVICE_ENV = "CEF_CODEC_DEVICE"


class CefCodecConfig(BaseModel):
    """Options recognised by the codec. Header templates accept ``%{field}``."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    vendor: str = Field(default="Elasticsearch", description="Device vendor header field.")
    product: str = Field(default="Logstash", description="Device product header field.")
    version: str = Field(default="1.0", description="Device version header field.")
    signature: str = Field(default="Logstash", description="Signature ID header field.")
    name: str = Field(default="Logstash", description="Name header field.")
    severity: str = Field(
        default="6",
        description="Severity header field; must resolve to an integer 0..10.",
    )
    fields: tuple[str, ...] = Field(
        default=(), description="Event fields emitted as extension key/value pairs."
    )
    reverse_mapping: bool = Field(
        default=False, description="Encode using abbreviated CEF keys instead of full names."
    )
    delimiter: str | None = Field(
        default=None, description="Message delimiter; `\\r` and `\\n` are expanded."
    )
    raw_data_field: str | None = Field(
        default=None, description="Field that receives the raw payload on decode."
    )
    device: Literal["observer", "host"] = Field(
        default="observer",
        description="Whether device fields describe the observer or the host.",
    )
    ecs_compatibility: Literal["disabled", "v1"] = Field(
        default="disabled", description="Target field naming: legacy names or ECS paths."
    )

    @field_validator("delimiter")
    @classmethod
    def _expand_delimiter(cls, value: str | None) -> str | None:
        if not value:
            return None
        return expand_delimiter(value)


HEADER_TEMPLATE_FIELDS = ("vendor", "product", "version", "signature", "name")


def header_default(name: str) -> Any:
    """Declared default for a config option (used when a header renders empty)."""
    return CefCodecConfig.model_fields[name].default


def resolve_codec_config(cfg: CefCodecConfig | None = None) -> CefCodecConfig:
    """Return config with optional env overrides applied."""
    if cfg is None:
        cfg = CefCodecConfig()

    updates: dict[str, str] = {}

    ecs = os.getenv(ECS_ENV)
    if ecs:
        ecs = ecs.strip().lower()
        if ecs not in ("disabled", "v1"):
            raise ValueError(f"{ECS_ENV} must be 'disabled' or 'v1'")
        updates["ecs_compatibility"] = ecs

    device = os.getenv(DEVICE_ENV)
    if device:
        device = device.strip().lower()
        if device not in ("observer", "host"):
            raise ValueError(f"{DEVICE_ENV} must be 'observer' or 'host'")
        updates["device"] = device

    if not updates:
        return cfg
    return cfg.model_copy(update=updates)
