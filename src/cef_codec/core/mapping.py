"""CEF field dictionary and the derived decode/encode lookup table.

Every CEF extension field has a full name (``sourceAddress``), an abbreviated
key (``src``) and a target field path. The target is the full name in legacy
mode, and an ECS-style dotted path in ``v1`` compatibility mode. ECS paths that
describe the reporting device carry a ``{device}`` placeholder that resolves to
``observer`` or ``host``.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from functools import lru_cache
from types import MappingProxyType
from typing import Literal

from .errors import InvalidFieldPath
from .event import parse_path, to_field_reference

DeviceRole = Literal["observer", "host"]
EcsCompatibility = Literal["disabled", "v1"]

TIMESTAMP_FIELD = "@timestamp"


@dataclass(frozen=True, slots=True)
class CefField:
    """One CEF dictionary entry. `key` and `ecs_field` default to `name`."""

    name: str
    key: str = ""
    ecs_field: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            object.__setattr__(self, "key", self.name)
        if not self.ecs_field:
            object.__setattr__(self, "ecs_field", self.name)

    def target(self, *, device: DeviceRole, ecs_compatibility: EcsCompatibility) -> str:
        if ecs_compatibility == "disabled":
            return self.name
        return self.ecs_field.format(device=device)


# Order matters: later entries win decode collisions, earlier entries win the
# long-name fallback on encode.
CEF_FIELDS: tuple[CefField, ...] = (
    CefField("deviceAction", key="act", ecs_field="event.action"),
    CefField("applicationProtocol", key="app", ecs_field="network.protocol"),
    CefField("deviceCustomIPv6Address1", key="c6a1", ecs_field="cef.device_custom_ipv6_address_1.value"),
    CefField("deviceCustomIPv6Address1Label", key="c6a1Label", ecs_field="cef.device_custom_ipv6_address_1.label"),
    CefField("deviceCustomIPv6Address2", key="c6a2", ecs_field="cef.device_custom_ipv6_address_2.value"),
    CefField("deviceCustomIPv6Address2Label", key="c6a2Label", ecs_field="cef.device_custom_ipv6_address_2.label"),
    CefField("deviceCustomIPv6Address3", key="c6a3", ecs_field="cef.device_custom_ipv6_address_3.value"),
    CefField("deviceCustomIPv6Address3Label", key="c6a3Label", ecs_field="cef.device_custom_ipv6_address_3.label"),
    CefField("deviceCustomIPv6Address4", key="c6a4", ecs_field="cef.device_custom_ipv6_address_4.value"),
    CefField("deviceCustomIPv6Address4Label", key="c6a4Label", ecs_field="cef.device_custom_ipv6_address_4.label"),
    CefField("deviceEventCategory", key="cat", ecs_field="cef.category"),
    CefField("deviceCustomFloatingPoint1", key="cfp1", ecs_field="cef.device_custom_floating_point_1.value"),
    CefField("deviceCustomFloatingPoint1Label", key="cfp1Label", ecs_field="cef.device_custom_floating_point_1.label"),
    CefField("deviceCustomFloatingPoint2", key="cfp2", ecs_field="cef.device_custom_floating_point_2.value"),
    CefField("deviceCustomFloatingPoint2Label", key="cfp2Label", ecs_field="cef.device_custom_floating_point_2.label"),
    CefField("deviceCustomFloatingPoint3", key="cfp3", ecs_field="cef.device_custom_floating_point_3.value"),
    CefField("deviceCustomFloatingPoint3Label", key="cfp3Label", ecs_field="cef.device_custom_floating_point_3.label"),
    CefField("deviceCustomFloatingPoint4", key="cfp4", ecs_field="cef.device_custom_floating_point_4.value"),
    CefField("deviceCustomFloatingPoint4Label", key="cfp4Label", ecs_field="cef.device_custom_floating_point_4.label"),
    CefField("deviceCustomNumber1", key="cn1", ecs_field="cef.device_custom_number_1.value"),
    CefField("deviceCustomNumber1Label", key="cn1Label", ecs_field="cef.device_custom_number_1.label"),
    CefField("deviceCustomNumber2", key="cn2", ecs_field="cef.device_custom_number_2.value"),
    CefField("deviceCustomNumber2Label", key="cn2Label", ecs_field="cef.device_custom_number_2.label"),
    CefField("deviceCustomNumber3", key="cn3", ecs_field="cef.device_custom_number_3.value"),
    CefField("deviceCustomNumber3Label", key="cn3Label", ecs_field="cef.device_custom_number_3.label"),
    CefField("baseEventCount", key="cnt", ecs_field="cef.base_event_count"),
    CefField("deviceCustomString1", key="cs1", ecs_field="cef.device_custom_string_1.value"),
    CefField("deviceCustomString1Label", key="cs1Label", ecs_field="cef.device_custom_string_1.label"),
    CefField("deviceCustomString2", key="cs2", ecs_field="cef.device_custom_string_2.value"),
    CefField("deviceCustomString2Label", key="cs2Label", ecs_field="cef.device_custom_string_2.label"),
    CefField("deviceCustomString3", key="cs3", ecs_field="cef.device_custom_string_3.value"),
    CefField("deviceCustomString3Label", key="cs3Label", ecs_field="cef.device_custom_string_3.label"),
    CefField("deviceCustomString4", key="cs4", ecs_field="cef.device_custom_string_4.value"),
    CefField("deviceCustomString4Label", key="cs4Label", ecs_field="cef.device_custom_string_4.label"),
    CefField("deviceCustomString5", key="cs5", ecs_field="cef.device_custom_string_5.value"),
    CefField("deviceCustomString5Label", key="cs5Label", ecs_field="cef.device_custom_string_5.label"),
    CefField("deviceCustomString6", key="cs6", ecs_field="cef.device_custom_string_6.value"),
    CefField("deviceCustomString6Label", key="cs6Label", ecs_field="cef.device_custom_string_6.label"),
    CefField("destinationHostName", key="dhost", ecs_field="destination.domain"),
    CefField("destinationMacAddress", key="dmac", ecs_field="destination.mac"),
    CefField("destinationNtDomain", key="dntdom", ecs_field="destination.registered_domain"),
    CefField("destinationProcessId", key="dpid", ecs_field="destination.process.pid"),
    CefField("destinationUserPrivileges", key="dpriv", ecs_field="destination.user.group.name"),
    CefField("destinationProcessName", key="dproc", ecs_field="destination.process.name"),
    CefField("destinationPort", key="dpt", ecs_field="destination.port"),
    CefField("destinationAddress", key="dst", ecs_field="destination.ip"),
    CefField("destinationUserId", key="duid", ecs_field="destination.user.id"),
    CefField("destinationUserName", key="duser", ecs_field="destination.user.name"),
    CefField("deviceAddress", key="dvc", ecs_field="{device}.ip"),
    CefField("deviceHostName", key="dvchost", ecs_field="{device}.name"),
    CefField("deviceProcessId", key="dvcpid", ecs_field="process.pid"),
    CefField("endTime", key="end", ecs_field="event.end"),
    CefField("fileName", key="fname", ecs_field="file.name"),
    CefField("fileSize", key="fsize", ecs_field="file.size"),
    CefField("bytesIn", key="in", ecs_field="source.bytes"),
    CefField("message", key="msg", ecs_field="message"),
    CefField("bytesOut", key="out", ecs_field="destination.bytes"),
    CefField("eventOutcome", key="outcome", ecs_field="event.outcome"),
    CefField("transportProtocol", key="proto", ecs_field="network.transport"),
    CefField("requestUrl", key="request", ecs_field="url.original"),
    CefField("deviceReceiptTime", key="rt", ecs_field=TIMESTAMP_FIELD),
    CefField("sourceHostName", key="shost", ecs_field="source.domain"),
    CefField("sourceMacAddress", key="smac", ecs_field="source.mac"),
    CefField("sourceNtDomain", key="sntdom", ecs_field="source.registered_domain"),
    CefField("sourceProcessId", key="spid", ecs_field="source.process.pid"),
    CefField("sourceUserPrivileges", key="spriv", ecs_field="source.user.group.name"),
    CefField("sourceProcessName", key="sproc", ecs_field="source.process.name"),
    CefField("sourcePort", key="spt", ecs_field="source.port"),
    CefField("sourceAddress", key="src", ecs_field="source.ip"),
    CefField("startTime", key="start", ecs_field="event.start"),
    CefField("sourceUserId", key="suid", ecs_field="source.user.id"),
    CefField("sourceUserName", key="suser", ecs_field="source.user.name"),
    CefField("agentHostName", key="ahost", ecs_field="agent.name"),
    CefField("agentReceiptTime", key="art", ecs_field="event.created"),
    CefField("agentType", key="at", ecs_field="agent.type"),
    CefField("agentId", key="aid", ecs_field="agent.id"),
    CefField("cefVersion", key="_cefVer", ecs_field="cef.version"),
    CefField("agentAddress", key="agt", ecs_field="agent.ip"),
    CefField("agentVersion", key="av", ecs_field="agent.version"),
    CefField("agentTimeZone", key="atz", ecs_field="agent.timezone"),
    CefField("destinationTimeZone", key="dtz", ecs_field="event.timezone"),
    CefField("sourceLongitude", key="slong", ecs_field="source.geo.location.lon"),
    CefField("sourceLatitude", key="slat", ecs_field="source.geo.location.lat"),
    CefField("destinationLongitude", key="dlong", ecs_field="destination.geo.location.lon"),
    CefField("destinationLatitude", key="dlat", ecs_field="destination.geo.location.lat"),
    CefField("categoryDeviceType", key="catdt", ecs_field="cef.device_type"),
    CefField("managerReceiptTime", key="mrt", ecs_field="event.ingested"),
    CefField("agentMacAddress", key="amac", ecs_field="agent.mac"),
    CefField("requestMethod", ecs_field="http.request.method"),
    CefField("requestClientApplication", ecs_field="user_agent.original"),
)

# (legacy, ECS) targets for the seven header slots, in wire order.
_HEADER_FIELDS: tuple[tuple[str, str], ...] = (
    ("cefVersion", "cef.version"),
    ("deviceVendor", "observer.vendor"),
    ("deviceProduct", "observer.product"),
    ("deviceVersion", "observer.version"),
    ("deviceEventClassId", "event.code"),
    ("name", "cef.name"),
    ("severity", "event.severity"),
)
_SYSLOG_HEADER_FIELD = ("syslog", "log.syslog.header")


@dataclass(frozen=True, slots=True)
class FieldMappingTable:
    """Read-only lookup between CEF names/keys and event field paths.

    Build with `FieldMappingTable.build`; instances are safe to share.
    """

    device: DeviceRole
    ecs_compatibility: EcsCompatibility
    reverse_mapping: bool
    decode_index: Mapping[str, str] = field(repr=False)
    encode_index: Mapping[str, str] = field(repr=False)
    header_fields: tuple[str, ...] = ()
    syslog_header_field: str = ""

    @classmethod
    def build(
        cls,
        *,
        device: DeviceRole = "observer",
        ecs_compatibility: EcsCompatibility = "disabled",
        reverse_mapping: bool = False,
        fields: tuple[CefField, ...] = CEF_FIELDS,
    ) -> FieldMappingTable:
        if device not in ("observer", "host"):
            raise ValueError("device must be 'observer' or 'host'")
        if ecs_compatibility not in ("disabled", "v1"):
            raise ValueError("ecs_compatibility must be 'disabled' or 'v1'")

        decode: dict[str, str] = {}
        encode: dict[str, str] = {}
        for cef in fields:
            target = cef.target(device=device, ecs_compatibility=ecs_compatibility)

            # whether the source is a key or a full name, normalize to target
            decode[cef.key] = target
            decode[cef.name] = target

            # whether the source is a full name or a target, normalize to output key
            out_key = cef.key if reverse_mapping else cef.name
            encode[target] = out_key
            encode.setdefault(cef.name, out_key)

        slot = 0 if ecs_compatibility == "disabled" else 1
        return cls(
            device=device,
            ecs_compatibility=ecs_compatibility,
            reverse_mapping=reverse_mapping,
            decode_index=MappingProxyType(decode),
            encode_index=MappingProxyType(encode),
            header_fields=tuple(pair[slot] for pair in _HEADER_FIELDS),
            syslog_header_field=_SYSLOG_HEADER_FIELD[slot],
        )

    @property
    def timestamp_field(self) -> str:
        return TIMESTAMP_FIELD

    def decode_target(self, name_or_key: str) -> str:
        """Expand a CEF key or full name to a field path.

        Unknown keys address a single literal field (``a.b`` -> ``[a.b]``).
        """
        hit = self.decode_index.get(name_or_key)
        if hit is not None:
            return hit
        return to_field_reference(name_or_key)

    def encode_key(self, path: str) -> str:
        """Return the CEF output key for a field path or full name."""
        hit = self.encode_index.get(path)
        if hit is not None:
            return hit
        if path.startswith("["):
            try:
                tokens = parse_path(path)
            except InvalidFieldPath:
                return path
            if all(isinstance(t, str) for t in tokens):
                return self.encode_index.get(".".join(tokens), path)
        return path

    def iter_fields(self) -> Iterator[tuple[str, str, str]]:
        """Yield ``(name, key, target)`` for every dictionary entry."""
        for cef in CEF_FIELDS:
            yield (
                cef.name,
                cef.key,
                cef.target(device=self.device, ecs_compatibility=self.ecs_compatibility),
            )


@lru_cache(maxsize=16)
def build_mapping_table(
    device: DeviceRole = "observer",
    ecs_compatibility: EcsCompatibility = "disabled",
    reverse_mapping: bool = False,
) -> FieldMappingTable:
    """Shared table per configuration."""
    return FieldMappingTable.build(
        device=device,
        ecs_compatibility=ecs_compatibility,
        reverse_mapping=reverse_mapping,
    )
