from __future__ import annotations

import dataclasses

import pytest

from cef_codec.core.mapping import CEF_FIELDS, CefField, FieldMappingTable, build_mapping_table


def test_legacy_decode_expands_keys_to_full_names() -> None:
    table = FieldMappingTable.build()
    assert table.decode_target("src") == "sourceAddress"
    assert table.decode_target("sourceAddress") == "sourceAddress"
    assert table.decode_target("requestMethod") == "requestMethod"
    assert table.decode_target("unknownKey") == "unknownKey"
    assert table.decode_target("vendor.custom") == "[vendor.custom]"
    assert table.decode_target("items[1]") == "[items][1]"


def test_ecs_decode_targets_structured_paths() -> None:
    table = FieldMappingTable.build(ecs_compatibility="v1")
    assert table.decode_target("src") == "source.ip"
    assert table.decode_target("sourceAddress") == "source.ip"
    assert table.decode_target("rt") == "@timestamp"
    assert table.decode_target("dlat") == "destination.geo.location.lat"
    assert table.decode_target("dvc") == "observer.ip"


def test_ecs_device_role_placeholder() -> None:
    table = FieldMappingTable.build(ecs_compatibility="v1", device="host")
    assert table.decode_target("dvc") == "host.ip"
    assert table.decode_target("dvchost") == "host.name"


def test_encode_uses_full_name_by_default() -> None:
    table = FieldMappingTable.build(ecs_compatibility="v1")
    assert table.encode_key("source.ip") == "sourceAddress"
    assert table.encode_key("sourceAddress") == "sourceAddress"


def test_encode_reverse_mapping_uses_short_keys() -> None:
    table = FieldMappingTable.build(ecs_compatibility="v1", reverse_mapping=True)
    assert table.encode_key("source.ip") == "src"
    assert table.encode_key("sourceAddress") == "src"
    assert table.encode_key("@timestamp") == "rt"


def test_encode_accepts_bracketed_paths() -> None:
    table = FieldMappingTable.build(ecs_compatibility="v1", reverse_mapping=True)
    assert table.encode_key("[source][ip]") == "src"
    assert table.encode_key("[unknown][path]") == "[unknown][path]"


def test_encode_unknown_passes_through() -> None:
    table = FieldMappingTable.build()
    assert table.encode_key("foo.bar") == "foo.bar"


def test_long_name_wins_decode_collision_with_earlier_short_key() -> None:
    fields = (
        CefField("alpha", key="beta", ecs_field="x"),
        CefField("beta", key="b", ecs_field="y"),
    )
    table = FieldMappingTable.build(fields=fields)
    assert table.decode_target("beta") == "beta"
    assert table.decode_target("b") == "beta"


def test_target_path_wins_over_long_name_fallback_on_encode() -> None:
    fields = (
        CefField("a", key="ka", ecs_field="b"),
        CefField("b", key="kb", ecs_field="c"),
    )
    table = FieldMappingTable.build(fields=fields, ecs_compatibility="v1", reverse_mapping=True)
    assert table.encode_key("b") == "ka"
    assert table.encode_key("a") == "ka"
    assert table.encode_key("c") == "kb"


def test_every_key_and_name_resolves() -> None:
    for mode in ("disabled", "v1"):
        table = FieldMappingTable.build(ecs_compatibility=mode)
        for cef in CEF_FIELDS:
            assert cef.key in table.decode_index
            assert cef.name in table.decode_index


def test_header_field_targets() -> None:
    legacy = FieldMappingTable.build()
    ecs = FieldMappingTable.build(ecs_compatibility="v1")
    assert legacy.header_fields == (
        "cefVersion",
        "deviceVendor",
        "deviceProduct",
        "deviceVersion",
        "deviceEventClassId",
        "name",
        "severity",
    )
    assert ecs.header_fields[0] == "cef.version"
    assert ecs.header_fields[-1] == "event.severity"
    assert legacy.syslog_header_field == "syslog"
    assert ecs.syslog_header_field == "log.syslog.header"


def test_table_is_read_only() -> None:
    table = FieldMappingTable.build()
    with pytest.raises(TypeError):
        table.decode_index["src"] = "x"  # type: ignore[index]
    with pytest.raises(dataclasses.FrozenInstanceError):
        table.device = "host"  # type: ignore[misc]


def test_build_rejects_unknown_options() -> None:
    with pytest.raises(ValueError):
        FieldMappingTable.build(device="router")  # type: ignore[arg-type]
    with pytest.raises(ValueError):
        FieldMappingTable.build(ecs_compatibility="v8")  # type: ignore[arg-type]


def test_build_mapping_table_is_shared() -> None:
    assert build_mapping_table("observer", "v1", False) is build_mapping_table("observer", "v1", False)


def test_iter_fields_resolves_targets() -> None:
    table = FieldMappingTable.build(ecs_compatibility="v1", device="host")
    rows = {name: (key, target) for name, key, target in table.iter_fields()}
    assert rows["deviceAddress"] == ("dvc", "host.ip")
    assert rows["requestClientApplication"] == ("requestClientApplication", "user_agent.original")
