from __future__ import annotations

import logging
from datetime import UTC, datetime

import pytest

from cef_codec.core.codec import (
    PARSE_FAILURE_TAG,
    CefCodec,
    CefDecoder,
    CefEncoder,
    failure_event,
)
from cef_codec.core.config import CefCodecConfig
from cef_codec.core.errors import (
    InvalidEncoding,
    InvalidFieldPath,
    InvalidTimestamp,
    MalformedMessage,
)
from cef_codec.core.event import CefEvent

ECS = CefCodecConfig(ecs_compatibility="v1")


def _decode(message: str | bytes, config: CefCodecConfig | None = None) -> dict:
    return CefDecoder(config).decode(message).to_dict()


def _encode(event: dict, **options) -> str:
    return CefEncoder(CefCodecConfig(**options)).encode(event)


def test_decode_legacy_names(threat_line: str) -> None:
    assert _decode(threat_line) == {
        "cefVersion": "0",
        "deviceVendor": "Security",
        "deviceProduct": "threatmanager",
        "deviceVersion": "1.0",
        "deviceEventClassId": "100",
        "name": "worm successfully stopped",
        "severity": "10",
        "sourceAddress": "10.0.0.1",
        "destinationAddress": "2.1.2.2",
        "sourcePort": "1232",
    }


def test_decode_ecs_paths(threat_line: str) -> None:
    assert _decode(threat_line, ECS) == {
        "cef": {"version": "0", "name": "worm successfully stopped"},
        "observer": {"vendor": "Security", "product": "threatmanager", "version": "1.0"},
        "event": {"code": "100", "severity": "10"},
        "source": {"ip": "10.0.0.1", "port": "1232"},
        "destination": {"ip": "2.1.2.2"},
    }


def test_decode_syslog_prefix(syslog_line: str) -> None:
    event = _decode(syslog_line)
    assert event["syslog"] == "<13>Jan 18 11:07:53 host"
    assert event["cefVersion"] == "0"
    assert event["name"] == "Login|Attempt"
    assert event["sourceUserName"] == "alice"
    assert event["message"] == "Detected a threat. No action needed"

    ecs = _decode(syslog_line, ECS)
    assert ecs["log"] == {"syslog": {"header": "<13>Jan 18 11:07:53 host"}}
    assert ecs["source"] == {"user": {"name": "alice"}}


def test_decode_quoted_message() -> None:
    event = _decode('"CEF:0|V|P|1|2|N|3|src=1.1.1.1"')
    assert event["sourceAddress"] == "1.1.1.1"
    assert event["deviceVendor"] == "V"


def test_decode_short_header_is_not_a_failure() -> None:
    event = _decode("CEF:0|Vendor|")
    assert event == {"cefVersion": "0", "deviceVendor": "Vendor"}
    assert "deviceProduct" not in event


def test_decode_extension_whitespace_and_escapes() -> None:
    event = _decode(r"CEF:0|V|P|1|2|N|3|foo=a b bar=c esc=x\=y\\z")
    assert event["foo"] == "a b"
    assert event["bar"] == "c"
    assert event["esc"] == "x=y\\z"


def test_decode_array_keys() -> None:
    event = _decode("CEF:0|V|P|1|2|N|3|items[0]=x items[1]=y")
    assert event["items"] == ["x", "y"]


def test_decode_repeated_key_last_wins() -> None:
    assert _decode("CEF:0|V|P|1|2|N|3|a=1 a=2")["a"] == "2"


def test_decode_full_name_and_key_agree() -> None:
    by_key = _decode("CEF:0|V|P|1|2|N|3|msg=hello world")
    by_name = _decode("CEF:0|V|P|1|2|N|3|message=hello world")
    assert by_key["message"] == by_name["message"] == "hello world"


def test_decode_ecs_timestamp() -> None:
    event = CefDecoder(ECS).decode("CEF:0|V|P|1|2|N|3|rt=1580000000000")
    assert event.get("@timestamp") == datetime(2020, 1, 26, 0, 53, 20, tzinfo=UTC)


def test_decode_legacy_keeps_receipt_time_text() -> None:
    assert _decode("CEF:0|V|P|1|2|N|3|rt=1580000000000")["deviceReceiptTime"] == "1580000000000"


def test_decode_bad_timestamp_is_a_failure() -> None:
    result = CefDecoder(ECS).parse("CEF:0|V|P|1|2|N|3|rt=garbage")
    assert not result.ok
    assert isinstance(result.error, InvalidTimestamp)
    assert result.event.tags == [PARSE_FAILURE_TAG]


def test_decode_raw_data_field() -> None:
    line = "CEF:0|V|P|1|2|N|3|src=1.1.1.1"
    event = _decode(line, CefCodecConfig(raw_data_field="event.original"))
    assert event["event"] == {"original": line}


@pytest.mark.parametrize("payload", ["this is not cef", ""])
def test_decode_non_cef_yields_failure_event(payload: str) -> None:
    result = CefDecoder().parse(payload)
    assert not result.ok
    assert isinstance(result.error, MalformedMessage)
    assert result.event == {"message": payload, "tags": [PARSE_FAILURE_TAG]}


def test_decode_invalid_utf8_yields_failure_event() -> None:
    result = CefDecoder().parse(b"CEF:0|V|\xff|1|2|N|3|")
    assert isinstance(result.error, InvalidEncoding)
    assert result.event.get("message") == "CEF:0|V|\ufffd|1|2|N|3|"
    assert result.event.tags == [PARSE_FAILURE_TAG]


def test_decode_lone_surrogate_is_invalid_encoding() -> None:
    result = CefDecoder().parse("CEF:0|\ud800|P|")
    assert isinstance(result.error, InvalidEncoding)


def test_decode_accepts_utf8_bytes(threat_line: str) -> None:
    assert _decode(threat_line.encode("utf-8")) == _decode(threat_line)


def test_decode_failure_is_logged(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.ERROR, logger="cef_codec.core.codec"):
        event = CefDecoder().decode("garbage")
    assert event == failure_event("garbage")
    assert "Failed to decode CEF payload" in caplog.text
    assert "MalformedMessage" in caplog.text


def test_encode_defaults() -> None:
    assert _encode({}) == "CEF:0|Elasticsearch|Logstash|1.0|Logstash|Logstash|6|"


def test_encode_header_interpolation_and_escaping() -> None:
    out = _encode({"v": "Acme|Corp", "empty": ""}, vendor="%{v}", product="%{empty}", name="%{missing}")
    assert out == r"CEF:0|Acme\|Corp|Logstash|1.0|Logstash|%{missing}|6|"


@pytest.mark.parametrize(("sev", "expected"), [(11, "6"), ("5.0", "5"), ("x", "6"), (0, "0")])
def test_encode_severity(sev: object, expected: str) -> None:
    out = _encode({"sev": sev}, severity="%{sev}")
    assert out.split("|")[6] == expected


def test_encode_extension_value_kinds() -> None:
    event = {
        "tags": ["a", "b"],
        "d": {"k": "v=1"},
        "flag": True,
        "message": "line1\nline2",
    }
    out = _encode(event, fields=("tags", "d", "flag", "message", "absent"))
    ext = out.split("|", 7)[7]
    assert ext == r'tags=["a","b"] d={"k":"v\=1"} flag=true message=line1\nline2'


def test_encode_reverse_mapping_legacy() -> None:
    out = _encode({"sourceAddress": "1.1.1.1"}, fields=("sourceAddress",), reverse_mapping=True)
    assert out.endswith("|src=1.1.1.1")


def test_encode_ecs_paths() -> None:
    event = {"source": {"ip": "1.1.1.1"}}
    full = _encode(event, fields=("source.ip",), ecs_compatibility="v1")
    short = _encode(event, fields=("source.ip",), ecs_compatibility="v1", reverse_mapping=True)
    assert full.endswith("|sourceAddress=1.1.1.1")
    assert short.endswith("|src=1.1.1.1")


def test_encode_unknown_nested_field_key_is_sanitized() -> None:
    assert _encode({"foo": {"bar": "x"}}, fields=("foo.bar",)).endswith("|foobar=x")


def test_encode_timestamp() -> None:
    event = {"@timestamp": datetime(2020, 1, 26, 0, 53, 20, tzinfo=UTC)}
    out = _encode(event, fields=("@timestamp",), ecs_compatibility="v1", reverse_mapping=True)
    assert out.endswith("|rt=2020-01-26T00:53:20.000Z")


def test_encode_appends_delimiter() -> None:
    assert _encode({}, delimiter="\\r\\n").endswith("|6|\r\n")


def test_encode_skips_unaddressable_field() -> None:
    assert _encode({"a": "1"}, fields=("a..b", "a")).endswith("|a=1")


def test_round_trip(threat_line: str) -> None:
    event = CefDecoder().decode(threat_line)
    out = _encode(
        event.to_dict(),
        vendor="%{deviceVendor}",
        product="%{deviceProduct}",
        version="%{deviceVersion}",
        signature="%{deviceEventClassId}",
        name="%{name}",
        severity="%{severity}",
        fields=("sourceAddress", "destinationAddress", "sourcePort"),
        reverse_mapping=True,
    )
    assert out == threat_line


def test_codec_without_delimiter_decodes_whole_payload(threat_line: str) -> None:
    events = CefCodec().decode(threat_line)
    assert len(events) == 1
    assert events[0].get("sourceAddress") == "10.0.0.1"
    assert CefCodec().flush() == []


def test_codec_buffers_partial_messages() -> None:
    codec = CefCodec(CefCodecConfig(delimiter="\\n"))
    first = codec.decode("CEF:0|V|P|1|2|N|3|src=1.1.1.1\nCEF:0|V|P|1|2|N|3|")
    assert [e.get("sourceAddress") for e in first] == ["1.1.1.1"]

    assert codec.decode("src=2.2.2.2") == []
    rest = codec.flush()
    assert [e.get("sourceAddress") for e in rest] == ["2.2.2.2"]
    assert codec.flush() == []


def test_codec_sink_receives_encoded_messages() -> None:
    seen: list[tuple[CefEvent, str]] = []
    codec = CefCodec(
        CefCodecConfig(fields=("a",)),
        on_event=lambda event, text: seen.append((event, text)),
    )
    text = codec.encode({"a": "1"})
    assert text.endswith("|a=1")
    assert len(seen) == 1
    assert seen[0][0] == {"a": "1"}
    assert seen[0][1] == text


def test_decode_dotted_unmapped_key_is_one_field() -> None:
    event = _decode("CEF:0|V|P|1|2|N|3|a=2 a.b=1 name.first=x ad.list[1]=y")
    assert event["a"] == "2"
    assert event["a.b"] == "1"
    assert event["name"] == "N"
    assert event["name.first"] == "x"
    assert event["ad.list"] == [None, "y"]


def test_decode_oversized_list_index_is_a_failure() -> None:
    line = "CEF:0|V|P|1|2|N|3|a[20000000]=x"
    result = CefDecoder().parse(line)
    assert not result.ok
    assert isinstance(result.error, InvalidFieldPath)
    assert result.event == {"message": line, "tags": [PARSE_FAILURE_TAG]}
