from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

THREAT_LINE = (
    "CEF:0|Security|threatmanager|1.0|100|worm successfully stopped|10|"
    "src=10.0.0.1 dst=2.1.2.2 spt=1232"
)
SYSLOG_LINE = (
    "<13>Jan 18 11:07:53 host CEF:0|Vendor|Product|2.3|42|Login\\|Attempt|3|"
    "suser=alice msg=Detected a threat. No action needed"
)


@pytest.fixture(autouse=True)
def _clear_codec_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("CEF_CODEC_ECS_COMPATIBILITY", "CEF_CODEC_DEVICE", "CEF_CODEC_BASE_DIR"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def write_cef_log() -> Callable[[Path], None]:
    def _write(path: Path) -> None:
        path.write_text(
            "\n".join(
                [
                    THREAT_LINE,
                    "not a cef line",
                    SYSLOG_LINE,
                ]
            )
            + "\n",
            encoding="utf-8",
        )

    return _write


@pytest.fixture
def write_bytes() -> Callable[[Path, list[bytes]], None]:
    def _write(path: Path, lines: list[bytes]) -> None:
        path.write_bytes(b"".join(line + b"\n" for line in lines))

    return _write


@pytest.fixture
def threat_line() -> str:
    return THREAT_LINE


@pytest.fixture
def syslog_line() -> str:
    return SYSLOG_LINE
