"""``%{field}`` template interpolation against an event."""

from __future__ import annotations

import json
import re
from datetime import datetime
from typing import Any

from .errors import InvalidFieldPath
from .event import CefEvent
from .normalize import format_timestamp

_REFERENCE_RE = re.compile(r"%\{([^}]+)\}")


def render_value(value: Any) -> str:
    if isinstance(value, datetime):
        return format_timestamp(value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, list):
        return ",".join(render_value(v) for v in value)
    if isinstance(value, dict):
        return json.dumps(value, separators=(",", ":"), default=str)
    return str(value)


def interpolate(template: str, event: CefEvent) -> str:
    """Replace each ``%{path}`` with the event's value.

    References that resolve to nothing are left in place.
    """
    if "%{" not in template:
        return template

    def _sub(m: re.Match[str]) -> str:
        try:
            value = event.get(m.group(1).strip())
        except InvalidFieldPath:
            return m.group(0)
        if value is None:
            return m.group(0)
        return render_value(value)

    return _REFERENCE_RE.sub(_sub, template)
