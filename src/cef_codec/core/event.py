"""Structured event container addressed by field paths.

Two path spellings are accepted:

- dotted: ``source.ip``, ``items[0]``, ``a.b[2].c`` (each dot nests)
- bracketed: ``[source][ip]``, ``[items][0]`` (each bracket is one token,
  dots inside a bracket are literal, all-digit tokens are list indices)
"""

from __future__ import annotations

import copy
import re
from collections.abc import Iterator, Mapping
from functools import lru_cache
from typing import Any

from .errors import InvalidFieldPath

PathToken = str | int

_BRACKET_TOKEN_RE = re.compile(r"\[([^\[\]]+)\]")
_DOTTED_SEGMENT_RE = re.compile(r"^([^\[\]]+)((?:\[[0-9]+\])*)$")
_INDEX_RE = re.compile(r"\[([0-9]+)\]")

# Raw extension keys: a literal name with optional indices (`a.b`, `items[0]`).
_EXTENSION_KEY_RE = re.compile(r"^([^\[\]]+)((?:\[[0-9]+\])*)$")

TAGS_FIELD = "tags"

# Lists are padded up to the addressed index, so indices are bounded.
MAX_LIST_INDEX = 1024


def _index(raw: str, path: str) -> int:
    index = int(raw)
    if index > MAX_LIST_INDEX:
        raise InvalidFieldPath(f"list index {index} exceeds {MAX_LIST_INDEX}: {path!r}")
    return index


@lru_cache(maxsize=4096)
def parse_path(path: str) -> tuple[PathToken, ...]:
    """Split a field path into string keys and integer indices."""
    if not path:
        raise InvalidFieldPath("field path must not be empty")

    if path.startswith("["):
        tokens: list[PathToken] = []
        pos = 0
        for m in _BRACKET_TOKEN_RE.finditer(path):
            if m.start() != pos:
                break
            raw = m.group(1)
            # the event root is always a mapping
            tokens.append(_index(raw, path) if tokens and raw.isdigit() else raw)
            pos = m.end()
        if pos != len(path) or not tokens:
            raise InvalidFieldPath(f"malformed bracketed field path: {path!r}")
        return tuple(tokens)

    tokens = []
    for segment in path.split("."):
        m = _DOTTED_SEGMENT_RE.match(segment)
        if not m:
            raise InvalidFieldPath(f"malformed field path: {path!r}")
        tokens.append(m.group(1))
        tokens.extend(_index(i, path) for i in _INDEX_RE.findall(m.group(2)))
    return tuple(tokens)


def to_field_reference(key: str) -> str:
    """Address a raw extension key as one literal field.

    Dots in the name do not nest: ``a.b`` becomes ``[a.b]`` and ``a.b[1]``
    becomes ``[a.b][1]``. ``items[0]`` becomes ``[items][0]``; plain keys are
    returned unchanged.
    """
    m = _EXTENSION_KEY_RE.match(key)
    if m is None or ("." not in key and not m.group(2)):
        return key
    return f"[{m.group(1)}]{m.group(2)}"


def _new_container(token: PathToken) -> dict[str, Any] | list[Any]:
    return [] if isinstance(token, int) else {}


def _child(node: Any, token: PathToken) -> Any:
    if isinstance(node, Mapping):
        return node.get(str(token) if isinstance(token, int) else token)
    if isinstance(node, list) and isinstance(token, int):
        return node[token] if token < len(node) else None
    return None


class CefEvent:
    """Mutable nested mapping addressed by field paths."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(dict(data)) if data else {}

    def get(self, path: str) -> Any:
        """Return the value at `path`, or None when any step is missing."""
        node: Any = self._data
        for token in parse_path(path):
            node = _child(node, token)
            if node is None:
                return None
        return node

    def set(self, path: str, value: Any) -> None:
        """Write `value` at `path`, creating intermediate containers.

        Lists are padded with None up to the addressed index. A scalar standing
        where a container is needed is replaced.
        """
        tokens = parse_path(path)
        node: Any = self._data
        for token, nxt in zip(tokens, tokens[1:]):
            current = _child(node, token)
            if isinstance(nxt, int):
                wanted = isinstance(current, list)
            else:
                wanted = isinstance(current, dict)
            if not wanted:
                current = _new_container(nxt)
                self._assign(node, token, current)
            node = current
        self._assign(node, tokens[-1], value)

    @staticmethod
    def _assign(node: Any, token: PathToken, value: Any) -> None:
        if isinstance(node, list):
            if not isinstance(token, int):
                raise InvalidFieldPath(f"cannot address list with key {token!r}")
            if token >= len(node):
                node.extend([None] * (token + 1 - len(node)))
            node[token] = value
        else:
            node[str(token) if isinstance(token, int) else token] = value

    @property
    def tags(self) -> list[str]:
        tags = self._data.get(TAGS_FIELD)
        return list(tags) if isinstance(tags, list) else []

    def add_tag(self, tag: str) -> None:
        tags = self._data.get(TAGS_FIELD)
        if not isinstance(tags, list):
            tags = [] if tags is None else [tags]
            self._data[TAGS_FIELD] = tags
        if tag not in tags:
            tags.append(tag)

    def to_dict(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CefEvent):
            return self._data == other._data
        if isinstance(other, Mapping):
            return self._data == dict(other)
        return NotImplemented

    def __repr__(self) -> str:
        return f"CefEvent({self._data!r})"
