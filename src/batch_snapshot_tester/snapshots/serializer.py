"""Deterministic pretty-printed serialization of snapshot values."""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping, Set
from typing import Any
from xml.etree.ElementTree import Element

INDENT = "  "


def serialize(value: Any) -> str:
    """Serialize any value into stable, human-readable text.

    Mapping keys and set members are sorted so equal values always produce the
    same text. XML elements are rendered as markup, dataclasses and plain
    objects as their type name followed by their public fields.
    """
    return _format(value, depth=0, seen=set())


def _format(value: Any, *, depth: int, seen: set[int]) -> str:
    if value is None or isinstance(value, (bool, int, float, complex)):
        return repr(value)
    if isinstance(value, str):
        return _quote(value)
    if isinstance(value, bytes):
        return repr(value)
    if id(value) in seen:
        return "[Circular]"
    seen = seen | {id(value)}
    if isinstance(value, Element):
        return _format_element(value, depth=depth)
    if isinstance(value, Mapping):
        items = sorted(
            ((_format(key, depth=depth + 1, seen=seen), item) for key, item in value.items()),
            key=lambda pair: pair[0],
        )
        return _block(
            type(value).__name__,
            "{",
            "}",
            [f"{key}: {_format(item, depth=depth + 1, seen=seen)}" for key, item in items],
            depth,
        )
    if isinstance(value, (list, tuple)):
        return _block(
            type(value).__name__,
            "[",
            "]",
            [_format(item, depth=depth + 1, seen=seen) for item in value],
            depth,
        )
    if isinstance(value, Set):
        members = sorted(_format(item, depth=depth + 1, seen=seen) for item in value)
        return _block(type(value).__name__, "{", "}", members, depth)
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = [
            f"{_quote(name)}: {_format(getattr(value, name), depth=depth + 1, seen=seen)}"
            for name in (field.name for field in dataclasses.fields(value))
        ]
        return _block(type(value).__name__, "{", "}", fields, depth)
    attributes = getattr(value, "__dict__", None)
    if isinstance(attributes, dict) and not isinstance(value, type):
        public = sorted((key, item) for key, item in attributes.items() if not key.startswith("_"))
        return _block(
            type(value).__name__,
            "{",
            "}",
            [f"{_quote(key)}: {_format(item, depth=depth + 1, seen=seen)}" for key, item in public],
            depth,
        )
    return repr(value)


def _block(name: str, opener: str, closer: str, entries: list[str], depth: int) -> str:
    if not entries:
        return f"{name} {opener}{closer}"
    inner = INDENT * (depth + 1)
    body = "".join(f"{inner}{entry},\n" for entry in entries)
    return f"{name} {opener}\n{body}{INDENT * depth}{closer}"


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _format_element(element: Element, *, depth: int) -> str:
    indent = INDENT * depth
    inner = INDENT * (depth + 1)
    tag = str(element.tag)
    attributes = "".join(
        f"\n{inner}{name}={_quote(str(value))}" for name, value in sorted(element.attrib.items())
    )
    children: list[str] = []
    if element.text and element.text.strip():
        children.append(f"{inner}{element.text.strip()}")
    for child in element:
        children.append(f"{inner}{_format_element(child, depth=depth + 1)}")
        if child.tail and child.tail.strip():
            children.append(f"{inner}{child.tail.strip()}")
    if attributes:
        opening = f"<{tag}{attributes}\n{indent}"
    else:
        opening = f"<{tag}"
    if not children:
        return f"{opening}/>" if attributes else f"<{tag} />"
    return f"{opening}>\n" + "\n".join(children) + f"\n{indent}</{tag}>"
