"""Snapshot serializer tests."""

from __future__ import annotations

from dataclasses import dataclass
from xml.etree.ElementTree import fromstring

from batch_snapshot_tester.snapshots import serialize


@dataclass
class _Point:
    x: int
    y: int


def test_mapping_keys_are_sorted_and_quoted() -> None:
    assert serialize({"foo": "bar", "alpha": 1}) == 'dict {\n  "alpha": 1,\n  "foo": "bar",\n}'


def test_equal_mappings_serialize_identically_regardless_of_order() -> None:
    assert serialize({"b": [1, 2], "a": {"z": None}}) == serialize({"a": {"z": None}, "b": [1, 2]})


def test_nested_structures_are_indented() -> None:
    assert serialize({"items": [1, "two"]}) == (
        'dict {\n  "items": list [\n    1,\n    "two",\n  ],\n}'
    )


def test_empty_containers_and_scalars() -> None:
    assert serialize([]) == "list []"
    assert serialize({}) == "dict {}"
    assert serialize(None) == "None"
    assert serialize(True) == "True"
    assert serialize('say "hi"') == '"say \\"hi\\""'


def test_sets_are_sorted() -> None:
    assert serialize({3, 1, 2}) == "set {\n  1,\n  2,\n  3,\n}"


def test_dataclasses_render_with_their_type_name() -> None:
    assert serialize(_Point(1, 2)) == '_Point {\n  "x": 1,\n  "y": 2,\n}'


def test_circular_references_are_marked() -> None:
    value: list[object] = [1]
    value.append(value)

    assert serialize(value) == "list [\n  1,\n  [Circular],\n]"


def test_xml_elements_render_as_markup() -> None:
    element = fromstring('<root id="1"><child>text</child><empty /></root>')

    assert serialize(element) == (
        '<root\n  id="1"\n>\n  <child>\n    text\n  </child>\n  <empty />\n</root>'
    )
