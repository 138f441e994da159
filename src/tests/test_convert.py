import xml.etree.ElementTree as ET

import pytest
import yaml

from json_sentinel.convert import convert
from json_sentinel.errors import ConversionShapeError, UnsupportedFormatError


def test_csv_requires_array_of_objects():
    with pytest.raises(ConversionShapeError) as exc_info:
        convert({"a": 1}, "csv")

    assert exc_info.value.required_shape == "array of objects"


def test_csv_uses_union_of_keys():
    output = convert([{"a": 1, "b": "x"}, {"a": 2, "c": True}], "csv")

    assert output.splitlines() == ["a,b,c", "1,x,", "2,,true"]


def test_csv_nested_values_are_json():
    output = convert([{"a": [1, 2]}], "csv")

    assert output.splitlines() == ["a", '"[1,2]"']


def test_yaml_round_trip():
    value = {"name": "Ada", "tags": ["x", "y"], "nested": {"n": None}}

    output = convert(value, "yaml")

    assert yaml.safe_load(output) == value
    assert convert(value, "yml") == output


def test_xml_single_key_becomes_root():
    output = convert({"user": {"name": "Ada", "tags": ["a", "b"], "active": True}}, "xml")

    root = ET.fromstring(output)
    tags = []
    for element in root.findall("tags"):
        tags.append(element.text)

    assert root.tag == "user"
    assert root.find("name").text == "Ada"
    assert root.find("active").text == "true"
    assert tags == ["a", "b"]


def test_xml_list_root():
    root = ET.fromstring(convert([1, 2], "xml"))

    assert root.tag == "root"
    assert [item.text for item in root.findall("item")] == ["1", "2"]


def test_toml():
    output = convert({"a": 1, "b": "x"}, "toml")

    assert "a = 1" in output
    assert 'b = "x"' in output


def test_toml_rejects_null():
    with pytest.raises(ConversionShapeError):
        convert({"a": None}, "toml")


def test_toml_requires_object():
    with pytest.raises(ConversionShapeError) as exc_info:
        convert([1, 2], "toml")

    assert exc_info.value.required_shape == "object"


def test_json_options():
    assert convert({"b": 1, "a": 2}, "json", sort_keys=True, minify=True) == '{"a":2,"b":1}'


def test_unknown_format():
    with pytest.raises(UnsupportedFormatError):
        convert({}, "ini")
