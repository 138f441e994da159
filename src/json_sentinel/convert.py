"""Conversion of a decoded JSON value to other serializations."""

import csv
import io
import json
import re
import xml.etree.ElementTree as ET

import tomli_w
import yaml

from .errors import ConversionShapeError, UnsupportedFormatError
from .utils import walk

FORMATS = ["json", "yaml", "xml", "csv", "toml"]

_XML_NAME = re.compile(r"^[A-Za-z_][\w.\-]*$")
_XML_INVALID = re.compile(r"[^\w.\-]")


class FormatConverter:
    def convert(self, value, target, **options):
        target_name = str(target).lower()
        if target_name == "yml":
            target_name = "yaml"

        if target_name not in FORMATS:
            raise UnsupportedFormatError("Unsupported format: {}".format(target))

        encoder = getattr(self, "_to_{}".format(target_name))
        return encoder(value, **options)

    # -------------------------------------------------------
    # Encoders
    # -------------------------------------------------------

    def _to_json(self, value, indent=2, sort_keys=False, minify=False):
        if minify:
            return json.dumps(value, ensure_ascii=False, sort_keys=sort_keys, separators=(",", ":"))
        return json.dumps(value, ensure_ascii=False, sort_keys=sort_keys, indent=indent)

    def _to_yaml(self, value, indent=2):
        return yaml.safe_dump(
            value,
            indent=indent,
            sort_keys=False,
            allow_unicode=True,
            default_flow_style=False,
        )

    def _to_xml(self, value, root_name="root", indent="  "):
        if isinstance(value, dict) and len(value) == 1:
            key = next(iter(value))
            root = ET.Element(_xml_name(key))
            _fill_xml(root, value[key])
        else:
            root = ET.Element(root_name)
            _fill_xml(root, value)

        ET.indent(root, space=indent)
        return ET.tostring(root, encoding="unicode")

    def _to_csv(self, value, delimiter=","):
        if not isinstance(value, list):
            raise ConversionShapeError(
                "CSV conversion requires an array of objects",
                required_shape="array of objects",
            )

        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=delimiter)

        if all(isinstance(item, dict) for item in value):
            header = []
            for item in value:
                for key in item.keys():
                    if key not in header:
                        header.append(key)

            if header:
                writer.writerow(header)
            for item in value:
                writer.writerow([_csv_cell(item.get(key)) for key in header])
        elif all(isinstance(item, list) for item in value):
            for row in value:
                writer.writerow([_csv_cell(cell) for cell in row])
        else:
            raise ConversionShapeError(
                "CSV conversion requires an array of objects",
                required_shape="array of objects",
            )

        return buffer.getvalue()

    def _to_toml(self, value):
        if not isinstance(value, dict):
            raise ConversionShapeError(
                "TOML conversion requires an object at the top level",
                required_shape="object",
            )

        for node in walk(value):
            if node.value is None:
                raise ConversionShapeError(
                    "TOML cannot represent null (found at {})".format(node.path),
                    required_shape="object without null values",
                )

        try:
            return tomli_w.dumps(value)
        except TypeError as exc:
            raise ConversionShapeError(
                "TOML conversion failed: {}".format(exc),
                required_shape="object without null values",
            ) from exc


def _xml_name(key):
    name = str(key)
    if _XML_NAME.match(name):
        return name
    name = _XML_INVALID.sub("_", name)
    if not name or not (name[0].isalpha() or name[0] == "_"):
        name = "_" + name
    return name


def _xml_text(value):
    if value is None:
        return None
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def _fill_xml(element, value):
    if isinstance(value, dict):
        for key, item in value.items():
            name = _xml_name(key)
            if isinstance(item, list):
                for entry in item:
                    _fill_xml(ET.SubElement(element, name), entry)
            else:
                _fill_xml(ET.SubElement(element, name), item)
    elif isinstance(value, list):
        for entry in value:
            _fill_xml(ET.SubElement(element, "item"), entry)
    else:
        element.text = _xml_text(value)


def _csv_cell(value):
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    return value


def convert(value, target, **options):
    return FormatConverter().convert(value, target, **options)
