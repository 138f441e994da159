"""
JSON Schema support: validation of a value against a schema, inference of
a draft-07 schema from a sample value, and an in-memory schema registry.
"""

import logging
import uuid
from datetime import datetime, timezone

import jsonschema

from .errors import SchemaDefinitionError
from .model import SchemaInfo, SchemaViolation
from .utils import ROOT_PATH, child_path, is_date, is_email, is_url

logger = logging.getLogger(__name__)

DRAFT_07 = "http://json-schema.org/draft-07/schema#"


class SchemaValidator:
    """Draft 7 validation with format checking; one violation per error."""

    def __init__(self, schema):
        try:
            jsonschema.Draft7Validator.check_schema(schema)
        except jsonschema.exceptions.SchemaError as exc:
            raise SchemaDefinitionError("Invalid JSON Schema: {}".format(exc.message)) from exc

        self.schema = schema
        self.validator = jsonschema.Draft7Validator(schema, format_checker=jsonschema.FormatChecker())

    def validate(self, value):
        violations = []

        for error in self.validator.iter_errors(value):
            path = ROOT_PATH
            for part in error.absolute_path:
                path = child_path(path, part)

            schema_path = "#/" + "/".join(str(part) for part in error.absolute_schema_path)

            violations.append(
                SchemaViolation(
                    path=path,
                    message=error.message,
                    keyword=str(error.validator),
                    schema_path=schema_path,
                    data=error.instance,
                    severity="error",
                )
            )

        violations.sort(key=lambda v: (v.path, v.schema_path))
        logger.debug("Schema validation produced %d violation(s)", len(violations))
        return violations


def infer_schema(value, title=None, description=None, required=False, additional_properties=False):
    """
    Build a draft-07 schema describing ``value``. Arrays are described by
    their first item; strings get a ``format`` when they look like an
    e-mail address, a URI or a date-time.
    """
    schema = {"$schema": DRAFT_07}
    if title:
        schema["title"] = title
    if description:
        schema["description"] = description
    schema.update(_infer(value, required, additional_properties, set()))
    return schema


def _infer(value, required, additional_properties, active):
    if value is None:
        return {"type": "null"}

    if isinstance(value, bool):
        return {"type": "boolean"}

    if isinstance(value, (int, float)):
        return {"type": "number"}

    if isinstance(value, str):
        schema = {"type": "string"}
        if is_email(value):
            schema["format"] = "email"
        elif is_url(value):
            schema["format"] = "uri"
        elif is_date(value):
            schema["format"] = "date-time"
        return schema

    # a value already being described is a cycle; leave it unconstrained
    if id(value) in active:
        return {}

    active.add(id(value))
    try:
        if isinstance(value, (list, tuple)):
            items = {}
            if len(value) > 0:
                items = _infer(value[0], required, additional_properties, active)
            return {"type": "array", "items": items, "minItems": 1 if required else 0}

        properties = {}
        required_keys = []
        for key, item in value.items():
            properties[key] = _infer(item, required, additional_properties, active)
            if required and item is not None:
                required_keys.append(key)

        schema = {"type": "object", "properties": properties}
        if required_keys:
            schema["required"] = required_keys
        schema["additionalProperties"] = bool(additional_properties)
        return schema
    finally:
        active.discard(id(value))


class SchemaRegistry:
    """Schemas kept in memory under generated ids."""

    def __init__(self):
        self._schemas = {}

    def save_schema(self, schema, name, description="", version="1.0.0", tags=None):
        SchemaValidator(schema)

        now = datetime.now(timezone.utc)
        schema_id = uuid.uuid4().hex
        self._schemas[schema_id] = SchemaInfo(
            id=schema_id,
            name=name,
            description=description,
            version=version,
            schema=schema,
            created_at=now,
            updated_at=now,
            tags=list(tags or []),
        )
        return schema_id

    def update_schema(self, schema_id, schema, version=None):
        info = self._schemas.get(schema_id)
        if info is None:
            raise KeyError(schema_id)

        SchemaValidator(schema)
        info.schema = schema
        if version is not None:
            info.version = version
        info.updated_at = datetime.now(timezone.utc)
        return info

    def get_schema(self, schema_id):
        return self._schemas.get(schema_id)

    def list_schemas(self):
        return list(self._schemas.values())

    def delete_schema(self, schema_id):
        return self._schemas.pop(schema_id, None) is not None
