"""JSON persistence for record schemas.

Payload format::

    {
      "name": "residencia",
      "fields": [
        {"key": "name", "kind": "scalar", "min_length": 1, "message": "..."},
        {"key": "casas", "kind": "repeated", "nonempty": true,
         "element": [{"key": "tamanho", "min_length": 1}, "numero"]},
        {"key": "tags", "kind": "repeated", "element_constraints": {"min_length": 1}}
      ]
    }

Constraint keys sit directly on the field (or sub-field) object. A sub-field
may be given as a bare key string.
"""
from __future__ import annotations

from dataclasses import fields as dataclass_fields
from pathlib import Path
from typing import Any

import orjson

from schemaline.errors import SchemaShapeError
from schemaline.schema import (
    FieldConstraints,
    FieldSpec,
    RecordSchema,
    RepeatedOpaqueField,
    RepeatedStructuredField,
    ScalarField,
    SubField,
)

_CONSTRAINT_KEYS: tuple[str, ...] = tuple(f.name for f in dataclass_fields(FieldConstraints))
_FIELD_KINDS = {"scalar", "repeated"}


def _constraints_from_dict(payload: dict[str, Any], where: str) -> FieldConstraints:
    values = {k: payload[k] for k in _CONSTRAINT_KEYS if k in payload}
    try:
        return FieldConstraints(**values)
    except (TypeError, ValueError) as exc:
        raise SchemaShapeError(f"{where}: invalid constraints: {exc}") from exc


def _constraints_to_dict(constraints: FieldConstraints) -> dict[str, Any]:
    default = FieldConstraints()
    return {
        key: getattr(constraints, key)
        for key in _CONSTRAINT_KEYS
        if getattr(constraints, key) != getattr(default, key)
    }


def _subfield_from_payload(raw: Any, where: str) -> SubField:
    if isinstance(raw, str):
        return SubField(key=raw)
    if not isinstance(raw, dict) or not isinstance(raw.get("key"), str):
        raise SchemaShapeError(f"{where}: sub-field must be a string or an object with a 'key'")
    return SubField(key=raw["key"], constraints=_constraints_from_dict(raw, f"{where}.{raw['key']}"))


def _field_from_dict(raw: Any, where: str) -> FieldSpec:
    if not isinstance(raw, dict):
        raise SchemaShapeError(f"{where}: field must be a JSON object")
    key = raw.get("key")
    if not isinstance(key, str):
        raise SchemaShapeError(f"{where}: field is missing a string 'key'")
    where = f"{where}.{key}"
    kind = raw.get("kind", "scalar")
    if kind not in _FIELD_KINDS:
        raise SchemaShapeError(f"{where}: unknown kind {kind!r} (expected one of: scalar, repeated)")

    constraints = _constraints_from_dict(raw, where)
    if kind == "scalar":
        if "element" in raw or "element_constraints" in raw:
            raise SchemaShapeError(f"{where}: scalar fields cannot declare elements")
        return ScalarField(key=key, constraints=constraints)

    element = raw.get("element")
    if element is None:
        element_payload = raw.get("element_constraints", {})
        if not isinstance(element_payload, dict):
            raise SchemaShapeError(f"{where}: 'element_constraints' must be a JSON object")
        return RepeatedOpaqueField(
            key=key,
            constraints=constraints,
            element_constraints=_constraints_from_dict(element_payload, f"{where}[]"),
        )
    if "element_constraints" in raw:
        raise SchemaShapeError(f"{where}: 'element_constraints' only applies to opaque elements")
    if not isinstance(element, list):
        raise SchemaShapeError(f"{where}: 'element' must be a list of sub-fields")
    shape = tuple(_subfield_from_payload(sub, f"{where}[]") for sub in element)
    return RepeatedStructuredField(key=key, shape=shape, constraints=constraints)


def schema_from_dict(payload: Any) -> RecordSchema:
    """Build a ``RecordSchema`` from its JSON payload.

    Raises ``SchemaShapeError`` on malformed payloads. Field-count and key
    uniqueness checks are left to the blueprint builder.
    """
    if not isinstance(payload, dict):
        raise SchemaShapeError("schema payload must be a JSON object")
    name = payload.get("name", "record")
    if not isinstance(name, str) or not name:
        raise SchemaShapeError("schema 'name' must be a non-empty string")
    raw_fields = payload.get("fields")
    if not isinstance(raw_fields, list):
        raise SchemaShapeError(f"schema {name!r}: 'fields' must be a list")
    return RecordSchema(
        name=name,
        fields=tuple(_field_from_dict(raw, name) for raw in raw_fields),
    )


def schema_to_dict(schema: RecordSchema) -> dict[str, Any]:
    """Inverse of ``schema_from_dict``."""
    out_fields: list[dict[str, Any]] = []
    for spec in schema.fields:
        row: dict[str, Any] = {"key": spec.key, "kind": "scalar" if not spec.repeated else "repeated"}
        row.update(_constraints_to_dict(spec.constraints))
        if isinstance(spec, RepeatedStructuredField):
            row["element"] = [
                {"key": sub.key, **_constraints_to_dict(sub.constraints)}
                for sub in spec.shape
            ]
        elif isinstance(spec, RepeatedOpaqueField) and not spec.element_constraints.is_empty:
            row["element_constraints"] = _constraints_to_dict(spec.element_constraints)
        out_fields.append(row)
    return {"name": schema.name, "fields": out_fields}


def load_schema(path: Path) -> RecordSchema:
    """Load a schema JSON file."""
    try:
        payload = orjson.loads(path.read_bytes())
    except orjson.JSONDecodeError as exc:
        raise SchemaShapeError(f"{path}: invalid JSON: {exc}") from exc
    return schema_from_dict(payload)


def save_schema(schema: RecordSchema, path: Path) -> None:
    """Write *schema* as pretty-printed JSON."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(orjson.dumps(schema_to_dict(schema), option=orjson.OPT_INDENT_2) + b"\n")
