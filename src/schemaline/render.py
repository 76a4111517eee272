"""Render records back to text.

``render_record`` writes the line grammar parsed by ``schemaline.parser``
with a correct declared count; ``record_to_json`` serializes an accepted
record with orjson.
"""
from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

import orjson

from schemaline.blueprint import (
    CLOSE_BRACKET,
    COUNT_SEPARATOR,
    ELEMENT_DELIMITER,
    FIELD_DELIMITER,
    OPEN_BRACKET,
    SUBFIELD_DELIMITER,
)
from schemaline.schema import RecordSchema, RepeatedStructuredField, ScalarField


def _checked(value: Any, forbidden: str, where: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{where}: expected a string, got {type(value).__name__}")
    for ch in forbidden:
        if ch in value:
            raise ValueError(f"{where}: value {value!r} contains delimiter {ch!r}")
    # Parsing trims values, so padding would not survive a round trip.
    if value != value.strip():
        raise ValueError(f"{where}: value {value!r} has leading or trailing whitespace")
    return value


def render_record(schema: RecordSchema, record: Mapping[str, Any]) -> str:
    """Render *record* as one line in *schema*'s format.

    Raises
    ------
    KeyError
        If a schema field is missing from *record*.
    ValueError
        If *record* is not a mapping, or a value cannot be written so that
        parsing gives it back unchanged (delimiters, padding, empty values).
    """
    if not isinstance(record, Mapping):
        raise ValueError(f"expected a mapping of fields, got {type(record).__name__}")
    parts: list[str] = []
    for spec in schema.fields:
        value = record[spec.key]
        if isinstance(spec, ScalarField):
            # An empty scalar would not match ``[^,]+``.
            if not value:
                raise ValueError(f"{spec.key}: scalar values cannot be empty")
            parts.append(_checked(value, FIELD_DELIMITER, spec.key))
            continue

        if not isinstance(value, Sequence) or isinstance(value, str):
            raise ValueError(f"{spec.key}: expected a list of elements")
        forbidden = ELEMENT_DELIMITER + CLOSE_BRACKET
        rendered: list[str] = []
        for index, element in enumerate(value):
            where = f"{spec.key}.{index}"
            if isinstance(spec, RepeatedStructuredField):
                if not isinstance(element, Mapping):
                    raise ValueError(f"{where}: expected a mapping of sub-fields")
                segment = SUBFIELD_DELIMITER.join(
                    _checked(element.get(key, ""), forbidden + SUBFIELD_DELIMITER, f"{where}.{key}")
                    for key in spec.shape_keys
                )
                # Empty segments are discarded by the parser.
                if not segment:
                    raise ValueError(f"{where}: structured element renders as an empty segment")
                rendered.append(segment)
            else:
                if not element:
                    raise ValueError(f"{where}: opaque elements cannot be empty")
                rendered.append(_checked(element, forbidden, where))
        parts.append(
            f"{OPEN_BRACKET}{len(rendered)}{COUNT_SEPARATOR}"
            f"{ELEMENT_DELIMITER.join(rendered)}{CLOSE_BRACKET}",
        )
    return FIELD_DELIMITER.join(parts)


def record_to_json(record: Mapping[str, Any], *, pretty: bool = True) -> bytes:
    """Serialize a record to JSON bytes, keeping key order."""
    option = orjson.OPT_INDENT_2 if pretty else 0
    return orjson.dumps(dict(record), option=option)
