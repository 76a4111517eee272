"""Schema constraint validation backed by pydantic.

Each ``RecordSchema`` is translated once into a pydantic model:

* scalar fields become strict, constrained ``str`` fields (no coercion
  from other types);
* repeated fields become ``list`` fields, their ``min_length``/``max_length``/
  ``length``/``nonempty`` constraints bound the number of elements;
* opaque elements are ``str`` constrained by ``element_constraints``;
* structured elements are nested models, one constrained ``str`` per
  sub-field.

Fields are declared under positional names (``f0``, ``f1``, ...) with the
schema key as alias, so that any identifier is usable as a key.
"""
from __future__ import annotations

import functools
from typing import Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, create_model

from schemaline.errors import FieldIssue, RecordValidationError
from schemaline.schema import (
    FieldConstraints,
    FieldSpec,
    RecordSchema,
    RepeatedOpaqueField,
    RepeatedStructuredField,
)

_MODEL_CONFIG = ConfigDict(extra="forbid", regex_engine="python-re")


def _length_kwargs(constraints: FieldConstraints) -> dict[str, Any]:
    if constraints.length is not None:
        return {"min_length": constraints.length, "max_length": constraints.length}
    kwargs: dict[str, Any] = {}
    if constraints.min_length is not None:
        kwargs["min_length"] = constraints.min_length
    if constraints.max_length is not None:
        kwargs["max_length"] = constraints.max_length
    return kwargs


def _string_kwargs(constraints: FieldConstraints) -> dict[str, Any]:
    kwargs = _length_kwargs(constraints)
    kwargs["strict"] = True
    if constraints.pattern is not None:
        kwargs["pattern"] = constraints.pattern
    return kwargs


def _count_kwargs(constraints: FieldConstraints) -> dict[str, Any]:
    kwargs = _length_kwargs(constraints)
    if constraints.nonempty and kwargs.get("min_length", 0) < 1:
        kwargs["min_length"] = 1
    return kwargs


def _constrained_str(constraints: FieldConstraints) -> Any:
    return Annotated[str, Field(**_string_kwargs(constraints))]


def _element_model(schema: RecordSchema, spec: RepeatedStructuredField) -> type[BaseModel]:
    definitions: dict[str, Any] = {
        f"f{index}": (str, Field(alias=sub.key, **_string_kwargs(sub.constraints)))
        for index, sub in enumerate(spec.shape)
    }
    return create_model(
        f"{schema.name}_{spec.key}_element",
        __config__=_MODEL_CONFIG,
        **definitions,
    )


def _field_definition(schema: RecordSchema, spec: FieldSpec) -> tuple[Any, Any]:
    match spec:
        case RepeatedStructuredField():
            annotation: Any = list[_element_model(schema, spec)]  # type: ignore[misc]
            return annotation, Field(alias=spec.key, **_count_kwargs(spec.constraints))
        case RepeatedOpaqueField():
            annotation = list[_constrained_str(spec.element_constraints)]  # type: ignore[misc]
            return annotation, Field(alias=spec.key, **_count_kwargs(spec.constraints))
        case _:
            return str, Field(alias=spec.key, **_string_kwargs(spec.constraints))


@functools.lru_cache(maxsize=128)
def record_model(schema: RecordSchema) -> type[BaseModel]:
    """Pydantic model enforcing *schema*'s constraints (cached per schema)."""
    definitions = {
        f"f{index}": _field_definition(schema, spec)
        for index, spec in enumerate(schema.fields)
    }
    return create_model(f"{schema.name}_record", __config__=_MODEL_CONFIG, **definitions)


# ---------------------------------------------------------------------------
# Error translation
# ---------------------------------------------------------------------------

def _custom_message(schema: RecordSchema, loc: tuple[int | str, ...]) -> str | None:
    """Configured message for the value at *loc*, most specific first."""
    if not loc or not isinstance(loc[0], str):
        return None
    try:
        spec = schema.get_field(loc[0])
    except KeyError:
        return None

    if isinstance(spec, RepeatedStructuredField) and len(loc) >= 3:
        for sub in spec.shape:
            if sub.key == loc[2] and sub.constraints.message:
                return sub.constraints.message
    if isinstance(spec, RepeatedOpaqueField) and len(loc) >= 2:
        if spec.element_constraints.message:
            return spec.element_constraints.message
    return spec.constraints.message


def _issues(schema: RecordSchema, exc: ValidationError) -> tuple[FieldIssue, ...]:
    issues: list[FieldIssue] = []
    for error in exc.errors(include_url=False):
        loc = tuple(error["loc"])
        path = ".".join(str(part) for part in loc) or "<record>"
        reason = _custom_message(schema, loc) or error["msg"]
        issues.append(FieldIssue(path=path, reason=reason))
    return tuple(issues)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def validate_record(schema: RecordSchema, record: dict[str, Any]) -> dict[str, Any]:
    """Validate *record* against *schema*'s constraints.

    Returns the validated record (schema key order, plain dicts and lists).

    Raises
    ------
    RecordValidationError
        With one ``FieldIssue`` per rejected value.
    """
    model = record_model(schema)
    try:
        instance = model.model_validate(record)
    except ValidationError as exc:
        raise RecordValidationError(_issues(schema, exc), schema_name=schema.name) from exc
    return instance.model_dump(by_alias=True)
