"""Blueprint builder: compile a record schema into a line pattern.

The build is a small compiler pass::

    field specs -> FieldDescriptor list -> PatternFragment list -> regex

Scalars match ``[^,]+``; repeated fields match a bracketed segment
``[<count>:<element>|<element>|...]``. Fragments are comma-joined in schema
order and anchored to the whole input.

Capture names are derived by ``capture_names``::

    scalar   k -> ("k",)
    repeated k -> ("kCount", "kElements")

Public API:

* ``build_blueprint(schema, ...)`` — build and check a blueprint.
* ``blueprint_for(schema)`` — cached build with default options.
"""
from __future__ import annotations

import functools
import logging
import re
from dataclasses import dataclass

from schemaline.errors import SchemaShapeError
from schemaline.schema import (
    FieldKind,
    FieldSpec,
    RecordSchema,
    RepeatedOpaqueField,
    RepeatedStructuredField,
    ScalarField,
)

log = logging.getLogger("schemaline.blueprint")

# ---------------------------------------------------------------------------
# Grammar constants
# ---------------------------------------------------------------------------

FIELD_DELIMITER = ","
ELEMENT_DELIMITER = "|"
SUBFIELD_DELIMITER = ","
COUNT_SEPARATOR = ":"
OPEN_BRACKET = "["
CLOSE_BRACKET = "]"

COUNT_SUFFIX = "Count"
ELEMENTS_SUFFIX = "Elements"

# Declared counts longer than this do not match the pattern.
MAX_COUNT_DIGITS = 18

_SCALAR_BODY = f"[^{re.escape(FIELD_DELIMITER)}]+"
# Zero-or-more so that ``[0:]`` is a valid empty segment.
_ELEMENTS_BODY = f"[^{re.escape(CLOSE_BRACKET)}]*"


# ---------------------------------------------------------------------------
# Blueprint types
# ---------------------------------------------------------------------------

@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """Extraction instructions for one schema field."""

    key: str
    kind: FieldKind
    captures: tuple[str, ...]
    shape: tuple[str, ...] = ()

    @property
    def repeated(self) -> bool:
        return self.kind != "scalar"

    @property
    def structured(self) -> bool:
        return self.kind == "repeated_structured"

    @property
    def value_capture(self) -> str:
        """Group holding the scalar text or the raw elements section."""
        return self.captures[-1]

    @property
    def count_capture(self) -> str:
        if not self.repeated:
            raise AttributeError(f"scalar field {self.key!r} has no count capture")
        return self.captures[0]


@dataclass(frozen=True, slots=True)
class PatternFragment:
    """Regex source for one field, before joining."""

    key: str
    source: str


@dataclass(frozen=True, slots=True)
class Blueprint:
    """Compiled pattern plus ordered field descriptors for one schema."""

    schema: RecordSchema
    pattern: re.Pattern[str]
    fields: tuple[FieldDescriptor, ...]

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(desc.key for desc in self.fields)

    @property
    def capture_names(self) -> tuple[str, ...]:
        return tuple(name for desc in self.fields for name in desc.captures)


# ---------------------------------------------------------------------------
# Compiler pass
# ---------------------------------------------------------------------------

def capture_names(key: str, kind: FieldKind) -> tuple[str, ...]:
    """Regex group names for a field: ``(key,)`` or ``(keyCount, keyElements)``."""
    if kind == "scalar":
        return (key,)
    return (key + COUNT_SUFFIX, key + ELEMENTS_SUFFIX)


def describe_field(spec: FieldSpec) -> FieldDescriptor:
    """Lower one field spec into its descriptor."""
    match spec:
        case RepeatedStructuredField():
            shape = spec.shape_keys
        case ScalarField() | RepeatedOpaqueField():
            shape = ()
        case _:
            raise SchemaShapeError(f"unsupported field specification: {spec!r}")
    return FieldDescriptor(
        key=spec.key,
        kind=spec.kind,
        captures=capture_names(spec.key, spec.kind),
        shape=shape,
    )


def fragment_for(desc: FieldDescriptor) -> PatternFragment:
    """Regex fragment matching one field's text."""
    if not desc.repeated:
        return PatternFragment(key=desc.key, source=f"(?P<{desc.value_capture}>{_SCALAR_BODY})")
    source = (
        re.escape(OPEN_BRACKET)
        + rf"(?P<{desc.count_capture}>\d{{1,{MAX_COUNT_DIGITS}}})"
        + re.escape(COUNT_SEPARATOR)
        + f"(?P<{desc.value_capture}>{_ELEMENTS_BODY})"
        + re.escape(CLOSE_BRACKET)
    )
    return PatternFragment(key=desc.key, source=source)


def join_fragments(fragments: tuple[PatternFragment, ...]) -> str:
    """Join fragments with the field delimiter and anchor to the whole input."""
    body = re.escape(FIELD_DELIMITER).join(fragment.source for fragment in fragments)
    return rf"\A{body}\Z"


# ---------------------------------------------------------------------------
# Shape checks
# ---------------------------------------------------------------------------

def _check_key(key: str, where: str) -> None:
    if not isinstance(key, str) or not key.isidentifier():
        raise SchemaShapeError(f"{where}: key {key!r} is not a valid identifier")


def _check_shape(
    schema: RecordSchema,
    *,
    max_repeated: int | None,
    require_structured: bool,
) -> None:
    if not schema.fields:
        raise SchemaShapeError(f"schema {schema.name!r} has no fields")

    seen: set[str] = set()
    for spec in schema.fields:
        _check_key(spec.key, f"schema {schema.name!r}")
        if spec.key in seen:
            raise SchemaShapeError(f"schema {schema.name!r}: duplicate field key {spec.key!r}")
        seen.add(spec.key)

        if isinstance(spec, RepeatedStructuredField):
            if not spec.shape:
                raise SchemaShapeError(
                    f"schema {schema.name!r}: field {spec.key!r} declares an empty element shape",
                )
            sub_seen: set[str] = set()
            for sub in spec.shape:
                _check_key(sub.key, f"schema {schema.name!r}, field {spec.key!r}")
                if sub.key in sub_seen:
                    raise SchemaShapeError(
                        f"schema {schema.name!r}: duplicate sub-field key {sub.key!r} "
                        f"in field {spec.key!r}",
                    )
                sub_seen.add(sub.key)
        elif isinstance(spec, RepeatedOpaqueField) and require_structured:
            raise SchemaShapeError(
                f"schema {schema.name!r}: repeated field {spec.key!r} must declare an element shape",
            )

    repeated_keys = [spec.key for spec in schema.repeated_fields]
    if max_repeated is not None and len(repeated_keys) > max_repeated:
        raise SchemaShapeError(
            f"schema {schema.name!r} allows at most {max_repeated} repeated field(s), "
            f"got {len(repeated_keys)}: {', '.join(repeated_keys)}",
        )


def _check_captures(schema: RecordSchema, fields: tuple[FieldDescriptor, ...]) -> None:
    owners: dict[str, str] = {}
    for desc in fields:
        for name in desc.captures:
            if name in owners:
                raise SchemaShapeError(
                    f"schema {schema.name!r}: capture name {name!r} of field {desc.key!r} "
                    f"collides with field {owners[name]!r}",
                )
            owners[name] = desc.key


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def build_blueprint(
    schema: RecordSchema,
    *,
    max_repeated: int | None = None,
    require_structured: bool = False,
) -> Blueprint:
    """Build the parse blueprint for *schema*.

    Parameters
    ----------
    schema:
        The record schema; field order decides the order of the line.
    max_repeated:
        Upper bound on the number of repeated fields (``1`` for schemas that
        must carry a single bracketed segment).
    require_structured:
        Reject repeated fields whose elements are opaque.

    Raises
    ------
    SchemaShapeError
        If the schema has no fields, duplicate or non-identifier keys,
        colliding capture names, or breaks one of the options above.
    """
    if max_repeated is not None and max_repeated < 0:
        raise ValueError(f"max_repeated must be >= 0, got {max_repeated}")
    _check_shape(schema, max_repeated=max_repeated, require_structured=require_structured)

    fields = tuple(describe_field(spec) for spec in schema.fields)
    _check_captures(schema, fields)

    fragments = tuple(fragment_for(desc) for desc in fields)
    source = join_fragments(fragments)
    log.debug("blueprint for schema %r: %s", schema.name, source)
    return Blueprint(schema=schema, pattern=re.compile(source), fields=fields)


@functools.lru_cache(maxsize=128)
def blueprint_for(schema: RecordSchema) -> Blueprint:
    """Cached ``build_blueprint(schema)`` with default options."""
    return build_blueprint(schema)
