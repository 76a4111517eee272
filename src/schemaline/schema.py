"""Declarative record schemas.

A schema is an ordered tuple of field specifications. The set of field kinds
is closed::

    ScalarField              -> one text value
    RepeatedOpaqueField      -> list of text values
    RepeatedStructuredField  -> list of sub-records with positional sub-fields

Constraints attached to fields are only read by ``schemaline.validation``;
the blueprint builder and the parser look at keys and kinds alone.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import ClassVar, Literal, TypeAlias


FieldKind: TypeAlias = Literal["scalar", "repeated_opaque", "repeated_structured"]


@dataclass(frozen=True, slots=True)
class FieldConstraints:
    """Per-value constraints handed to the validator.

    ``length`` is an exact length and wins over ``min_length``/``max_length``.
    ``nonempty`` only applies to repeated fields (at least one element).
    ``message`` replaces the validator's own wording for any rejection of
    this field.
    """

    min_length: int | None = None
    max_length: int | None = None
    length: int | None = None
    pattern: str | None = None
    nonempty: bool = False
    message: str | None = None

    def __post_init__(self) -> None:
        for name in ("min_length", "max_length", "length"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError(
                f"min_length must be <= max_length, got {self.min_length} > {self.max_length}",
            )
        if self.pattern is not None:
            try:
                re.compile(self.pattern)
            except re.error as exc:
                raise ValueError(f"pattern {self.pattern!r} is not a valid regex: {exc}") from exc

    @property
    def is_empty(self) -> bool:
        return self == _NO_CONSTRAINTS


_NO_CONSTRAINTS = FieldConstraints()


@dataclass(frozen=True, slots=True)
class SubField:
    """One positional sub-field of a structured repeated element."""

    key: str
    constraints: FieldConstraints = field(default_factory=FieldConstraints)


@dataclass(frozen=True, slots=True)
class ScalarField:
    key: str
    constraints: FieldConstraints = field(default_factory=FieldConstraints)

    kind: ClassVar[FieldKind] = "scalar"
    repeated: ClassVar[bool] = False


@dataclass(frozen=True, slots=True)
class RepeatedOpaqueField:
    """Repeated field whose elements are kept verbatim (trimmed)."""

    key: str
    constraints: FieldConstraints = field(default_factory=FieldConstraints)
    element_constraints: FieldConstraints = field(default_factory=FieldConstraints)

    kind: ClassVar[FieldKind] = "repeated_opaque"
    repeated: ClassVar[bool] = True


@dataclass(frozen=True, slots=True)
class RepeatedStructuredField:
    """Repeated field whose elements are split into ``shape`` sub-fields."""

    key: str
    shape: tuple[SubField, ...]
    constraints: FieldConstraints = field(default_factory=FieldConstraints)

    kind: ClassVar[FieldKind] = "repeated_structured"
    repeated: ClassVar[bool] = True

    @property
    def shape_keys(self) -> tuple[str, ...]:
        return tuple(sub.key for sub in self.shape)


FieldSpec: TypeAlias = ScalarField | RepeatedOpaqueField | RepeatedStructuredField


@dataclass(frozen=True, slots=True)
class RecordSchema:
    """Ordered collection of field specifications.

    Shape problems (no fields, duplicate keys) are reported by the blueprint
    builder, so a schema can be declared first and checked when it is used.
    """

    name: str
    fields: tuple[FieldSpec, ...]

    @property
    def keys(self) -> tuple[str, ...]:
        return tuple(spec.key for spec in self.fields)

    @property
    def repeated_fields(self) -> tuple[FieldSpec, ...]:
        return tuple(spec for spec in self.fields if spec.repeated)

    def get_field(self, key: str) -> FieldSpec:
        for spec in self.fields:
            if spec.key == key:
                return spec
        raise KeyError(key)


def scalar(key: str, **constraints: object) -> ScalarField:
    """Shorthand: ``scalar("name", min_length=1)``."""
    return ScalarField(key=key, constraints=FieldConstraints(**constraints))  # type: ignore[arg-type]


def repeated(
    key: str,
    shape: tuple[str | SubField, ...] | list[str | SubField] | None = None,
    *,
    element: FieldConstraints | None = None,
    **constraints: object,
) -> RepeatedOpaqueField | RepeatedStructuredField:
    """Shorthand for repeated fields.

    With ``shape`` the elements are structured; plain strings in ``shape``
    become unconstrained sub-fields. Without it the elements are opaque and
    ``element`` constrains each of them.
    """
    field_constraints = FieldConstraints(**constraints)  # type: ignore[arg-type]
    if shape is None:
        return RepeatedOpaqueField(
            key=key,
            constraints=field_constraints,
            element_constraints=element or FieldConstraints(),
        )
    if element is not None:
        raise ValueError("element constraints apply to opaque elements only; constrain sub-fields instead")
    subs = tuple(sub if isinstance(sub, SubField) else SubField(key=sub) for sub in shape)
    return RepeatedStructuredField(key=key, shape=subs, constraints=field_constraints)
