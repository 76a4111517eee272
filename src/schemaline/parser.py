"""Record parser: apply a blueprint to one input line.

Repeated segments carry a self-declared element count. The count is
reconciled against the elements actually found, never trusted: a mismatch is
reported as a ``ParseDiagnostic`` and parsing continues with what was found.
The same applies when a structured element has more or fewer sub-values than
its shape declares (missing positions become ``""``, extras are dropped).

Diagnostics go to the ``on_diagnostic`` callable when one is given, otherwise
they are logged as warnings on the ``schemaline.parser`` logger.
"""
from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Literal, TypeAlias

from schemaline.blueprint import (
    ELEMENT_DELIMITER,
    SUBFIELD_DELIMITER,
    Blueprint,
    FieldDescriptor,
    blueprint_for,
)
from schemaline.errors import FormatError
from schemaline.schema import RecordSchema
from schemaline.validation import validate_record

log = logging.getLogger("schemaline.parser")

DiagnosticKind: TypeAlias = Literal["count_mismatch", "shape_mismatch"]
DiagnosticSink: TypeAlias = Callable[["ParseDiagnostic"], None]
Element: TypeAlias = str | dict[str, str]


@dataclass(frozen=True, slots=True)
class ParseDiagnostic:
    """A non-fatal notice about a repeated field.

    ``count_mismatch``: ``declared`` is the count written in the segment,
    ``actual`` the number of elements found.
    ``shape_mismatch``: ``declared`` is the shape length, ``actual`` the
    number of sub-values in element ``element_index``.
    """

    field: str
    kind: DiagnosticKind
    declared: int
    actual: int
    element_index: int | None = None

    @property
    def message(self) -> str:
        if self.kind == "count_mismatch":
            return (
                f"field {self.field!r}: declared count ({self.declared}) differs from "
                f"the number of elements found ({self.actual})"
            )
        action = "dropped extra values" if self.actual > self.declared else "filled missing values"
        return (
            f"field {self.field!r}, element {self.element_index}: expected {self.declared} "
            f"sub-values, got {self.actual} ({action})"
        )


def log_diagnostic(diagnostic: ParseDiagnostic) -> None:
    """Default sink: one warning per diagnostic."""
    log.warning("%s", diagnostic.message)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------

def _split_elements(section: str) -> list[str]:
    """Split an elements section on ``|``; empty segments are discarded."""
    return [part for part in (item.strip() for item in section.split(ELEMENT_DELIMITER)) if part]


def _structure_element(
    desc: FieldDescriptor,
    index: int,
    segment: str,
    emit: DiagnosticSink,
) -> dict[str, str]:
    values = [part.strip() for part in segment.split(SUBFIELD_DELIMITER)]
    if len(values) != len(desc.shape):
        emit(ParseDiagnostic(
            field=desc.key,
            kind="shape_mismatch",
            declared=len(desc.shape),
            actual=len(values),
            element_index=index,
        ))
    padded = values + [""] * (len(desc.shape) - len(values))
    return dict(zip(desc.shape, padded))


def _extract_repeated(
    desc: FieldDescriptor,
    groups: dict[str, str | None],
    emit: DiagnosticSink,
) -> list[Element]:
    segments = _split_elements(groups[desc.value_capture] or "")
    elements: list[Element]
    if desc.structured:
        elements = [
            _structure_element(desc, index, segment, emit)
            for index, segment in enumerate(segments)
        ]
    else:
        elements = list(segments)

    declared = int(groups[desc.count_capture] or "0")
    if declared != len(elements):
        emit(ParseDiagnostic(
            field=desc.key,
            kind="count_mismatch",
            declared=declared,
            actual=len(elements),
        ))
    return elements


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------

def parse_record(
    blueprint: Blueprint,
    text: str,
    *,
    on_diagnostic: DiagnosticSink | None = None,
) -> dict[str, Any]:
    """Parse *text* into a record keyed by the blueprint's field keys.

    Raises
    ------
    FormatError
        If *text* does not match the blueprint's pattern in its entirety.
    """
    match = blueprint.pattern.match(text)
    if match is None:
        raise FormatError(
            f"input does not match the format of schema {blueprint.schema.name!r}: {text!r}",
            text=text,
            schema_name=blueprint.schema.name,
        )

    emit = on_diagnostic if on_diagnostic is not None else log_diagnostic
    groups = match.groupdict()
    record: dict[str, Any] = {}
    for desc in blueprint.fields:
        if desc.repeated:
            record[desc.key] = _extract_repeated(desc, groups, emit)
        else:
            record[desc.key] = (groups[desc.value_capture] or "").strip()
    return record


def parse_and_validate(
    schema: RecordSchema,
    text: str,
    *,
    on_diagnostic: DiagnosticSink | None = None,
) -> dict[str, Any]:
    """Parse *text* with the schema's cached blueprint, then validate it.

    Raises
    ------
    SchemaShapeError
        If the schema cannot be compiled.
    FormatError
        If *text* does not match the schema's format.
    RecordValidationError
        If the parsed record violates the schema's constraints.
    """
    record = parse_record(blueprint_for(schema), text, on_diagnostic=on_diagnostic)
    return validate_record(schema, record)
