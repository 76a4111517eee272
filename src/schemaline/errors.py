"""Errors raised while building blueprints, parsing lines and validating records."""
from __future__ import annotations

from dataclasses import dataclass


class SchemaLineError(Exception):
    """Base error for this package."""


class SchemaShapeError(SchemaLineError, ValueError):
    """Raised when a schema cannot be turned into a parse blueprint."""


class FormatError(SchemaLineError, ValueError):
    """Raised when an input line does not match the blueprint's pattern."""

    def __init__(self, message: str, *, text: str = "", schema_name: str = "") -> None:
        super().__init__(message)
        self.text = text
        self.schema_name = schema_name


@dataclass(frozen=True, slots=True)
class FieldIssue:
    """One rejected field, addressed by a dotted path (``casas.0.numero``)."""

    path: str
    reason: str


class RecordValidationError(SchemaLineError):
    """Raised when a parsed record violates its schema's constraints."""

    def __init__(self, issues: tuple[FieldIssue, ...], *, schema_name: str = "") -> None:
        self.issues = issues
        self.schema_name = schema_name
        detail = "; ".join(f"{issue.path}: {issue.reason}" for issue in issues)
        super().__init__(f"record rejected by schema {schema_name!r}: {detail}")
