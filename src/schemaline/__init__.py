"""Schema-driven parsing of delimited record lines."""

from schemaline.blueprint import (
    Blueprint,
    FieldDescriptor,
    PatternFragment,
    blueprint_for,
    build_blueprint,
    capture_names,
)
from schemaline.errors import (
    FieldIssue,
    FormatError,
    RecordValidationError,
    SchemaLineError,
    SchemaShapeError,
)
from schemaline.parser import (
    DiagnosticSink,
    ParseDiagnostic,
    parse_and_validate,
    parse_record,
)
from schemaline.render import record_to_json, render_record
from schemaline.schema import (
    FieldConstraints,
    RecordSchema,
    RepeatedOpaqueField,
    RepeatedStructuredField,
    ScalarField,
    SubField,
    repeated,
    scalar,
)
from schemaline.schema_io import load_schema, save_schema, schema_from_dict, schema_to_dict
from schemaline.validation import record_model, validate_record

__all__ = [
    "Blueprint",
    "DiagnosticSink",
    "FieldConstraints",
    "FieldDescriptor",
    "FieldIssue",
    "FormatError",
    "ParseDiagnostic",
    "PatternFragment",
    "RecordSchema",
    "RecordValidationError",
    "RepeatedOpaqueField",
    "RepeatedStructuredField",
    "ScalarField",
    "SchemaLineError",
    "SchemaShapeError",
    "SubField",
    "blueprint_for",
    "build_blueprint",
    "capture_names",
    "load_schema",
    "parse_and_validate",
    "parse_record",
    "record_model",
    "record_to_json",
    "render_record",
    "repeated",
    "save_schema",
    "scalar",
    "schema_from_dict",
    "schema_to_dict",
    "validate_record",
]
