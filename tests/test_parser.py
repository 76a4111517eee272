"""Tests for schemaline.parser — extraction and count reconciliation."""
from __future__ import annotations

import logging

import pytest

from schemaline.blueprint import build_blueprint
from schemaline.errors import FormatError, RecordValidationError
from schemaline.parser import ParseDiagnostic, parse_and_validate, parse_record
from schemaline.schema import RecordSchema, repeated, scalar


def _parse(schema: RecordSchema, text: str) -> tuple[dict, list[ParseDiagnostic]]:
    diagnostics: list[ParseDiagnostic] = []
    record = parse_record(build_blueprint(schema), text, on_diagnostic=diagnostics.append)
    return record, diagnostics


# ───────────────────────────── Scenarios ─────────────────────────────


class TestScenarios:
    def test_single_structured_element(self, residencia: RecordSchema) -> None:
        record, diagnostics = _parse(residencia, "rodrigo,rio de janeiro,rj,[1:grande,231]")
        assert record == {
            "name": "rodrigo",
            "city": "rio de janeiro",
            "estado": "rj",
            "casas": [{"tamanho": "grande", "numero": "231"}],
        }
        assert diagnostics == []

    def test_two_elements_count_matches(self, residencia: RecordSchema) -> None:
        record, diagnostics = _parse(residencia, "rodrigo,rio de janeiro,rj,[2:grande,231|média,78]")
        assert record["casas"] == [
            {"tamanho": "grande", "numero": "231"},
            {"tamanho": "média", "numero": "78"},
        ]
        assert diagnostics == []

    def test_declared_count_overstated(self, residencia: RecordSchema) -> None:
        record, diagnostics = _parse(residencia, "rodrigo,rio de janeiro,rj,[3:grande,231]")
        assert record["casas"] == [{"tamanho": "grande", "numero": "231"}]
        assert diagnostics == [
            ParseDiagnostic(field="casas", kind="count_mismatch", declared=3, actual=1),
        ]

    def test_two_repeated_fields(self, residencia_tags: RecordSchema) -> None:
        record, diagnostics = _parse(
            residencia_tags,
            "rodrigo,rio de janeiro,rj,[2:grande,231|média,78],[3:quintal|garagem|piscina]",
        )
        assert record["tags"] == ["quintal", "garagem", "piscina"]
        assert len(record["casas"]) == 2
        assert diagnostics == []


# ───────────────────────────── Reconciliation ────────────────────────


class TestCountReconciliation:
    def test_undercount_keeps_parsed_elements(self) -> None:
        schema = RecordSchema(name="t", fields=(scalar("owner"), repeated("tags")))
        record, diagnostics = _parse(schema, "ana,[1:a|b|c]")
        assert record["tags"] == ["a", "b", "c"]
        assert diagnostics[0].declared == 1
        assert diagnostics[0].actual == 3

    def test_zero_count_empty_section(self) -> None:
        schema = RecordSchema(name="t", fields=(scalar("owner"), repeated("tags")))
        record, diagnostics = _parse(schema, "ana,[0:]")
        assert record == {"owner": "ana", "tags": []}
        assert diagnostics == []

    def test_empty_segments_discarded(self) -> None:
        schema = RecordSchema(name="t", fields=(scalar("owner"), repeated("tags")))
        record, diagnostics = _parse(schema, "ana,[2:a|| |b|]")
        assert record["tags"] == ["a", "b"]
        assert diagnostics == []

    def test_leading_zero_count(self) -> None:
        schema = RecordSchema(name="t", fields=(scalar("owner"), repeated("tags")))
        _, diagnostics = _parse(schema, "ana,[02:a|b]")
        assert diagnostics == []

    def test_opaque_element_kept_verbatim(self) -> None:
        schema = RecordSchema(name="t", fields=(scalar("owner"), repeated("notes")))
        record, _ = _parse(schema, "ana,[1:see: a, b and c]")
        assert record["notes"] == ["see: a, b and c"]

    def test_missing_sub_values_filled(self, residencia: RecordSchema) -> None:
        record, diagnostics = _parse(residencia, "rodrigo,rio,rj,[1:grande]")
        assert record["casas"] == [{"tamanho": "grande", "numero": ""}]
        assert diagnostics == [
            ParseDiagnostic(field="casas", kind="shape_mismatch", declared=2, actual=1, element_index=0),
        ]

    def test_extra_sub_values_dropped(self, residencia: RecordSchema) -> None:
        record, diagnostics = _parse(residencia, "rodrigo,rio,rj,[2:grande,231|média,78,fundos]")
        assert record["casas"][1] == {"tamanho": "média", "numero": "78"}
        assert [(d.kind, d.element_index, d.actual) for d in diagnostics] == [
            ("shape_mismatch", 1, 3),
        ]
        assert "dropped extra values" in diagnostics[0].message

    def test_default_sink_logs_warning(
        self, residencia: RecordSchema, caplog: pytest.LogCaptureFixture,
    ) -> None:
        with caplog.at_level(logging.WARNING, logger="schemaline.parser"):
            record = parse_record(build_blueprint(residencia), "rodrigo,rio,rj,[3:grande,231]")
        assert len(record["casas"]) == 1
        assert "declared count (3) differs from the number of elements found (1)" in caplog.text


# ───────────────────────────── Whitespace and order ──────────────────


class TestNormalization:
    def test_whitespace_invariance(self, residencia: RecordSchema) -> None:
        plain, _ = _parse(residencia, "rodrigo,rio de janeiro,rj,[2:grande,231|média,78]")
        padded, _ = _parse(
            residencia,
            "  rodrigo , rio de janeiro ,rj   ,[2:  grande ,  231 |  média , 78  ]",
        )
        assert padded == plain

    def test_blank_scalar_becomes_empty_string(self, residencia: RecordSchema) -> None:
        record, _ = _parse(residencia, "rodrigo,   ,rj,[1:grande,231]")
        assert record["city"] == ""

    def test_keys_follow_schema_order(self, residencia_tags: RecordSchema) -> None:
        record, _ = _parse(residencia_tags, "a,b,c,[1:x,y],[1:z]")
        assert tuple(record) == residencia_tags.keys

    def test_records_are_independent(self, residencia: RecordSchema) -> None:
        blueprint = build_blueprint(residencia)
        first = parse_record(blueprint, "a,b,c,[1:x,y]")
        first["casas"].append({"tamanho": "z", "numero": "9"})
        second = parse_record(blueprint, "a,b,c,[1:x,y]")
        assert len(second["casas"]) == 1


# ───────────────────────────── Format errors ─────────────────────────


class TestFormatErrors:
    @pytest.mark.parametrize(
        "text",
        [
            "rodrigo,rio de janeiro,rj,[1:grande,231",
            "rodrigo,rj,[1:grande,231]",
            "rodrigo,rio de janeiro,rj,extra,[1:grande,231]",
            "rodrigo,rio de janeiro,rj,[x:grande,231]",
            "rodrigo,rio de janeiro,rj,1:grande,231",
            "rodrigo,,rj,[1:grande,231]",
            "",
        ],
    )
    def test_malformed_input(self, residencia: RecordSchema, text: str) -> None:
        with pytest.raises(FormatError):
            parse_record(build_blueprint(residencia), text)

    def test_oversized_count_is_format_error(self) -> None:
        schema = RecordSchema(name="t", fields=(scalar("owner"), repeated("tags")))
        with pytest.raises(FormatError):
            parse_record(build_blueprint(schema), "ana,[" + "9" * 5000 + ":a]")

    def test_longest_count_still_parses(self) -> None:
        schema = RecordSchema(name="t", fields=(scalar("owner"), repeated("tags")))
        record, diagnostics = _parse(schema, "ana,[" + "9" * 18 + ":a]")
        assert record["tags"] == ["a"]
        assert diagnostics[0].declared == 10**18 - 1

    def test_error_carries_input_and_schema(self, residencia: RecordSchema) -> None:
        with pytest.raises(FormatError) as excinfo:
            parse_record(build_blueprint(residencia), "nope")
        assert excinfo.value.text == "nope"
        assert excinfo.value.schema_name == "residencia"


# ───────────────────────────── parse_and_validate ────────────────────


class TestParseAndValidate:
    def test_accepts_valid_line(self, residencia: RecordSchema) -> None:
        record = parse_and_validate(residencia, "rodrigo,rio de janeiro,rj,[1:grande,231]")
        assert record["casas"] == [{"tamanho": "grande", "numero": "231"}]

    def test_rejection_is_not_format_error(self, residencia: RecordSchema) -> None:
        with pytest.raises(RecordValidationError) as excinfo:
            parse_and_validate(residencia, "rodrigo,rio,rj,[0:]")
        assert not isinstance(excinfo.value, FormatError)
        assert excinfo.value.issues[0].reason == "Ao menos uma casa deve ser informada"

    def test_format_error_before_validation(self, residencia: RecordSchema) -> None:
        with pytest.raises(FormatError):
            parse_and_validate(residencia, "rodrigo")
