"""Shared schemas for the schemaline tests."""
from __future__ import annotations

from typing import Any

import pytest

from schemaline.schema import (
    FieldConstraints,
    RecordSchema,
    RepeatedOpaqueField,
    RepeatedStructuredField,
    ScalarField,
    SubField,
)


def _casas() -> RepeatedStructuredField:
    return RepeatedStructuredField(
        key="casas",
        shape=(
            SubField("tamanho", FieldConstraints(min_length=1, message="Tamanho é obrigatório")),
            SubField("numero", FieldConstraints(min_length=1, message="Número é obrigatório")),
        ),
        constraints=FieldConstraints(nonempty=True, message="Ao menos uma casa deve ser informada"),
    )


def _people_fields() -> tuple[ScalarField, ...]:
    return (
        ScalarField("name", FieldConstraints(min_length=1, message="Nome é obrigatório")),
        ScalarField("city", FieldConstraints(min_length=1, message="Cidade é obrigatória")),
        ScalarField("estado", FieldConstraints(min_length=1)),
    )


@pytest.fixture
def residencia() -> RecordSchema:
    """name, city, estado + casas:[tamanho, numero]."""
    return RecordSchema(name="residencia", fields=(*_people_fields(), _casas()))


@pytest.fixture
def residencia_tags() -> RecordSchema:
    """Same as ``residencia`` plus an opaque ``tags`` list."""
    return RecordSchema(
        name="residencia_tags",
        fields=(*_people_fields(), _casas(), RepeatedOpaqueField("tags")),
    )


@pytest.fixture
def residencia_payload() -> dict[str, Any]:
    return {
        "name": "residencia",
        "fields": [
            {"key": "name", "kind": "scalar", "min_length": 1, "message": "Nome é obrigatório"},
            {"key": "city", "kind": "scalar", "min_length": 1, "message": "Cidade é obrigatória"},
            {"key": "estado", "kind": "scalar", "min_length": 1},
            {
                "key": "casas",
                "kind": "repeated",
                "nonempty": True,
                "message": "Ao menos uma casa deve ser informada",
                "element": [
                    {"key": "tamanho", "min_length": 1, "message": "Tamanho é obrigatório"},
                    {"key": "numero", "min_length": 1, "message": "Número é obrigatório"},
                ],
            },
        ],
    }
