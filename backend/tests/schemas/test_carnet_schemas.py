"""Carnet schemas — request bodies accept the persisted field names and map to core inputs.

Invariants:
    - Members accept aliases (nombre, dni, numeroLote, ...) and Python names
    - Missing member fields default to "" (the core validator reports them)
    - Role and kind only accept their Spanish labels
    - Member count is not bounded by the schema

Design Decisions:
    - Length limits only; composition rules are covered in tests/core
"""

import pytest
from pydantic import ValidationError

from app.core.domain_types import CarnetKind, MemberRole
from app.core.import_rows import ImportResult, ImportRowError
from app.schemas.carnet import (
    CarnetCreate, CarnetUpdate, DeactivateRequest, ImportResponse, MemberIn,
)


# --- MemberIn -----------------------------------------------------------------

def test_member_accepts_aliases():
    member = MemberIn.model_validate({
        "nombre": "Ana", "apellido": "Gomez", "dni": "30111222",
        "barrio": "Santa Clara", "numeroLote": "10", "telefono": "351",
        "condicion": "Familiar Adherente",
    })
    assert member.first_name == "Ana"
    assert member.lot_number == "10"
    assert member.role == MemberRole.ADHERENT_RELATIVE


def test_member_accepts_python_names():
    member = MemberIn(first_name="Ana", role=MemberRole.RELATIVE_2)
    assert member.first_name == "Ana"
    assert member.role == MemberRole.RELATIVE_2


def test_member_defaults_to_empty_holder():
    data = MemberIn().to_input()
    assert data.first_name == ""
    assert data.national_id == ""
    assert data.role == MemberRole.HOLDER


def test_member_rejects_unknown_role():
    with pytest.raises(ValidationError):
        MemberIn.model_validate({"nombre": "Ana", "condicion": "Primo"})


def test_member_field_length_enforced():
    with pytest.raises(ValidationError):
        MemberIn.model_validate({"nombre": "x" * 101})


# --- CarnetCreate / CarnetUpdate ----------------------------------------------

def test_create_maps_members_to_inputs():
    body = CarnetCreate.model_validate({
        "tipo": "Familiar",
        "miembros": [{"nombre": "Ana"}, {"nombre": "Luis", "condicion": "Familiar 1"}],
    })
    inputs = body.member_inputs()
    assert body.kind == CarnetKind.HOUSEHOLD
    assert body.created_by is None
    assert [m.role for m in inputs] == [MemberRole.HOLDER, MemberRole.RELATIVE_1]


def test_create_requires_kind():
    with pytest.raises(ValidationError):
        CarnetCreate.model_validate({"miembros": []})


def test_create_rejects_unknown_kind():
    with pytest.raises(ValidationError):
        CarnetCreate.model_validate({"tipo": "Grupal", "miembros": []})


def test_create_does_not_bound_member_count():
    body = CarnetCreate.model_validate({
        "tipo": "Familiar", "miembros": [{"nombre": str(i)} for i in range(8)],
    })
    assert len(body.members) == 8


def test_update_member_ids_keep_position():
    body = CarnetUpdate.model_validate({
        "tipo": "Familiar",
        "miembros": [{"id": "member-a", "nombre": "Ana"}, {"nombre": "Luis"}],
        "editadoPor": "Secretaria",
    })
    assert body.member_ids() == ["member-a", None]
    assert body.edited_by == "Secretaria"


# --- DeactivateRequest / ImportResponse ---------------------------------------

def test_deactivate_reason_defaults_to_empty():
    body = DeactivateRequest.model_validate({})
    assert body.reason == ""
    assert body.deactivated_by is None


def test_deactivate_accepts_aliases():
    body = DeactivateRequest.model_validate(
        {"motivoBaja": "Mudanza", "dadoDeBajaPor": "Secretaria"},
    )
    assert body.reason == "Mudanza"
    assert body.deactivated_by == "Secretaria"


def test_import_response_from_result():
    result = ImportResult(
        success_count=1,
        errors=[ImportRowError(3, "Falta número de LOTE"), ImportRowError(0, "lote 20")],
    )
    response = ImportResponse.from_result(result)
    assert response.model_dump() == {
        "success": 1,
        "errors": [
            {"row": 3, "reason": "Falta número de LOTE"},
            {"row": 0, "reason": "lote 20"},
        ],
    }
