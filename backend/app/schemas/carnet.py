"""Carnet Schemas — Pydantic models for the carnets API boundary.

Invariants:
    - JSON field names match the persisted record names (nombre, dni, numeroLote, ...),
      so validation error keys ("dni-1") line up with request fields
    - Schemas only check shape and length; composition rules live in core/enforce_carnet
    - Fields also accept their Python names (populate_by_name)

Design Decisions:
    - Member count is NOT bounded here: the core validator reports it as a field error
      ("miembros") in the same envelope as every other carnet rule
"""

from pydantic import BaseModel, ConfigDict, Field

from app.core.carnet import MemberInput
from app.core.domain_types import CarnetKind, MemberId, MemberRole
from app.core.import_rows import ImportResult


class MemberIn(BaseModel):
    """One member as submitted by the carnet form."""
    model_config = ConfigDict(populate_by_name=True)

    id: str | None = None  # only meaningful on edit
    first_name: str = Field("", alias="nombre", max_length=100)
    last_name: str = Field("", alias="apellido", max_length=100)
    national_id: str = Field("", alias="dni", max_length=20)
    neighborhood: str = Field("", alias="barrio", max_length=100)
    lot_number: str = Field("", alias="numeroLote", max_length=50)
    phone: str = Field("", alias="telefono", max_length=50)
    role: MemberRole = Field(MemberRole.HOLDER, alias="condicion")

    def to_input(self) -> MemberInput:
        return MemberInput(
            first_name=self.first_name,
            last_name=self.last_name,
            national_id=self.national_id,
            neighborhood=self.neighborhood,
            lot_number=self.lot_number,
            phone=self.phone,
            role=self.role,
        )


class CarnetBody(BaseModel):
    """Kind plus ordered members (holder first)."""
    model_config = ConfigDict(populate_by_name=True)

    kind: CarnetKind = Field(alias="tipo")
    members: list[MemberIn] = Field(alias="miembros")

    def member_inputs(self) -> list[MemberInput]:
        return [m.to_input() for m in self.members]


class CarnetCreate(CarnetBody):
    created_by: str | None = Field(None, alias="creadoPor", max_length=100)


class CarnetUpdate(CarnetBody):
    """Administrative edit — member ids keep identity across the edit."""
    edited_by: str | None = Field(None, alias="editadoPor", max_length=100)

    def member_ids(self) -> list[MemberId | None]:
        return [MemberId(m.id) if m.id else None for m in self.members]


class DeactivateRequest(BaseModel):
    """Baja request. An empty reason is rejected by the service with a field error."""
    model_config = ConfigDict(populate_by_name=True)

    reason: str = Field("", alias="motivoBaja", max_length=1000)
    deactivated_by: str | None = Field(None, alias="dadoDeBajaPor", max_length=100)


class ImportErrorOut(BaseModel):
    row: int
    reason: str


class ImportResponse(BaseModel):
    """Bulk import outcome — success counts carnets created, errors are row/lot level."""
    success: int
    errors: list[ImportErrorOut]

    @classmethod
    def from_result(cls, result: ImportResult) -> "ImportResponse":
        return cls(
            success=result.success_count,
            errors=[ImportErrorOut(row=e.row, reason=e.reason) for e in result.errors],
        )


class FilterOptions(BaseModel):
    neighborhoods: list[str]
    roles: list[str]
