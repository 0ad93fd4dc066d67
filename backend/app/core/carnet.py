"""Carnet Entities — Member and Carnet dataclasses plus their persisted record form.

Invariants:
    - A Carnet exclusively owns its members (no member shared across carnets)
    - deactivated_at, deactivation_reason, deactivated_by are set iff status is DEACTIVATED
    - Persisted records use the club's camelCase field names (nombre, dni, numeroLote, ...)
    - carnet_from_record tolerates missing optional keys (forward-compatible)

Design Decisions:
    - Dataclasses, not ORM rows: the whole collection is one stored blob, so entities
      never touch the database directly
    - MemberInput separate from Member: callers never supply ids
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone

from app.core.domain_types import (
    CarnetId, MemberId, CarnetKind, CarnetStatus, MemberRole,
)


@dataclass
class MemberInput:
    """Member data as entered by a caller (form or import) — no id yet."""
    first_name: str = ""
    last_name: str = ""
    national_id: str = ""
    neighborhood: str = ""
    lot_number: str = ""
    phone: str = ""
    role: MemberRole = MemberRole.HOLDER


@dataclass
class Member:
    id: MemberId
    first_name: str
    last_name: str
    national_id: str
    neighborhood: str
    lot_number: str
    phone: str
    role: MemberRole

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


@dataclass
class Carnet:
    id: CarnetId
    kind: CarnetKind
    status: CarnetStatus
    members: list[Member] = field(default_factory=list)
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    created_by: str = ""
    deactivated_at: datetime | None = None
    deactivation_reason: str | None = None
    deactivated_by: str | None = None

    @property
    def is_active(self) -> bool:
        return self.status == CarnetStatus.ACTIVE

    @property
    def holder(self) -> Member | None:
        return next(
            (m for m in self.members if m.role == MemberRole.HOLDER), None,
        )

    def copy(self) -> "Carnet":
        """Shallow-copy the carnet with its own member list."""
        return replace(self, members=[replace(m) for m in self.members])


# ─── Persisted record form ──────────────────────────────────────

def member_to_record(member: Member) -> dict:
    return {
        "id": member.id,
        "nombre": member.first_name,
        "apellido": member.last_name,
        "dni": member.national_id,
        "barrio": member.neighborhood,
        "numeroLote": member.lot_number,
        "telefono": member.phone,
        "condicion": member.role.value,
    }


def member_from_record(record: dict) -> Member:
    return Member(
        id=MemberId(record["id"]),
        first_name=record.get("nombre", ""),
        last_name=record.get("apellido", ""),
        national_id=record.get("dni", ""),
        neighborhood=record.get("barrio", ""),
        lot_number=record.get("numeroLote", ""),
        phone=record.get("telefono", ""),
        role=MemberRole(record.get("condicion", MemberRole.HOLDER.value)),
    )


def _iso(value: datetime | None) -> str | None:
    return value.isoformat() if value else None


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    # JS toISOString() writes a trailing "Z"
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def carnet_to_record(carnet: Carnet) -> dict:
    """Serialize a Carnet to its JSON-safe persisted dict. Pure, no IO."""
    record = {
        "id": carnet.id,
        "tipo": carnet.kind.value,
        "estado": carnet.status.value,
        "miembros": [member_to_record(m) for m in carnet.members],
        "fechaCreacion": _iso(carnet.created_at),
        "creadoPor": carnet.created_by,
    }
    if carnet.status == CarnetStatus.DEACTIVATED:
        record["fechaBaja"] = _iso(carnet.deactivated_at)
        record["motivoBaja"] = carnet.deactivation_reason
        record["dadoDeBajaPor"] = carnet.deactivated_by
    return record


def carnet_from_record(record: dict) -> Carnet:
    """Rebuild a Carnet from a persisted dict. Pure, no IO."""
    return Carnet(
        id=CarnetId(record["id"]),
        kind=CarnetKind(record.get("tipo", CarnetKind.INDIVIDUAL.value)),
        status=CarnetStatus(record.get("estado", CarnetStatus.ACTIVE.value)),
        members=[member_from_record(m) for m in record.get("miembros", [])],
        created_at=_parse_iso(record.get("fechaCreacion")) or datetime.now(timezone.utc),
        created_by=record.get("creadoPor", ""),
        deactivated_at=_parse_iso(record.get("fechaBaja")),
        deactivation_reason=record.get("motivoBaja"),
        deactivated_by=record.get("dadoDeBajaPor"),
    )
