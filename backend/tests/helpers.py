"""Test builders for carnet inputs and entities."""

from datetime import datetime, timezone

from app.core.carnet import Carnet, Member, MemberInput
from app.core.domain_types import (
    CarnetId, MemberId, CarnetKind, CarnetStatus, MemberRole,
)


def holder_input(**overrides) -> MemberInput:
    data = dict(
        first_name="Ana", last_name="Gomez", national_id="30111222",
        neighborhood="Santa Clara", lot_number="10", phone="3511234567",
        role=MemberRole.HOLDER,
    )
    data.update(overrides)
    return MemberInput(**data)


def relative_input(role: MemberRole, **overrides) -> MemberInput:
    data = dict(first_name="Luis", phone="3517654321", role=role)
    data.update(overrides)
    return MemberInput(**data)


def make_member(
    role: MemberRole = MemberRole.HOLDER, *, member_id: str = "member-1", **overrides,
) -> Member:
    data = dict(
        id=MemberId(member_id), first_name="Ana", last_name="Gomez",
        national_id="30111222", neighborhood="Santa Clara", lot_number="10",
        phone="3511234567", role=role,
    )
    data.update(overrides)
    return Member(**data)


def make_carnet(
    carnet_id: str = "carnet-1",
    *,
    kind: CarnetKind = CarnetKind.INDIVIDUAL,
    status: CarnetStatus = CarnetStatus.ACTIVE,
    members: list[Member] | None = None,
) -> Carnet:
    carnet = Carnet(
        id=CarnetId(carnet_id),
        kind=kind,
        status=status,
        members=members if members is not None else [make_member()],
        created_at=datetime(2026, 3, 5, 15, 0, tzinfo=timezone.utc),
        created_by="Administrador",
    )
    if status == CarnetStatus.DEACTIVATED:
        carnet.deactivated_at = datetime(2026, 4, 1, 12, 0, tzinfo=timezone.utc)
        carnet.deactivation_reason = "Mudanza"
        carnet.deactivated_by = "Administrador"
    return carnet


FIXED_NOW = datetime(2026, 3, 5, 15, 0, tzinfo=timezone.utc)
