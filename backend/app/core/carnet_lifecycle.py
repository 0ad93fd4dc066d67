"""Carnet Lifecycle — pure state transitions for creation, deactivation (baja) and edit.

Invariants:
    - build_carnet assigns a fresh id to the carnet and to every member, status=ACTIVE
    - apply_deactivation requires a non-empty reason and stamps all three audit fields
    - apply_edit never touches status or audit fields
    - All functions return new Carnet objects; inputs are never mutated
    - Clock and id minting are injectable so transitions are deterministic under test

Design Decisions:
    - uuid4 ids with the "carnet-"/"member-" prefixes: time+random ids collide under
      fast creation (bulk import creates many carnets in the same millisecond)
    - Persisting is the service's job; these functions do no IO
"""

from collections.abc import Callable
from dataclasses import replace
from datetime import datetime, timezone
from uuid import uuid4

from app.core.carnet import Carnet, Member, MemberInput
from app.core.domain_types import CarnetId, MemberId, CarnetKind, CarnetStatus
from app.core.errors import CarnetValidationError


Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_carnet_id() -> CarnetId:
    return CarnetId(f"carnet-{uuid4().hex}")


def new_member_id() -> MemberId:
    return MemberId(f"member-{uuid4().hex}")


def _mint_member(data: MemberInput, member_id: MemberId) -> Member:
    return Member(
        id=member_id,
        first_name=data.first_name.strip(),
        last_name=data.last_name.strip(),
        national_id=data.national_id.strip(),
        neighborhood=data.neighborhood.strip(),
        lot_number=data.lot_number.strip(),
        phone=data.phone.strip(),
        role=data.role,
    )


def build_carnet(
    kind: CarnetKind,
    members: list[MemberInput],
    created_by: str,
    *,
    clock: Clock = utc_now,
    carnet_id_factory: Callable[[], CarnetId] = new_carnet_id,
    member_id_factory: Callable[[], MemberId] = new_member_id,
) -> Carnet:
    """Build a new ACTIVE carnet. Pure — caller persists it."""
    return Carnet(
        id=carnet_id_factory(),
        kind=kind,
        status=CarnetStatus.ACTIVE,
        members=[_mint_member(m, member_id_factory()) for m in members],
        created_at=clock(),
        created_by=created_by,
    )


def require_reason(reason: str | None) -> str:
    """Return the trimmed deactivation reason, or raise when it is empty."""
    reason = (reason or "").strip()
    if not reason:
        raise CarnetValidationError({
            "motivoBaja": "Debe ingresar un motivo para dar de baja el carnet",
        })
    return reason


def apply_deactivation(
    carnet: Carnet, reason: str, deactivated_by: str, *, clock: Clock = utc_now,
) -> Carnet:
    """Return the carnet in DEACTIVATED status with its audit trail filled in."""
    reason = require_reason(reason)
    deactivated = carnet.copy()
    deactivated.status = CarnetStatus.DEACTIVATED
    deactivated.deactivated_at = clock()
    deactivated.deactivation_reason = reason
    deactivated.deactivated_by = deactivated_by
    return deactivated


def apply_edit(
    carnet: Carnet,
    kind: CarnetKind,
    members: list[MemberInput],
    member_ids: list[MemberId | None] | None = None,
    *,
    member_id_factory: Callable[[], MemberId] = new_member_id,
) -> Carnet:
    """Administrative edit: replace kind and members, keeping known member ids.

    member_ids[i] is the existing id for members[i], or None for a new member.
    Ids not belonging to this carnet (or repeated) are replaced by fresh ones.
    """
    owned = {m.id for m in carnet.members}
    ids = list(member_ids or [])
    ids += [None] * (len(members) - len(ids))
    kept: set[MemberId] = set()
    edited_members = []
    for data, mid in zip(members, ids):
        if mid is None or mid not in owned or mid in kept:
            mid = member_id_factory()
        kept.add(mid)
        edited_members.append(_mint_member(data, mid))
    return replace(carnet, kind=kind, members=edited_members)
