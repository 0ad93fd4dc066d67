"""Carnet Query Engine — multi-predicate filtering and derived projections over a collection.

Invariants:
    - filter_carnets is PURE and idempotent: same collection + same filters -> same ordered result
    - Result preserves the relative order of the input collection
    - A non-empty lot_number overrides status and free-text filters: it is evaluated on the
      UNFILTERED collection (surfacing active and deactivated carnets at a lot), then
      narrowed only by neighborhood and role
    - Lot matching is textual substring ("1" matches "10"), never numeric equality

Design Decisions:
    - CarnetFilter as frozen dataclass: recomputed from scratch on every change, no cursor state
    - Projections (neighborhoods, roles, stats) here rather than on Carnet: presentation
      concerns kept out of the entity
"""

from dataclasses import dataclass

from app.core.carnet import Carnet
from app.core.domain_types import CarnetKind, CarnetStatus, MemberRole, StatusFilter


@dataclass(frozen=True)
class CarnetFilter:
    status: StatusFilter = StatusFilter.ACTIVE_ONLY
    text: str = ""
    neighborhood: str = ""
    role: MemberRole | None = None
    lot_number: str = ""


def _matches_status(carnet: Carnet, status: StatusFilter) -> bool:
    if status == StatusFilter.ACTIVE_ONLY:
        return carnet.status == CarnetStatus.ACTIVE
    if status == StatusFilter.DEACTIVATED_ONLY:
        return carnet.status == CarnetStatus.DEACTIVATED
    return True


def _matches_text(carnet: Carnet, text: str) -> bool:
    term = text.lower()
    return any(
        term in m.first_name.lower()
        or term in m.last_name.lower()
        or term in m.national_id
        or term in m.lot_number
        for m in carnet.members
    ) or term in carnet.id.lower()


def _matches_lot(carnet: Carnet, lot_number: str) -> bool:
    return any(lot_number in m.lot_number for m in carnet.members)


def _matches_neighborhood(carnet: Carnet, neighborhood: str) -> bool:
    return any(m.neighborhood == neighborhood for m in carnet.members)


def _matches_role(carnet: Carnet, role: MemberRole) -> bool:
    return any(m.role == role for m in carnet.members)


def _narrow_by_member_attrs(
    carnets: list[Carnet], filters: CarnetFilter,
) -> list[Carnet]:
    if filters.neighborhood:
        carnets = [c for c in carnets if _matches_neighborhood(c, filters.neighborhood)]
    if filters.role:
        carnets = [c for c in carnets if _matches_role(c, filters.role)]
    return carnets


def filter_carnets(carnets: list[Carnet], filters: CarnetFilter) -> list[Carnet]:
    """Apply the filter set to the collection. Pure, no IO."""
    if filters.lot_number:
        by_lot = [c for c in carnets if _matches_lot(c, filters.lot_number)]
        return _narrow_by_member_attrs(by_lot, filters)

    result = [c for c in carnets if _matches_status(c, filters.status)]
    if filters.text:
        result = [c for c in result if _matches_text(c, filters.text)]
    return _narrow_by_member_attrs(result, filters)


# ─── Projections ─────────────────────────────────────────────────

def distinct_neighborhoods(carnets: list[Carnet]) -> list[str]:
    """Neighborhoods in use across all members, sorted ascending."""
    return sorted({
        m.neighborhood for c in carnets for m in c.members if m.neighborhood
    })


def distinct_roles(carnets: list[Carnet]) -> list[MemberRole]:
    """Roles in use across all members, sorted ascending by label."""
    roles = {m.role for c in carnets for m in c.members}
    return sorted(roles, key=lambda r: r.value)


def carnet_stats(carnets: list[Carnet]) -> dict:
    """Summary counts for the carnets dashboard. Pure, never raises."""
    active = [c for c in carnets if c.status == CarnetStatus.ACTIVE]
    return {
        "total": len(carnets),
        "active": len(active),
        "deactivated": len(carnets) - len(active),
        "individual": sum(1 for c in active if c.kind == CarnetKind.INDIVIDUAL),
        "household": sum(1 for c in active if c.kind == CarnetKind.HOUSEHOLD),
        "active_members": sum(len(c.members) for c in active),
    }
