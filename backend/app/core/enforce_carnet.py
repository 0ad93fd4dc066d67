"""Carnet Composition Enforcement — validates a carnet's kind and member set before persisting.

Invariants:
    - validate_carnet is PURE: returns field errors, never raises, never mutates input
    - Error keys are "<field>-<memberIndex>" (or "miembros" for set-level errors),
      consumed verbatim by the form layer
    - Holder (index 0) requires every contact field; other members require nombre + telefono
    - National ids (dni), when non-empty, match ^\\d{7,8}$ and are unique inside the carnet
    - Household carnets hold at most MAX_HOUSEHOLD_MEMBERS; individual carnets exactly one

Design Decisions:
    - Dict of errors over exceptions: the form shows every violation at once, and the
      service turns a non-empty dict into CarnetValidationError at the boundary
    - Member-editing helpers (next role, add, remove, kind switch) live here so the
      composition rules have a single home
"""

import re

from app.core.carnet import MemberInput
from app.core.domain_types import (
    CarnetKind, MemberRole, RELATIVE_ROLE_ORDER, MAX_HOUSEHOLD_MEMBERS,
)
from app.core.errors import CarnetValidationError


NATIONAL_ID_PATTERN = re.compile(r"^\d{7,8}$")

MSG_REQUIRED = {
    "nombre": "El nombre es obligatorio",
    "apellido": "El apellido es obligatorio",
    "dni": "El DNI es obligatorio",
    "barrio": "El barrio es obligatorio",
    "numeroLote": "El número de lote es obligatorio",
    "telefono": "El teléfono es obligatorio",
}
MSG_BAD_NATIONAL_ID = "El DNI debe tener 7 u 8 dígitos"
MSG_DUPLICATE_NATIONAL_ID = "DNI duplicado"


def _field_values(member: MemberInput) -> dict[str, str]:
    return {
        "nombre": member.first_name,
        "apellido": member.last_name,
        "dni": member.national_id,
        "barrio": member.neighborhood,
        "numeroLote": member.lot_number,
        "telefono": member.phone,
    }


def is_valid_national_id(value: str) -> bool:
    return bool(NATIONAL_ID_PATTERN.match(value))


def _check_holder_fields(member: MemberInput, errors: dict[str, str]) -> None:
    for name, value in _field_values(member).items():
        if not value.strip():
            errors[f"{name}-0"] = MSG_REQUIRED[name]
    if member.national_id.strip() and not is_valid_national_id(member.national_id):
        errors["dni-0"] = MSG_BAD_NATIONAL_ID


def _check_relative_fields(
    member: MemberInput, index: int, errors: dict[str, str],
) -> None:
    if not member.first_name.strip():
        errors[f"nombre-{index}"] = MSG_REQUIRED["nombre"]
    if not member.phone.strip():
        errors[f"telefono-{index}"] = MSG_REQUIRED["telefono"]
    if member.national_id.strip() and not is_valid_national_id(member.national_id):
        errors[f"dni-{index}"] = MSG_BAD_NATIONAL_ID


def _check_duplicate_national_ids(
    members: list[MemberInput], errors: dict[str, str],
) -> None:
    """Flag every member sharing a non-empty national id with another member."""
    seen: dict[str, list[int]] = {}
    for index, member in enumerate(members):
        dni = member.national_id.strip()
        if dni:
            seen.setdefault(dni, []).append(index)
    for indexes in seen.values():
        if len(indexes) > 1:
            for index in indexes:
                errors[f"dni-{index}"] = MSG_DUPLICATE_NATIONAL_ID


def _check_composition(
    kind: CarnetKind, members: list[MemberInput], errors: dict[str, str],
) -> None:
    if not members:
        errors["miembros"] = "El carnet debe tener al menos un miembro (titular)"
        return
    if kind == CarnetKind.INDIVIDUAL and len(members) != 1:
        errors["miembros"] = "Un carnet individual tiene un único miembro"
    elif kind == CarnetKind.HOUSEHOLD and len(members) > MAX_HOUSEHOLD_MEMBERS:
        errors["miembros"] = (
            f"Un carnet familiar admite hasta {MAX_HOUSEHOLD_MEMBERS} miembros"
        )

    if members[0].role != MemberRole.HOLDER:
        errors["condicion-0"] = "El primer miembro debe ser el titular"

    used: set[MemberRole] = set()
    for index, member in enumerate(members):
        if member.role in used:
            errors[f"condicion-{index}"] = "Condición repetida en el carnet"
        elif index > 0 and member.role == MemberRole.HOLDER:
            errors[f"condicion-{index}"] = "Solo el primer miembro puede ser titular"
        used.add(member.role)


def validate_carnet(kind: CarnetKind, members: list[MemberInput]) -> dict[str, str]:
    """Validate a carnet's member set. Pure — returns {} when the carnet is valid."""
    errors: dict[str, str] = {}
    _check_composition(kind, members, errors)
    for index, member in enumerate(members):
        if index == 0:
            _check_holder_fields(member, errors)
        else:
            _check_relative_fields(member, index, errors)
    _check_duplicate_national_ids(members, errors)
    return errors


# ─── Member editing helpers ─────────────────────────────────────

def next_member_role(members: list[MemberInput]) -> MemberRole | None:
    """First relative role not yet used in the carnet, or None when all are taken."""
    used = {m.role for m in members}
    return next((r for r in RELATIVE_ROLE_ORDER if r not in used), None)


def can_add_member(kind: CarnetKind, members: list[MemberInput]) -> bool:
    return (
        kind == CarnetKind.HOUSEHOLD
        and len(members) < MAX_HOUSEHOLD_MEMBERS
        and next_member_role(members) is not None
    )


def add_member(
    kind: CarnetKind, members: list[MemberInput],
) -> list[MemberInput]:
    """Return a new member list with an empty member in the next free role.

    Raises CarnetValidationError when the carnet cannot take another member.
    """
    if not can_add_member(kind, members):
        raise CarnetValidationError({
            "miembros": "No se pueden agregar más miembros a este carnet",
        })
    return [*members, MemberInput(role=next_member_role(members))]


def remove_member(members: list[MemberInput], index: int) -> list[MemberInput]:
    """Return a new member list without members[index]. The holder is never removed."""
    if index == 0:
        return list(members)
    return [m for i, m in enumerate(members) if i != index]


def reset_members_for_kind(kind: CarnetKind) -> list[MemberInput]:
    """Switching kind discards relatives and leaves a single empty holder slot."""
    return [MemberInput(role=MemberRole.HOLDER)]
