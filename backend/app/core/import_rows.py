"""Bulk Import Row Pipeline — parse, normalize and group tabular rows into carnet plans.

Invariants:
    - Every function is PURE: the placeholder national-id counter is threaded through
      normalize_row / normalize_rows as an explicit accumulator, never hidden state
    - Row numbers reported to the user are position + 2 (1-based, header row accounted)
    - A rejected row never reaches grouping; it produces exactly one ImportRowError
    - Lot groups keep first-appearance order; rows inside a group keep file order
    - A group with no "T" row gets its FIRST row forced to Holder (file-order dependent)

Design Decisions:
    - Expected columns: LOTE, CONDICION, "APELLIDO Y NOMBRE", EDAD (age parsed, unused)
    - Parsing delegates to the csv module: exported text (quoted commas, doubled quotes,
      multi-line reasons, padded values) re-parses to the exact exported values
    - Creating carnets from LotPlans is the service's job (needs the store)
"""

import csv
import io
from dataclasses import dataclass, field, replace

from app.core.carnet import MemberInput
from app.core.domain_types import CarnetKind, MemberRole


HEADER_TOKENS: tuple[str, ...] = ("lote", "nombre", "apellido")
PLACEHOLDER_PHONE = "Sin Teléfono"
PLACEHOLDER_NEIGHBORHOOD = "OTRO"
NATIONAL_ID_WIDTH = 8
MIN_COLUMNS = 3

ROLE_CODES: dict[str, MemberRole] = {
    "T": MemberRole.HOLDER,
    "F1": MemberRole.RELATIVE_1,
    "F2": MemberRole.RELATIVE_2,
    "F3": MemberRole.RELATIVE_3,
    "FA": MemberRole.ADHERENT_RELATIVE,
}


@dataclass(frozen=True)
class ImportRowError:
    """A row- or lot-level import failure. row == 0 tags a lot-level error."""
    row: int
    reason: str


@dataclass(frozen=True)
class ImportRow:
    """One accepted, normalized data row."""
    row: int
    lot_number: str
    role: MemberRole
    first_name: str
    last_name: str
    national_id: str
    age: str = ""
    phone: str = PLACEHOLDER_PHONE
    neighborhood: str = PLACEHOLDER_NEIGHBORHOOD


@dataclass
class NormalizedRows:
    accepted: list[ImportRow] = field(default_factory=list)
    errors: list[ImportRowError] = field(default_factory=list)
    next_counter: int = 1


@dataclass(frozen=True)
class LotPlan:
    """Everything needed to create the carnet for one lot."""
    lot_number: str
    kind: CarnetKind
    members: list[MemberInput]
    rows: list[int]


@dataclass
class ImportResult:
    success_count: int = 0
    errors: list[ImportRowError] = field(default_factory=list)


# ─── Parsing ─────────────────────────────────────────────────────

def _is_blank(row: list[str]) -> bool:
    return len(row) == 0 or (len(row) == 1 and not row[0].strip())


def parse_delimited_text(content: str) -> list[list[str]]:
    """Parse comma-separated text into rows of raw cells, dropping blank lines.

    Quoted cells may contain commas, doubled quotes and newlines. Cells are
    not trimmed here; normalize_row trims the columns it reads.
    """
    reader = csv.reader(io.StringIO(content), skipinitialspace=True)
    return [row for row in reader if not _is_blank(row)]


def looks_like_header(row: list[str]) -> bool:
    return any(
        token in cell.lower() for cell in row for token in HEADER_TOKENS
    )


def data_rows(rows: list[list[str]]) -> list[list[str]]:
    """Drop the first row when it looks like a header."""
    if rows and looks_like_header(rows[0]):
        return rows[1:]
    return rows


# ─── Normalization ───────────────────────────────────────────────

def split_full_name(full_name: str) -> tuple[str, str]:
    """Split "APELLIDO NOMBRE(S)" into (first_name, last_name)."""
    parts = full_name.split()
    if len(parts) == 1:
        return parts[0], ""
    return " ".join(parts[1:]), parts[0]


def role_from_code(code: str | None) -> MemberRole:
    """Map T/F1/F2/F3/FA (case-insensitive) to a role; anything else is Holder."""
    return ROLE_CODES.get((code or "").strip().upper(), MemberRole.HOLDER)


def format_placeholder_national_id(counter: int) -> str:
    return str(counter).zfill(NATIONAL_ID_WIDTH)


def normalize_row(
    cells: list[str], row_number: int, counter: int,
) -> tuple[ImportRow | ImportRowError, int]:
    """Normalize one data row. Returns (row or error, next counter value)."""
    if len(cells) < MIN_COLUMNS:
        return ImportRowError(row_number, "Fila incompleta - faltan columnas"), counter

    lot_number = cells[0].strip()
    full_name = cells[2].strip()
    if not full_name:
        return ImportRowError(row_number, 'Falta "Apellido y Nombre"'), counter
    if not lot_number:
        return ImportRowError(row_number, "Falta número de LOTE"), counter

    first_name, last_name = split_full_name(full_name)
    row = ImportRow(
        row=row_number,
        lot_number=lot_number,
        role=role_from_code(cells[1]),
        first_name=first_name,
        last_name=last_name,
        national_id=format_placeholder_national_id(counter),
        age=cells[3].strip() if len(cells) > 3 else "",
    )
    return row, counter + 1


def normalize_rows(
    rows: list[list[str]], start_counter: int = 1,
) -> NormalizedRows:
    """Fold normalize_row over the data rows, threading the placeholder counter."""
    result = NormalizedRows(next_counter=start_counter)
    for index, cells in enumerate(rows):
        outcome, result.next_counter = normalize_row(
            cells, index + 2, result.next_counter,
        )
        if isinstance(outcome, ImportRowError):
            result.errors.append(outcome)
        else:
            result.accepted.append(outcome)
    return result


# ─── Grouping ────────────────────────────────────────────────────

def group_rows_by_lot(rows: list[ImportRow]) -> dict[str, list[ImportRow]]:
    """Group accepted rows by exact lot text, in first-appearance order."""
    groups: dict[str, list[ImportRow]] = {}
    for row in rows:
        groups.setdefault(row.lot_number, []).append(row)
    return groups


def plan_lot_carnet(lot_number: str, rows: list[ImportRow]) -> LotPlan:
    """Decide kind and members for one lot group. Pure, never raises."""
    if rows and not any(r.role == MemberRole.HOLDER for r in rows):
        rows = [replace(rows[0], role=MemberRole.HOLDER), *rows[1:]]
    members = [
        MemberInput(
            first_name=r.first_name,
            last_name=r.last_name,
            national_id=r.national_id,
            neighborhood=r.neighborhood,
            lot_number=r.lot_number,
            phone=r.phone,
            role=r.role,
        )
        for r in rows
    ]
    kind = CarnetKind.HOUSEHOLD if len(rows) > 1 else CarnetKind.INDIVIDUAL
    return LotPlan(
        lot_number=lot_number, kind=kind, members=members,
        rows=[r.row for r in rows],
    )


def plan_import(content: str, start_counter: int = 1) -> tuple[list[LotPlan], list[ImportRowError]]:
    """Run the pure part of the import: parse, normalize, group, plan."""
    normalized = normalize_rows(data_rows(parse_delimited_text(content)), start_counter)
    plans = [
        plan_lot_carnet(lot, group)
        for lot, group in group_rows_by_lot(normalized.accepted).items()
    ]
    return plans, normalized.errors
