"""Carnet Export — flattens carnets to one delimited record per member.

Invariants:
    - One record per MEMBER (not per carnet), in collection order then member order
    - Exactly len(EXPORT_COLUMNS) fields per record, every field double-quote wrapped
    - Written with csv (QUOTE_ALL): embedded quotes doubled, commas and newlines stay inside
      the quoted cell, so parse_delimited_text in import_rows reads back the exact values
    - Dates render as the es-ES local date (d/m/yyyy) in the given timezone; empty when absent

Design Decisions:
    - Header row on by default (spreadsheet users open the file directly);
      include_header=False yields data lines only
"""

import csv
import io
from datetime import datetime
from zoneinfo import ZoneInfo

from app.core.carnet import Carnet, Member


EXPORT_COLUMNS: tuple[str, ...] = (
    "ID Carnet",
    "Tipo",
    "Estado",
    "Nombre",
    "Apellido",
    "DNI",
    "Barrio",
    "Número de Lote",
    "Teléfono",
    "Condición",
    "Fecha Creación",
    "Fecha Baja",
    "Motivo Baja",
    "Creado Por",
    "Dado de Baja Por",
)

DEFAULT_TIMEZONE = "America/Argentina/Buenos_Aires"


def format_local_date(value: datetime | None, tz: ZoneInfo) -> str:
    if value is None:
        return ""
    local = value.astimezone(tz)
    return f"{local.day}/{local.month}/{local.year}"


def member_export_row(carnet: Carnet, member: Member, tz: ZoneInfo) -> list[str]:
    return [
        carnet.id,
        carnet.kind.value,
        carnet.status.value,
        member.first_name,
        member.last_name,
        member.national_id,
        member.neighborhood,
        member.lot_number,
        member.phone,
        member.role.value,
        format_local_date(carnet.created_at, tz),
        format_local_date(carnet.deactivated_at, tz),
        carnet.deactivation_reason or "",
        carnet.created_by,
        carnet.deactivated_by or "",
    ]


def export_to_delimited_text(
    carnets: list[Carnet],
    *,
    include_header: bool = True,
    timezone_name: str = DEFAULT_TIMEZONE,
) -> str:
    """Render the collection as comma-separated, quote-wrapped text. Pure, no IO."""
    tz = ZoneInfo(timezone_name)
    buf = io.StringIO()
    writer = csv.writer(buf, quoting=csv.QUOTE_ALL, lineterminator="\n")
    if include_header:
        writer.writerow(EXPORT_COLUMNS)
    for carnet in carnets:
        for member in carnet.members:
            writer.writerow(member_export_row(carnet, member, tz))
    # Lines are "\n"-joined: no terminator after the last record
    return buf.getvalue().removesuffix("\n")
