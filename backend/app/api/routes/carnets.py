"""Carnets Routes — CRUD, baja, filtering, bulk import and CSV export for membership carnets.

Invariants:
    - Routes never contain business logic (delegate to CarnetService)
    - CarnetsError subclasses propagate to the global handlers (400/404/503 envelopes)
    - Static paths (/options, /stats, /export, /import) registered before /{carnet_id}
    - Responses use the persisted record shape (carnet_to_record)

Design Decisions:
    - CarnetService lives on app.state (built in the lifespan) and is injected with
      Depends, so tests can swap the store without patching modules
    - Import takes the raw CSV text as the request body (no multipart dependency);
      a UTF-8 BOM from spreadsheet exports is stripped
"""

import logging
from datetime import datetime
from zoneinfo import ZoneInfo

from fastapi import APIRouter, Depends, Query, Request, Response, status

from app.config import get_settings
from app.core.carnet import carnet_to_record
from app.core.domain_types import MemberRole, StatusFilter
from app.core.filter_carnets import CarnetFilter
from app.schemas.carnet import (
    CarnetCreate, CarnetUpdate, DeactivateRequest, FilterOptions, ImportResponse,
)
from app.services.carnet_service import CarnetService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/carnets", tags=["carnets"])


def get_carnet_service(request: Request) -> CarnetService:
    return request.app.state.carnet_service


@router.get("")
async def list_carnets(
    status_filter: StatusFilter = Query(StatusFilter.ACTIVE_ONLY, alias="status"),
    q: str = Query("", max_length=200),
    barrio: str = Query("", max_length=100),
    condicion: MemberRole | None = Query(None),
    lote: str = Query("", max_length=50),
    service: CarnetService = Depends(get_carnet_service),
):
    """List carnets matching the filter set (lote overrides status and q)."""
    filters = CarnetFilter(
        status=status_filter, text=q, neighborhood=barrio,
        role=condicion, lot_number=lote,
    )
    carnets = await service.filter_carnets(filters)
    return {
        "carnets": [carnet_to_record(c) for c in carnets],
        "count": len(carnets),
    }


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_carnet(
    body: CarnetCreate, service: CarnetService = Depends(get_carnet_service),
):
    """Create a carnet. Field errors come back as a 400 with field_errors."""
    carnet = await service.create_carnet(
        body.kind, body.member_inputs(),
        body.created_by or get_settings().default_actor,
    )
    return carnet_to_record(carnet)


@router.get("/options", response_model=FilterOptions)
async def filter_options(service: CarnetService = Depends(get_carnet_service)):
    """Neighborhoods and roles in use, for populating filter selectors."""
    return await service.filter_options()


@router.get("/stats")
async def carnet_stats(service: CarnetService = Depends(get_carnet_service)):
    return await service.stats()


@router.get("/export")
async def export_carnets(
    header: bool = Query(True),
    service: CarnetService = Depends(get_carnet_service),
):
    """Download all carnets as CSV, one line per member."""
    content = await service.export_to_delimited_text(include_header=header)
    today = datetime.now(ZoneInfo(get_settings().timezone)).date()
    filename = f"carnets-socios-{today.isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/import", response_model=ImportResponse)
async def import_carnets(
    request: Request, service: CarnetService = Depends(get_carnet_service),
):
    """Bulk import from CSV text (LOTE, CONDICION, APELLIDO Y NOMBRE, EDAD)."""
    raw = await request.body()
    content = raw.decode("utf-8-sig", errors="replace")
    result = await service.import_from_text(content)
    return ImportResponse.from_result(result)


@router.get("/{carnet_id}")
async def get_carnet(
    carnet_id: str, service: CarnetService = Depends(get_carnet_service),
):
    return carnet_to_record(await service.get_carnet(carnet_id))


@router.put("/{carnet_id}")
async def update_carnet(
    carnet_id: str,
    body: CarnetUpdate,
    service: CarnetService = Depends(get_carnet_service),
):
    """Administrative edit of kind and members."""
    carnet = await service.update_carnet(
        carnet_id, body.kind, body.member_inputs(), body.member_ids(),
        body.edited_by or get_settings().default_actor,
    )
    return carnet_to_record(carnet)


@router.post("/{carnet_id}/deactivate")
async def deactivate_carnet(
    carnet_id: str,
    body: DeactivateRequest,
    service: CarnetService = Depends(get_carnet_service),
):
    """Baja: retire the carnet with a reason. There is no reactivation."""
    carnet = await service.deactivate_carnet(
        carnet_id, body.reason,
        body.deactivated_by or get_settings().default_actor,
    )
    return carnet_to_record(carnet)
