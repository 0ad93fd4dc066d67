"""Carnet Service — orchestrates validation, lifecycle transitions and the record store.

Invariants:
    - Every mutation is a read-modify-write of the whole collection under self._write_lock
      (single writer per process), so concurrent callers never clobber each other
    - create is one atomic append: the carnet is persisted whole or not at all
    - Store failures propagate unmodified (StoreError): no retry, no rollback of
      carnets already committed earlier in the same import
    - import_from_text never raises for bad rows or failed lots: they become ImportRowErrors
    - Import lots are created strictly sequentially, in first-appearance order

Design Decisions:
    - Imperative shell around pure core functions (enforce_carnet, carnet_lifecycle,
      filter_carnets, import_rows, export_carnets)
    - Lock held per lot during import, never across the whole batch: a slow import does
      not starve manual entry, and a failed lot leaves earlier lots committed
    - Imported carnets bypass form validation (placeholder data is incomplete by
      construction); composition problems are logged, not rejected
"""

import asyncio
import logging

from app.core.carnet import Carnet, MemberInput
from app.core.carnet_lifecycle import (
    Clock, utc_now, build_carnet, apply_deactivation, apply_edit, require_reason,
)
from app.core.domain_types import CarnetKind, CarnetStatus, MemberId
from app.core.enforce_carnet import validate_carnet
from app.core.errors import CarnetValidationError, ErrorContext, ResourceNotFoundError
from app.core.export_carnets import export_to_delimited_text, DEFAULT_TIMEZONE
from app.core.filter_carnets import (
    CarnetFilter, filter_carnets, distinct_neighborhoods, distinct_roles, carnet_stats,
)
from app.core.import_rows import ImportResult, ImportRowError, LotPlan, plan_import
from app.core.repository_protocols import CarnetRepository

logger = logging.getLogger(__name__)

IMPORT_CREATED_BY = "Importación CSV"


class CarnetService:
    """Carnet operations exposed to the API layer."""

    def __init__(
        self,
        repository: CarnetRepository,
        *,
        import_created_by: str = IMPORT_CREATED_BY,
        timezone_name: str = DEFAULT_TIMEZONE,
        clock: Clock = utc_now,
    ):
        self._repository = repository
        self._import_created_by = import_created_by
        self._timezone_name = timezone_name
        self._clock = clock
        self._write_lock = asyncio.Lock()

    # ─── Reads ───────────────────────────────────────────────────

    async def list_carnets(self) -> list[Carnet]:
        return await self._repository.load_all()

    async def get_carnet(self, carnet_id: str) -> Carnet:
        for carnet in await self._repository.load_all():
            if carnet.id == carnet_id:
                return carnet
        raise ResourceNotFoundError(
            "Carnet", carnet_id, ErrorContext(carnet_id=carnet_id),
        )

    async def filter_carnets(self, filters: CarnetFilter) -> list[Carnet]:
        return filter_carnets(await self._repository.load_all(), filters)

    async def filter_options(self) -> dict:
        carnets = await self._repository.load_all()
        return {
            "neighborhoods": distinct_neighborhoods(carnets),
            "roles": [r.value for r in distinct_roles(carnets)],
        }

    async def stats(self) -> dict:
        return carnet_stats(await self._repository.load_all())

    async def export_to_delimited_text(self, include_header: bool = True) -> str:
        return export_to_delimited_text(
            await self._repository.load_all(),
            include_header=include_header,
            timezone_name=self._timezone_name,
        )

    # ─── Mutations ───────────────────────────────────────────────

    async def _append(self, carnet: Carnet) -> Carnet:
        async with self._write_lock:
            carnets = await self._repository.load_all()
            carnets.append(carnet)
            await self._repository.save_all(carnets)
        return carnet

    async def _replace(self, carnet_id: str, transform) -> Carnet:
        """Apply transform to the stored carnet and persist the result."""
        async with self._write_lock:
            carnets = await self._repository.load_all()
            index = next(
                (i for i, c in enumerate(carnets) if c.id == carnet_id), None,
            )
            if index is None:
                raise ResourceNotFoundError(
                    "Carnet", carnet_id, ErrorContext(carnet_id=carnet_id),
                )
            carnets[index] = transform(carnets[index])
            await self._repository.save_all(carnets)
            return carnets[index]

    async def create_carnet(
        self, kind: CarnetKind, members: list[MemberInput], created_by: str,
    ) -> Carnet:
        """Validate and persist a new ACTIVE carnet."""
        errors = validate_carnet(kind, members)
        if errors:
            raise CarnetValidationError(errors)
        carnet = await self._append(
            build_carnet(kind, members, created_by, clock=self._clock),
        )
        logger.info(
            f"Carnet created by {created_by} ({kind.value}, {len(members)} member(s))",
            extra={"carnet_id": carnet.id},
        )
        return carnet

    async def deactivate_carnet(
        self, carnet_id: str, reason: str, deactivated_by: str,
    ) -> Carnet:
        """Baja: one-way transition to DEACTIVATED with audit trail."""
        reason = require_reason(reason)

        def _deactivate(carnet: Carnet) -> Carnet:
            if carnet.status == CarnetStatus.DEACTIVATED:
                logger.warning(
                    "Carnet already deactivated; overwriting baja audit fields",
                    extra={"carnet_id": carnet.id},
                )
            return apply_deactivation(
                carnet, reason, deactivated_by, clock=self._clock,
            )

        carnet = await self._replace(carnet_id, _deactivate)
        logger.info(
            f"Carnet deactivated by {deactivated_by}: {reason}",
            extra={"carnet_id": carnet.id},
        )
        return carnet

    async def update_carnet(
        self,
        carnet_id: str,
        kind: CarnetKind,
        members: list[MemberInput],
        member_ids: list[MemberId | None] | None,
        edited_by: str,
    ) -> Carnet:
        """Administrative edit of kind and members. Status and audit trail are kept."""
        errors = validate_carnet(kind, members)
        if errors:
            raise CarnetValidationError(
                errors, ErrorContext(carnet_id=carnet_id),
            )
        carnet = await self._replace(
            carnet_id, lambda c: apply_edit(c, kind, members, member_ids),
        )
        logger.info(
            f"Carnet edited by {edited_by}", extra={"carnet_id": carnet.id},
        )
        return carnet

    # ─── Bulk import ─────────────────────────────────────────────

    async def _create_from_plan(self, plan: LotPlan) -> Carnet:
        problems = validate_carnet(plan.kind, plan.members)
        composition = {
            k: v for k, v in problems.items()
            if k == "miembros" or k.startswith("condicion-")
        }
        if composition:
            logger.warning(
                f"Imported lot has composition issues: {composition}",
                extra={"lot_number": plan.lot_number},
            )
        return await self._append(
            build_carnet(
                plan.kind, plan.members, self._import_created_by, clock=self._clock,
            ),
        )

    async def import_from_text(self, content: str) -> ImportResult:
        """Best-effort bulk import: one carnet per lot, per-row and per-lot errors reported."""
        plans, row_errors = plan_import(content)
        result = ImportResult(errors=list(row_errors))

        for plan in plans:
            try:
                await self._create_from_plan(plan)
                result.success_count += 1
            except Exception as e:
                logger.error(
                    f"Import failed for lot {plan.lot_number}: {e}",
                    extra={"lot_number": plan.lot_number}, exc_info=True,
                )
                result.errors.append(ImportRowError(
                    0, f"Error al crear carnet para lote {plan.lot_number}: {e}",
                ))

        logger.info(
            "Bulk import finished",
            extra={
                "success_count": result.success_count,
                "error_count": len(result.errors),
            },
        )
        return result
