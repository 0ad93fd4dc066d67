"""Health & Readiness Probes — liveness plus record store readiness.

Invariants:
    - GET /health/ returns 200 whenever the process is up
    - GET /health/ready returns 503 when the primary database is unreachable, and always
      reports both backends of the record store

Design Decisions:
    - Readiness is decided by the primary only: the file fallback keeps writes working,
      but an instance running on it should not receive new traffic
"""

import os
from pathlib import Path

from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import app.infrastructure.database as db_module
from app.config import get_settings

router = APIRouter(prefix="/api/v1/health", tags=["health"])


def _fallback_writable(path: str) -> bool:
    target = Path(path)
    if target.exists():
        return os.access(target, os.W_OK)
    parent = target.parent
    while not parent.exists() and parent != parent.parent:
        parent = parent.parent
    return os.access(parent, os.W_OK)


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    return {"status": "healthy", "service": "carnets-api", "version": "1.0.0"}


@router.get("/ready")
async def readiness_check():
    manager = db_module.db_manager
    db_ok = await manager.health_check() if manager else False
    checks = {
        "database": "healthy" if db_ok else "unavailable",
        "fallback_store": (
            "writable" if _fallback_writable(get_settings().fallback_store_path)
            else "unwritable"
        ),
    }
    if not db_ok:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
