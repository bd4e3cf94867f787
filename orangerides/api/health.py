"""
Health endpoints.

Lightweight probes for operational monitoring without exposing secrets.
"""

import logging

from fastapi import APIRouter
from fastapi.responses import JSONResponse
from sqlalchemy import inspect

from orangerides.core.database import check_connection, get_engine, metadata

logger = logging.getLogger("orangerides")

root_router = APIRouter(tags=["health"])


@root_router.get("/healthz")
def healthz():
    """Liveness: the process is up (no dependencies checked)."""
    return {"status": "ok"}


@root_router.get("/readyz")
def readyz():
    """Readiness: database reachable and every table present."""
    if not check_connection():
        return JSONResponse(status_code=503, content={"status": "error", "detail": "database unreachable"})

    inspector = inspect(get_engine())
    missing = [name for name in sorted(metadata.tables) if not inspector.has_table(name)]
    if missing:
        logger.warning("readyz.missing_tables: %s", ", ".join(missing))
        return JSONResponse(status_code=503, content={"status": "error", "detail": f"missing tables: {', '.join(missing)}"})
    return {"status": "ok"}
