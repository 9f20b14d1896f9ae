"""
Health check endpoints.
"""

import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from shared.config.logging import api_logger as logger
from shared.config.settings import settings
from shared.infrastructure.db import get_db


router = APIRouter(prefix="/api/health", tags=["health"])


@router.get("")
def health_check():
    """Basic health check endpoint."""
    return {
        "status": "healthy",
        "service": "fulfillment",
        "environment": settings.environment,
    }


@router.get("/detailed")
def detailed_health_check(db: Session = Depends(get_db)):
    """
    Health check that verifies database connectivity.
    Returns 503 when the database cannot be reached.
    """
    checks: dict = {
        "service": "fulfillment",
        "environment": settings.environment,
        "dependencies": {},
    }

    started = time.perf_counter()
    try:
        db.execute(text("SELECT 1"))
        checks["dependencies"]["database"] = {
            "status": "healthy",
            "latency_ms": round((time.perf_counter() - started) * 1000, 2),
        }
    except SQLAlchemyError as e:
        logger.error("Database health check failed", error=str(e))
        checks["dependencies"]["database"] = {"status": "unhealthy", "error": type(e).__name__}
        checks["status"] = "degraded"
        return JSONResponse(content=checks, status_code=503)

    checks["status"] = "healthy"
    return checks
