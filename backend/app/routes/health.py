"""
LectureSnap Backend - Health Check Route
==========================================

What:  GET /health for container probes and monitoring.
How:   SELECT 1 against the database, then the model provider's own cheap
       check (listing models costs no tokens).

Status levels:
    - healthy:   database connected, Gemini available
    - degraded:  database connected, Gemini unavailable or not configured
                 (lectures can be read and deleted, not created)
    - unhealthy: database unreachable
"""

import logging
import time

from fastapi import APIRouter, Depends
from sqlalchemy import text

from app import __version__
from app.database import engine
from app.dependencies import get_note_generator
from app.schemas.lecture import HealthResponse
from app.services.generation_service import NoteGenerator

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


async def check_database() -> str:
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
    except Exception as e:
        logger.warning("Health check: database unreachable: %s", str(e))
        return "disconnected"
    return "connected"


async def check_gemini(generator: NoteGenerator) -> str:
    if not generator.config.has_credentials:
        return "not_configured"
    if await generator.provider.health_check():
        return "available"
    return "unavailable"


@router.get(
    "/health",
    response_model=HealthResponse,
    summary="Service health check",
)
async def health_check(generator: NoteGenerator = Depends(get_note_generator)) -> HealthResponse:
    db_status = await check_database()
    gemini_status = await check_gemini(generator)

    if db_status != "connected":
        overall = "unhealthy"
    elif gemini_status != "available":
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthResponse(
        status=overall,
        version=__version__,
        database=db_status,
        gemini=gemini_status,
        uptime_seconds=round(time.time() - _start_time, 2),
    )
