from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
from eventhub.db.session import get_session
from eventhub.core.logging import logger

router = APIRouter(prefix="/health", tags=["health"])


@router.get("")
async def health_check(session: AsyncSession = Depends(get_session)):
    """
    Liveness plus a database round trip.

    Returns:
        ``{"status": "healthy"}``, or 503 with ``{"status": "degraded"}`` when the
        database cannot be reached
    """
    try:
        await session.execute(text("SELECT 1"))
    except Exception as e:
        logger.error(f"Health check database query failed: {e}")
        return JSONResponse(status_code=503, content={"status": "degraded", "database": "unreachable"})
    return {"status": "healthy", "database": "ok"}
