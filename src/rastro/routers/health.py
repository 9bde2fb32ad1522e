import logging
import sqlite3

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from rastro.storage import database

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health():
    """Liveness check, including database reachability."""
    try:
        with database.get_connection() as conn:
            conn.execute("SELECT 1").fetchone()
    except sqlite3.Error as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "database": str(e)})
    return {"status": "ok"}
