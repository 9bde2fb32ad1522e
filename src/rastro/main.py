import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rastro.config import settings
from rastro.routers import health, webhooks
from rastro.storage import database
from rastro.tasks.scheduler import start_scheduler, shutdown_scheduler

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info("Starting Rastro")
    database.init_db()
    start_scheduler()
    yield
    # Shutdown
    shutdown_scheduler()
    logger.info("Rastro shutdown")


app = FastAPI(title="Rastro", lifespan=lifespan)

app.include_router(health.router)
app.include_router(webhooks.router, prefix="/webhooks")


@app.exception_handler(Exception)
async def unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "message": str(exc)},
    )
