import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse

from rastro.auth import verify_webhook_auth
from rastro.errors import InvalidPayload
from rastro.services.normalizer import normalize_payload
from rastro.services.processor import process_webhook

logger = logging.getLogger(__name__)

router = APIRouter()

TRUTHY = {"1", "true", "yes"}


def is_dry_run(request: Request) -> bool:
    flag = request.headers.get("x-dry-run") or request.query_params.get("dry") or ""
    return flag.strip().lower() in TRUTHY


@router.post("/tracking")
async def receive_tracking_update(request: Request, _: None = Depends(verify_webhook_auth)):
    """Receive carrier tracking updates and apply them to stored shipments."""
    dry_run = is_dry_run(request)

    try:
        envelopes = normalize_payload(await request.body())
    except InvalidPayload as e:
        logger.error(f"Rejected tracking webhook: {e}")
        raise HTTPException(status_code=400, detail=str(e)) from e

    report = await process_webhook(envelopes, dry_run=dry_run)
    return JSONResponse(
        status_code=report.status_code,
        content=report.model_dump(mode="json", by_alias=True, exclude_none=True),
    )
