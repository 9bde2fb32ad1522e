import asyncio
import logging
from datetime import datetime, timedelta, timezone

import httpx
from pydantic import ValidationError

from rastro.config import settings
from rastro.models.report import UpdatedShipment
from rastro.models.shipment import Courier, ShipmentRecord
from rastro.models.tracking import TrackingData
from rastro.services.processor import process_tracking
from rastro.storage import database

logger = logging.getLogger(__name__)

SHIP24_API_URL = "https://api.ship24.com/public/v1"

# Pause between Ship24 calls during a refresh run
REQUEST_DELAY = 0.5


def _headers() -> dict[str, str]:
    return {
        "Authorization": f"Bearer {settings.ship24_api_key}",
        "Content-Type": "application/json",
    }


async def fetch_tracking(shipment: ShipmentRecord, client: httpx.AsyncClient) -> TrackingData | None:
    """Fetch the latest Ship24 tracking results for a shipment."""
    if shipment.tracker_id:
        response = await client.get(
            f"{SHIP24_API_URL}/trackers/{shipment.tracker_id}/results",
            headers=_headers(),
        )
    else:
        # Creates the tracker if needed and returns its results
        response = await client.post(
            f"{SHIP24_API_URL}/trackers/track",
            json={"trackingNumber": shipment.tracking_code},
            headers=_headers(),
        )

    if response.status_code not in (200, 201):
        logger.error(f"Ship24 API error for {shipment.tracking_code}: {response.status_code} {response.text[:200]}")
        return None

    trackings = response.json().get("data", {}).get("trackings", [])
    if not trackings:
        return None

    try:
        return TrackingData.model_validate(trackings[0])
    except ValidationError as e:
        logger.error(f"Unexpected Ship24 tracking shape for {shipment.tracking_code}: {e}")
        return None


def _is_stale(shipment: ShipmentRecord, cutoff: datetime) -> bool:
    return shipment.last_update is None or shipment.last_update < cutoff


async def refresh_active_shipments(client: httpx.AsyncClient | None = None) -> dict:
    """Poll Ship24 for shipments that have not heard from a webhook recently."""
    if not settings.ship24_api_key:
        logger.warning("No Ship24 API key configured")
        return {"total": 0, "updated": 0, "failed": 0}

    cutoff = datetime.now(timezone.utc) - timedelta(hours=settings.refresh_stale_hours)
    candidates = database.find("shipments", ShipmentRecord, auto_tracking=True)
    active = [s for s in candidates if s.status != "delivered" and _is_stale(s, cutoff)]
    active = active[: settings.refresh_batch_size]

    if not active:
        logger.info("No active shipments to refresh")
        return {"total": 0, "updated": 0, "failed": 0}

    logger.info(f"Refreshing {len(active)} shipment(s)")
    updated = 0
    failed = 0

    async with httpx.AsyncClient(timeout=settings.http_timeout) as own_client:
        http = client or own_client
        for shipment in active:
            try:
                tracking = await fetch_tracking(shipment, http)
            except httpx.HTTPError as e:
                logger.error(f"Error fetching tracking for {shipment.tracking_code}: {e}")
                tracking = None

            if tracking is None:
                failed += 1
            else:
                outcome = await process_tracking(tracking, client=http)
                if isinstance(outcome, UpdatedShipment):
                    updated += 1
                    logger.info(f"Updated {shipment.tracking_code}: {outcome.status}")
                else:
                    failed += 1

            await asyncio.sleep(REQUEST_DELAY)

    return {"total": len(active), "updated": updated, "failed": failed}


async def sync_couriers(client: httpx.AsyncClient | None = None) -> dict:
    """Refresh the courier code -> name table from Ship24."""
    if not settings.ship24_api_key:
        logger.warning("No Ship24 API key configured")
        return {"total": 0}

    async with httpx.AsyncClient(timeout=settings.http_timeout) as own_client:
        http = client or own_client
        response = await http.get(f"{SHIP24_API_URL}/couriers", headers=_headers())
        response.raise_for_status()

    couriers = response.json().get("data", {}).get("couriers", [])
    saved = 0
    for item in couriers:
        code = item.get("courierCode")
        if not code:
            continue
        database.save(
            "couriers",
            Courier(
                id=code,
                courier_code=code,
                courier_name=item.get("courierName") or code,
                website=item.get("website"),
                is_post=bool(item.get("isPost")),
                country_code=item.get("countryCode"),
                is_deprecated=bool(item.get("isDeprecated")),
            ),
        )
        saved += 1

    logger.info(f"Synced {saved} courier(s)")
    return {"total": saved}
