"""Apply carrier tracking updates to stored shipments.

This is the side-effecting shell around the pure event reconciliation: it
resolves the shipment, persists the merged history and status, records the
in-app notification and triggers the WhatsApp fan-out. In dry-run mode every
write and outbound call is logged instead of performed.
"""

import logging
import sqlite3
from datetime import datetime, timezone
from uuid import uuid4

import httpx

from rastro.config import settings
from rastro.errors import ResolverError
from rastro.models.report import TrackingFailure, UpdatedShipment, WebhookReport
from rastro.models.shipment import Courier, Notification, ShipmentRecord
from rastro.models.tracking import TrackingData, TrackingEvent, WebhookEnvelope
from rastro.services.events import enrich_courier_names, merge_events, select_relevant_event
from rastro.services.fanout import fan_out
from rastro.services.resolver import Resolution, resolve_shipment
from rastro.services.status import StatusMapping, build_notification_message, map_status
from rastro.storage import database

logger = logging.getLogger(__name__)


async def process_webhook(
    envelopes: list[WebhookEnvelope],
    dry_run: bool = False,
    client: httpx.AsyncClient | None = None,
) -> WebhookReport:
    """Process every tracking in the delivery, collecting per-item failures."""
    trackings = [t for envelope in envelopes for t in envelope.body.trackings]
    logger.info(f"Processing {len(trackings)} tracking update(s){' (dry run)' if dry_run else ''}")

    if client is None:
        async with httpx.AsyncClient(timeout=settings.http_timeout) as own_client:
            outcomes = [await process_tracking(t, dry_run, own_client) for t in trackings]
    else:
        outcomes = [await process_tracking(t, dry_run, client) for t in trackings]

    updated = [o for o in outcomes if isinstance(o, UpdatedShipment)]
    errors = [o for o in outcomes if isinstance(o, TrackingFailure)]

    message = f"Processed {len(updated)} shipment(s) successfully"
    if errors:
        message += f", {len(errors)} error(s)"
    if dry_run:
        message = f"[dry-run] {message}"

    report = WebhookReport(
        success=not errors,
        dry_run=dry_run,
        message=message,
        updated=updated,
        errors=errors or None,
    )
    logger.info(f"Webhook processing completed: {report.message}")
    return report


async def process_tracking(
    tracking: TrackingData,
    dry_run: bool = False,
    client: httpx.AsyncClient | None = None,
) -> UpdatedShipment | TrackingFailure:
    """Apply one carrier tracking; any failure is returned, never raised."""
    correlation_id = str(uuid4())
    tracker_id = tracking.tracker.tracker_id
    logger.info(f"[{correlation_id}] Processing tracker {tracker_id}")

    shipment_id = None
    try:
        resolution = resolve_shipment(tracker_id, tracking.tracking_number_candidates(), dry_run=dry_run)
        if resolution is None:
            logger.warning(f"[{correlation_id}] No shipment found for tracker {tracker_id}")
            return TrackingFailure(tracker_id=tracker_id, correlation_id=correlation_id, error="Shipment not found")

        shipment_id = resolution.shipment.id
        return await _apply_tracking(tracking, resolution, dry_run, client, correlation_id)

    except ResolverError as e:
        logger.error(f"[{correlation_id}] Shipment lookup failed for tracker {tracker_id}: {e}")
        return TrackingFailure(tracker_id=tracker_id, correlation_id=correlation_id, error=str(e))
    except Exception as e:
        logger.exception(f"[{correlation_id}] Unexpected error processing tracker {tracker_id}: {e}")
        return TrackingFailure(
            tracker_id=tracker_id,
            correlation_id=correlation_id,
            shipment_id=shipment_id,
            error=str(e),
        )


async def _apply_tracking(
    tracking: TrackingData,
    resolution: Resolution,
    dry_run: bool,
    client: httpx.AsyncClient | None,
    correlation_id: str,
) -> UpdatedShipment | TrackingFailure:
    tracker_id = tracking.tracker.tracker_id
    shipment = resolution.shipment
    events = tracking.events
    courier_names = _lookup_courier_names(events, correlation_id)
    if courier_names is not None:
        events = enrich_courier_names(events, courier_names)

    merged = merge_events(shipment.tracking_events, events)
    relevant = select_relevant_event(merged, window_ms=settings.relevance_window_ms)
    milestone = relevant.status_milestone if relevant else (tracking.shipment.status_milestone or "pending")
    mapping = map_status(milestone)

    updated = shipment.model_copy(update={
        "tracking_events": merged,
        "shipment_data": tracking.shipment.model_dump(mode="json", by_alias=True),
        "status": mapping.internal_status,
        "last_update": datetime.now(timezone.utc),
    })

    if dry_run:
        logger.info(
            f"[{correlation_id}] [dry-run] Would update shipment {shipment.id}: "
            f"status={mapping.internal_status} events={len(merged)} relink={resolution.would_relink}"
        )
    else:
        try:
            database.save("shipments", updated)
        except sqlite3.Error as e:
            logger.error(f"[{correlation_id}] Error updating shipment {shipment.id}: {e}")
            return TrackingFailure(
                tracker_id=tracker_id,
                correlation_id=correlation_id,
                shipment_id=shipment.id,
                error=str(e),
            )
        logger.info(f"[{correlation_id}] Updated shipment {shipment.id}: {mapping.internal_status}")

    if _is_news(shipment, relevant, mapping):
        _record_notification(updated, tracking, relevant, mapping, dry_run, correlation_id)
        if dry_run:
            logger.info(f"[{correlation_id}] [dry-run] Would fan out {mapping.notification_type} templates")
        else:
            await fan_out(updated, tracking, relevant, mapping, merged, client=client, correlation_id=correlation_id)
    else:
        logger.info(f"[{correlation_id}] No new milestone for shipment {shipment.id}, skipping notifications")

    return UpdatedShipment(
        tracker_id=tracker_id,
        shipment_id=shipment.id,
        tracking_code=shipment.tracking_code,
        status=mapping.internal_status,
        events_count=len(merged),
        correlation_id=correlation_id,
    )


def _is_news(shipment: ShipmentRecord, relevant: TrackingEvent | None, mapping: StatusMapping) -> bool:
    """Whether this update carries something the end customer has not seen yet."""
    if mapping.internal_status != shipment.status:
        return True
    if relevant is None:
        return False
    return relevant.event_id not in {e.event_id for e in shipment.tracking_events}


def _lookup_courier_names(events: list[TrackingEvent], correlation_id: str) -> dict[str, str] | None:
    codes = sorted({e.courier_code for e in events if e.courier_code})
    if not codes:
        return None

    try:
        couriers = database.find("couriers", Courier, courier_code=codes)
    except sqlite3.Error as e:
        logger.error(f"[{correlation_id}] Error fetching courier names: {e}")
        return None
    return {c.courier_code: c.courier_name for c in couriers}


def _record_notification(
    shipment: ShipmentRecord,
    tracking: TrackingData,
    event: TrackingEvent | None,
    mapping: StatusMapping,
    dry_run: bool,
    correlation_id: str,
) -> None:
    courier_name = event.courier_name if event else None
    location = event.location if event else None
    notification = Notification(
        customer_id=shipment.customer_id,
        shipment_id=shipment.id,
        tracking_code=tracking.tracker.tracking_number or shipment.tracking_code,
        notification_type=mapping.notification_type,
        title=mapping.title,
        message=build_notification_message(shipment.tracking_code, courier_name, location, mapping.milestone),
        status_milestone=mapping.milestone,
        courier_name=courier_name,
        location=location,
    )

    if dry_run:
        logger.info(f"[{correlation_id}] [dry-run] Would create notification: {notification.title}")
        return

    try:
        database.save("notifications", notification)
    except sqlite3.Error as e:
        # The shipment update already went through; the notification is best effort.
        logger.error(f"[{correlation_id}] Failed to create notification for shipment {shipment.id}: {e}")
    else:
        logger.info(f"[{correlation_id}] Created notification for shipment {shipment.id}")
