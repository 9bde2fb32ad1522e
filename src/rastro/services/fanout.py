import logging
import sqlite3
from typing import Any

import httpx

from rastro.config import settings
from rastro.errors import TemplateFanoutError
from rastro.models.shipment import MessageTemplate, ShipmentCustomer, ShipmentRecord
from rastro.models.tracking import TrackingData, TrackingEvent
from rastro.services.status import StatusMapping
from rastro.services.templates import build_template_variables, matching_templates, render_template
from rastro.storage import database

logger = logging.getLogger(__name__)


async def fan_out(
    shipment: ShipmentRecord,
    tracking: TrackingData,
    event: TrackingEvent | None,
    mapping: StatusMapping,
    events: list[TrackingEvent],
    client: httpx.AsyncClient | None = None,
    correlation_id: str = "",
) -> int:
    """Send the shipment's matching WhatsApp templates through the relay.

    Returns the number of messages relayed. Failures are logged and never
    raised, since a status update that was already saved must stand.
    """
    try:
        if client is None:
            async with httpx.AsyncClient(timeout=settings.http_timeout) as own_client:
                return await _fan_out(shipment, tracking, event, mapping, events, own_client, correlation_id)
        return await _fan_out(shipment, tracking, event, mapping, events, client, correlation_id)
    except TemplateFanoutError as e:
        logger.error(f"[{correlation_id}] Template fan-out failed for shipment {shipment.id}: {e}")
        return 0


async def _fan_out(
    shipment: ShipmentRecord,
    tracking: TrackingData,
    event: TrackingEvent | None,
    mapping: StatusMapping,
    events: list[TrackingEvent],
    client: httpx.AsyncClient,
    correlation_id: str,
) -> int:
    if not settings.relay_url:
        logger.info(f"[{correlation_id}] No relay configured, skipping template fan-out")
        return 0

    if not shipment.shipment_customer_id:
        logger.info(f"[{correlation_id}] Shipment {shipment.id} has no end customer, skipping fan-out")
        return 0

    try:
        customer = database.load("shipment_customers", shipment.shipment_customer_id, ShipmentCustomer)
        if not customer or not customer.phone:
            logger.info(f"[{correlation_id}] No phone for shipment {shipment.id}, skipping fan-out")
            return 0

        candidates = database.find("message_templates", MessageTemplate, customer_id=shipment.customer_id)
    except sqlite3.Error as e:
        raise TemplateFanoutError(f"template lookup failed: {e}") from e

    templates = matching_templates(candidates, mapping.notification_type)
    if not templates:
        logger.info(f"[{correlation_id}] No active templates for {mapping.notification_type}")
        return 0

    instance = await fetch_whatsapp_instance(client, shipment.customer_id)
    if settings.whatsapp_status_url and not _is_connected(instance):
        logger.warning(
            f"[{correlation_id}] WhatsApp instance for customer {shipment.customer_id} "
            f"is not connected, skipping fan-out"
        )
        return 0

    variables = build_template_variables(shipment, tracking, event, customer, mapping, events)
    sent = 0
    for template in templates:
        payload = {
            "customer": {
                "id": customer.id,
                "name": customer.name,
                "phone": customer.phone,
                "email": customer.email,
            },
            "tracking": {
                "shipment_id": shipment.id,
                "tracking_code": shipment.tracking_code,
                "tracker_id": tracking.tracker.tracker_id,
                "status": mapping.internal_status,
                "status_milestone": mapping.milestone,
                "event": event.model_dump(mode="json", by_alias=True) if event else None,
            },
            "template": {
                "id": template.id,
                "name": template.name,
                "notification_type": mapping.notification_type,
                "message": render_template(template.message_content, variables),
            },
            "whatsapp_instance": instance,
        }
        try:
            response = await client.post(settings.relay_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise TemplateFanoutError(f"relay rejected template {template.id}: {e}") from e
        sent += 1
        logger.info(f"[{correlation_id}] Relayed template {template.id} for shipment {shipment.id}")

    return sent


async def fetch_whatsapp_instance(client: httpx.AsyncClient, customer_id: str) -> dict[str, Any] | None:
    """Look up the merchant's WhatsApp instance, if a status endpoint is configured."""
    if not settings.whatsapp_status_url:
        return None

    try:
        response = await client.post(settings.whatsapp_status_url, json={"userId": customer_id})
        response.raise_for_status()
        data = response.json()
    except (httpx.HTTPError, ValueError) as e:
        raise TemplateFanoutError(f"WhatsApp status lookup failed: {e}") from e

    # Response shape: [{"data": [{...instance...}]}]
    try:
        instance = data[0]["data"][0]
    except (IndexError, KeyError, TypeError):
        return None
    return instance if isinstance(instance, dict) else None


def _is_connected(instance: dict[str, Any] | None) -> bool:
    return bool(instance) and instance.get("connectionStatus") == "open"
