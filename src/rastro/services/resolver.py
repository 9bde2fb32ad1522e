import logging
import sqlite3
from dataclasses import dataclass

from pydantic import ValidationError

from rastro.errors import ResolverError
from rastro.models.shipment import ShipmentRecord
from rastro.storage import database

logger = logging.getLogger(__name__)


@dataclass
class Resolution:
    shipment: ShipmentRecord
    relinked: bool = False
    would_relink: bool = False


def resolve_shipment(
    tracker_id: str,
    tracking_numbers: list[str],
    dry_run: bool = False,
) -> Resolution | None:
    """Find the shipment a tracker reports on.

    Shipments are matched by ``tracker_id`` first. When none is linked yet,
    the tracking numbers are tried against ``tracking_code`` and the match is
    relinked to the tracker so later deliveries hit the first lookup.
    Returns ``None`` when no shipment matches.
    """
    try:
        shipment = database.find_one("shipments", ShipmentRecord, tracker_id=tracker_id)
        if shipment:
            return Resolution(shipment)

        candidates = [tn for tn in tracking_numbers if tn]
        if not candidates:
            return None

        shipment = database.find_one("shipments", ShipmentRecord, tracking_code=candidates)
        if not shipment:
            return None

        if shipment.tracker_id == tracker_id:
            return Resolution(shipment)

        if dry_run:
            logger.info(
                f"[dry-run] Would relink shipment {shipment.id} "
                f"({shipment.tracking_code}) to tracker {tracker_id}"
            )
            return Resolution(shipment, would_relink=True)

        logger.info(
            f"Relinking shipment {shipment.id} ({shipment.tracking_code}) "
            f"from tracker {shipment.tracker_id} to {tracker_id}"
        )
        shipment.tracker_id = tracker_id
        database.save("shipments", shipment)
        return Resolution(shipment, relinked=True)

    except (sqlite3.Error, ValidationError) as e:
        raise ResolverError(str(e)) from e
