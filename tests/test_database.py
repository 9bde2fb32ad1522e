from datetime import datetime, timezone

from factories import stored_shipment

from rastro.models.shipment import ShipmentRecord
from rastro.storage import database


def codes(shipments):
    return [s.tracking_code for s in shipments]


def test_find_by_equality_null_and_membership():
    stored_shipment(tracking_code="BR1", tracker_id="T1", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
    stored_shipment(tracking_code="BR2", created_at=datetime(2024, 1, 2, tzinfo=timezone.utc))
    stored_shipment(tracking_code="BR3", created_at=datetime(2024, 1, 3, tzinfo=timezone.utc))

    assert codes(database.find("shipments", ShipmentRecord, tracker_id="T1")) == ["BR1"]
    assert codes(database.find("shipments", ShipmentRecord, tracker_id=None)) == ["BR3", "BR2"]
    assert codes(database.find("shipments", ShipmentRecord, tracking_code=["BR1", "BR3"])) == ["BR3", "BR1"]
    assert codes(database.find("shipments", ShipmentRecord, limit=1)) == ["BR3"]
    assert database.find_one("shipments", ShipmentRecord, tracking_code="BR9") is None


def test_save_updates_in_place():
    shipment = stored_shipment(tracking_code="BR1")
    shipment.status = "delivered"
    database.save("shipments", shipment)

    [loaded] = database.load_all("shipments", ShipmentRecord)
    assert loaded.id == shipment.id
    assert loaded.status == "delivered"
