from rastro.models.shipment import MessageTemplate, ShipmentCustomer, ShipmentRecord
from rastro.models.tracking import TrackingData, TrackingEvent
from rastro.storage import database


def event_payload(event_id, milestone, occurred, **extra):
    data = {
        "eventId": event_id,
        "statusMilestone": milestone,
        "occurrenceDatetime": occurred,
        "status": f"{milestone} reported",
    }
    data.update(extra)
    return data


def make_event(event_id, milestone, occurred, **extra) -> TrackingEvent:
    return TrackingEvent.model_validate(event_payload(event_id, milestone, occurred, **extra))


def tracking_payload(tracker_id="T1", tracking_number="BR1", events=(), milestone=None, **shipment):
    snapshot = {"statusMilestone": milestone, "trackingNumbers": [{"tn": tracking_number}]}
    snapshot.update(shipment)
    return {
        "tracker": {"trackerId": tracker_id, "trackingNumber": tracking_number},
        "shipment": snapshot,
        "events": list(events),
    }


def make_tracking(**kwargs) -> TrackingData:
    return TrackingData.model_validate(tracking_payload(**kwargs))


def webhook_payload(*trackings):
    return [{"body": {"trackings": list(trackings)}}]


def stored_shipment(**fields) -> ShipmentRecord:
    fields.setdefault("customer_id", "merchant-1")
    fields.setdefault("tracking_code", "BR1")
    shipment = ShipmentRecord(**fields)
    database.save("shipments", shipment)
    return shipment


def stored_customer(**fields) -> ShipmentCustomer:
    fields.setdefault("customer_id", "merchant-1")
    fields.setdefault("name", "João da Silva")
    fields.setdefault("phone", "+5511987654321")
    customer = ShipmentCustomer(**fields)
    database.save("shipment_customers", customer)
    return customer


def stored_template(**fields) -> MessageTemplate:
    fields.setdefault("customer_id", "merchant-1")
    fields.setdefault("notification_type", ["in_transit"])
    fields.setdefault("message_content", "Olá {{cliente_primeiro_nome}}, pedido {{tracking_code}}: {{status}}")
    template = MessageTemplate(**fields)
    database.save("message_templates", template)
    return template
