"""Carrier (Ship24) tracking payload models.

Field names follow the carrier's camelCase JSON through aliases, so payloads
validate as delivered and dump back unchanged with ``by_alias=True``.
"""

from datetime import datetime, timezone
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

MAX_ENVELOPES = 100
MAX_TRACKINGS = 100
MAX_EVENTS = 1000


def parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; values without an offset are taken as UTC."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class CarrierModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")


class TrackingEvent(CarrierModel):
    event_id: str = Field(max_length=200)
    tracking_number: str | None = Field(default=None, max_length=150)
    event_tracking_number: str | None = Field(default=None, max_length=150)
    status: str | None = Field(default=None, max_length=1000)
    occurrence_datetime: str
    event_datetime: str | None = Field(default=None, alias="datetime")
    location: str | None = Field(default=None, max_length=500)
    courier_code: str | None = Field(default=None, max_length=100)
    courier_name: str | None = Field(default=None, max_length=200)
    status_milestone: str = Field(min_length=1, max_length=50)
    order: int | None = None

    @field_validator("occurrence_datetime", "event_datetime")
    @classmethod
    def _check_timestamp(cls, value: str | None) -> str | None:
        if value is not None:
            try:
                parse_timestamp(value)
            except ValueError as e:
                raise ValueError(f"invalid ISO-8601 timestamp: {value!r}") from e
        return value

    @property
    def occurred_at(self) -> datetime:
        return parse_timestamp(self.occurrence_datetime)

    @property
    def effective_at(self) -> datetime:
        """Sort key for stored history: ``datetime`` when present, else occurrence."""
        return parse_timestamp(self.event_datetime or self.occurrence_datetime)


class Tracker(CarrierModel):
    tracker_id: str = Field(min_length=1, max_length=100)
    tracking_number: str = Field(max_length=150)
    shipment_reference: str | None = Field(default=None, max_length=150)
    client_tracker_id: str | None = None
    is_subscribed: bool | None = None
    created_at: str | None = None


class TrackingNumberRef(CarrierModel):
    tn: str | None = Field(default=None, max_length=150)


class Delivery(CarrierModel):
    estimated_delivery_date: str | None = None
    service: str | None = None
    signed_by: str | None = None


class Recipient(CarrierModel):
    name: str | None = None
    address: str | None = Field(default=None, max_length=500)
    post_code: str | None = None
    city: str | None = None
    subdivision: str | None = None


class ShipmentSnapshot(CarrierModel):
    shipment_id: str | None = None
    status_code: str | None = None
    status_category: str | None = None
    status_milestone: str | None = Field(default=None, max_length=50)
    origin_country_code: str | None = None
    destination_country_code: str | None = None
    delivery: Delivery = Field(default_factory=Delivery)
    tracking_numbers: list[TrackingNumberRef] = Field(default_factory=list)
    recipient: Recipient = Field(default_factory=Recipient)


class MilestoneTimestamps(CarrierModel):
    info_received_datetime: str | None = None
    in_transit_datetime: str | None = None
    out_for_delivery_datetime: str | None = None
    failed_attempt_datetime: str | None = None
    available_for_pickup_datetime: str | None = None
    exception_datetime: str | None = None
    delivered_datetime: str | None = None


class Statistics(CarrierModel):
    timestamps: MilestoneTimestamps = Field(default_factory=MilestoneTimestamps)


class TrackingData(CarrierModel):
    tracker: Tracker
    shipment: ShipmentSnapshot = Field(default_factory=ShipmentSnapshot)
    events: list[TrackingEvent] = Field(default_factory=list, max_length=MAX_EVENTS)
    statistics: Statistics = Field(default_factory=Statistics)

    def tracking_number_candidates(self) -> list[str]:
        """Tracking numbers usable to relink this tracker, without blanks or repeats."""
        candidates = [self.tracker.tracking_number]
        candidates.extend(ref.tn for ref in self.shipment.tracking_numbers if ref.tn)
        return list(dict.fromkeys(tn for tn in candidates if tn))


class WebhookBody(CarrierModel):
    trackings: list[TrackingData] = Field(max_length=MAX_TRACKINGS)


class WebhookEnvelope(CarrierModel):
    body: WebhookBody


envelope_list = TypeAdapter(Annotated[list[WebhookEnvelope], Field(min_length=1, max_length=MAX_ENVELOPES)])
