from datetime import datetime, timezone
from typing import Any, Literal
from uuid import uuid4

from pydantic import BaseModel, Field

from rastro.models.tracking import TrackingEvent

InternalStatus = Literal["pending", "in_transit", "out_for_delivery", "delivered", "exception"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ShipmentRecord(BaseModel):
    id: str = Field(default_factory=lambda: f"ship_{uuid4().hex[:8]}")
    customer_id: str
    tracking_code: str
    tracker_id: str | None = None
    tracking_events: list[TrackingEvent] = Field(default_factory=list)
    shipment_data: dict[str, Any] | None = None
    shipment_customer_id: str | None = None
    status: InternalStatus = "pending"
    auto_tracking: bool = True
    last_update: datetime | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class ShipmentCustomer(BaseModel):
    """End customer who receives WhatsApp updates for a merchant's shipment."""

    id: str = Field(default_factory=lambda: f"cust_{uuid4().hex[:8]}")
    customer_id: str
    name: str = ""
    email: str | None = None
    phone: str | None = None
    created_at: datetime = Field(default_factory=_utcnow)


class MessageTemplate(BaseModel):
    id: str = Field(default_factory=lambda: f"tpl_{uuid4().hex[:8]}")
    customer_id: str
    name: str = ""
    notification_type: list[str] = Field(default_factory=list)
    message_content: str
    is_active: bool = True
    created_at: datetime = Field(default_factory=_utcnow)


class Courier(BaseModel):
    id: str
    courier_code: str
    courier_name: str
    website: str | None = None
    is_post: bool = False
    country_code: str | None = None
    is_deprecated: bool = False
    created_at: datetime = Field(default_factory=_utcnow)


class Notification(BaseModel):
    id: str = Field(default_factory=lambda: f"ntf_{uuid4().hex[:8]}")
    customer_id: str
    shipment_id: str
    tracking_code: str
    notification_type: str
    title: str
    message: str
    status_milestone: str
    courier_name: str | None = None
    location: str | None = None
    is_read: bool = False
    created_at: datetime = Field(default_factory=_utcnow)
