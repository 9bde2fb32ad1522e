from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class ReportModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class UpdatedShipment(ReportModel):
    tracker_id: str
    shipment_id: str
    tracking_code: str
    status: str
    events_count: int
    correlation_id: str


class TrackingFailure(ReportModel):
    tracker_id: str
    correlation_id: str
    error: str
    shipment_id: str | None = None


class WebhookReport(ReportModel):
    success: bool
    dry_run: bool
    message: str
    updated: list[UpdatedShipment]
    errors: list[TrackingFailure] | None = None

    @property
    def status_code(self) -> int:
        return 200 if not self.errors else 207
