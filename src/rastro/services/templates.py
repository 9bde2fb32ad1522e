import re
from collections.abc import Iterable, Mapping
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from rastro.models.shipment import MessageTemplate, ShipmentCustomer, ShipmentRecord
from rastro.models.tracking import TrackingData, TrackingEvent, parse_timestamp
from rastro.services.status import StatusMapping

LOCAL_TZ = ZoneInfo("America/Sao_Paulo")

PLACEHOLDER = re.compile(r"\{\{\s*([^{}]*?)\s*\}\}")

DATE_FORMAT = "%d/%m/%Y"
TIME_FORMAT = "%H:%M"
DATETIME_FORMAT = f"{DATE_FORMAT} {TIME_FORMAT}"

# Template variable -> Ship24 statistics timestamp field
MILESTONE_DATE_VARIABLES = {
    "data_info_recebida": "info_received_datetime",
    "data_em_transito": "in_transit_datetime",
    "data_saiu_entrega": "out_for_delivery_datetime",
    "data_entregue": "delivered_datetime",
    "data_tentativa_falha": "failed_attempt_datetime",
    "data_excecao": "exception_datetime",
}


def render_template(content: str, variables: Mapping[str, str | None]) -> str:
    """Replace every ``{{key}}`` in ``content``; unknown keys render empty."""
    return PLACEHOLDER.sub(lambda m: variables.get(m.group(1)) or "", content)


def matching_templates(
    templates: Iterable[MessageTemplate],
    notification_type: str,
) -> list[MessageTemplate]:
    return [t for t in templates if t.is_active and notification_type in t.notification_type]


def format_local(value: str | datetime | None, fmt: str = DATETIME_FORMAT) -> str:
    """Format a timestamp the way pt-BR users read it, in São Paulo time."""
    if not value:
        return ""
    if isinstance(value, str):
        try:
            value = parse_timestamp(value)
        except ValueError:
            return ""
    elif value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(LOCAL_TZ).strftime(fmt)


def days_in_transit(start: datetime | None, now: datetime) -> str:
    if start is None:
        return ""
    days = max((now - start).days, 0)
    return "1 dia" if days == 1 else f"{days} dias"


def build_template_variables(
    shipment: ShipmentRecord,
    tracking: TrackingData,
    event: TrackingEvent | None,
    customer: ShipmentCustomer | None,
    mapping: StatusMapping,
    events: list[TrackingEvent],
    now: datetime | None = None,
) -> dict[str, str]:
    now = now or datetime.now(timezone.utc)
    snapshot = tracking.shipment
    recipient = snapshot.recipient

    full_name = (customer.name if customer else "").strip()
    first_name, _, last_name = full_name.partition(" ")

    if events:
        started = min(e.occurred_at for e in events)
    else:
        started = shipment.created_at

    variables = {
        "cliente_nome": full_name,
        "cliente_primeiro_nome": first_name,
        "cliente_sobrenome": last_name.strip(),
        "cliente_email": customer.email if customer else "",
        "cliente_telefone": customer.phone if customer else "",
        "tracking_code": shipment.tracking_code,
        "tracker_id": tracking.tracker.tracker_id,
        "status": mapping.translation,
        "status_milestone": mapping.milestone,
        "transportadora": "",
        "localizacao": "",
        "data_atualizacao": format_local(now),
        "evento_descricao": "",
        "evento_data": "",
        "evento_hora": "",
        "evento_localizacao": "",
        "previsao_entrega": format_local(snapshot.delivery.estimated_delivery_date, DATE_FORMAT),
        "endereco_entrega": recipient.address,
        "cidade_entrega": recipient.city,
        "estado_entrega": recipient.subdivision,
        "cep_entrega": recipient.post_code,
        "pais_origem": snapshot.origin_country_code,
        "pais_destino": snapshot.destination_country_code,
        "dias_em_transito": days_in_transit(started, now),
        "referencia_envio": tracking.tracker.shipment_reference,
        "assinado_por": snapshot.delivery.signed_by,
    }

    if event:
        variables.update({
            "transportadora": event.courier_name or event.courier_code,
            "localizacao": event.location,
            "evento_descricao": event.status,
            "evento_data": format_local(event.occurred_at, DATE_FORMAT),
            "evento_hora": format_local(event.occurred_at, TIME_FORMAT),
            "evento_localizacao": event.location,
        })

    timestamps = tracking.statistics.timestamps
    for variable, field in MILESTONE_DATE_VARIABLES.items():
        variables[variable] = format_local(getattr(timestamps, field))

    return {key: value or "" for key, value in variables.items()}
