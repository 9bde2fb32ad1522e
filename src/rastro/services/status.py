import logging
from dataclasses import dataclass
from types import MappingProxyType

from rastro.models.shipment import InternalStatus

logger = logging.getLogger(__name__)

# Higher wins when several events share the relevance window.
STATUS_PRIORITY = MappingProxyType({
    "delivered": 100,
    "out_for_delivery": 90,
    "failed_attempt": 80,
    "exception": 80,
    "available_for_pickup": 70,
    "in_transit": 50,
    "info_received": 30,
    "pending": 10,
    "expired": 5,
})

INTERNAL_STATUS: MappingProxyType[str, InternalStatus] = MappingProxyType({
    "in_transit": "in_transit",
    "out_for_delivery": "out_for_delivery",
    "delivered": "delivered",
    "exception": "exception",
    "pending": "pending",
    "failed_attempt": "exception",
})

STATUS_TITLES = MappingProxyType({
    "delivered": "✅ Pedido entregue",
    "out_for_delivery": "🚚 Pedido saiu para entrega",
    "in_transit": "📦 Pedido em trânsito",
    "failed_attempt": "⚠️ Tentativa de entrega falhou",
    "exception": "❌ Problema na entrega",
    "available_for_pickup": "📍 Pedido disponível para retirada",
    "info_received": "📋 Informação recebida",
    "pending": "⏳ Pedido pendente",
    "expired": "⏰ Rastreamento expirado",
})

STATUS_TRANSLATIONS = MappingProxyType({
    "info_received": "Informação recebida",
    "in_transit": "Em trânsito",
    "out_for_delivery": "Saiu para entrega",
    "failed_attempt": "Tentativa de entrega falhou",
    "delivered": "Entregue",
    "available_for_pickup": "Disponível para retirada",
    "exception": "Problema na entrega",
    "expired": "Rastreamento expirado",
    "pending": "Pendente",
})

FALLBACK_TITLE = "📦 Atualização de rastreamento"

MESSAGE_PREFIXES = MappingProxyType({
    "delivered": "Seu pedido foi entregue com sucesso!",
    "out_for_delivery": "Seu pedido está a caminho!",
    "failed_attempt": "Houve um problema com a entrega.",
    "exception": "Houve um problema com a entrega.",
})


@dataclass(frozen=True)
class StatusMapping:
    milestone: str
    internal_status: InternalStatus
    notification_type: str
    title: str
    translation: str


def map_status(milestone: str) -> StatusMapping:
    """Translate a carrier milestone into internal status and notification labels."""
    if milestone not in STATUS_TRANSLATIONS:
        logger.warning(f"Unknown status milestone {milestone!r}, treating as pending")

    return StatusMapping(
        milestone=milestone,
        internal_status=INTERNAL_STATUS.get(milestone, "pending"),
        notification_type=milestone,
        title=STATUS_TITLES.get(milestone, FALLBACK_TITLE),
        translation=STATUS_TRANSLATIONS.get(milestone, milestone),
    )


def build_notification_message(
    tracking_code: str,
    courier_name: str | None,
    location: str | None,
    milestone: str,
) -> str:
    """Compose the in-app notification text for a tracking update."""
    message = f"Rastreio #{tracking_code}"
    if courier_name:
        message += f" com {courier_name}"
    if location:
        message += f" - {location}"

    prefix = MESSAGE_PREFIXES.get(milestone)
    if prefix:
        message = f"{prefix} {message}"
    return message
