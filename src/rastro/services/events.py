"""Pure reconciliation of carrier tracking events.

Nothing here touches storage or the network; the webhook processor feeds
stored and delivered events in and persists what comes out.
"""

import logging
from collections.abc import Iterable, Mapping
from datetime import timedelta

from rastro.models.tracking import TrackingEvent
from rastro.services.status import STATUS_PRIORITY

logger = logging.getLogger(__name__)

RELEVANCE_WINDOW_MS = 60_000


def merge_events(
    existing: Iterable[TrackingEvent],
    new: Iterable[TrackingEvent],
) -> list[TrackingEvent]:
    """Merge stored and delivered events, deduplicated by event id, newest first.

    A delivered event replaces a stored one with the same id. Events without an
    id cannot be deduplicated and are dropped.
    """
    by_id: dict[str, TrackingEvent] = {}
    for event in [*existing, *new]:
        if event.event_id:
            by_id[event.event_id] = event
        else:
            logger.debug("Dropping tracking event without eventId")

    return sorted(by_id.values(), key=lambda e: e.effective_at, reverse=True)


def select_relevant_event(
    events: Iterable[TrackingEvent],
    window_ms: int = RELEVANCE_WINDOW_MS,
    priorities: Mapping[str, int] = STATUS_PRIORITY,
) -> TrackingEvent | None:
    """Pick the event that should drive the shipment's current status.

    Carriers often report several milestones within the same minute, so among
    the events within ``window_ms`` of the latest one the highest-priority
    milestone wins. On equal priority the later event is kept.
    """
    ordered = sorted(events, key=lambda e: e.occurred_at, reverse=True)
    if not ordered:
        return None

    most_recent = ordered[0].occurred_at
    span = timedelta(milliseconds=window_ms)
    window = [e for e in ordered if most_recent - e.occurred_at <= span]
    if len(window) == 1:
        return window[0]

    best = window[0]
    for event in window[1:]:
        if priorities.get(event.status_milestone, 0) > priorities.get(best.status_milestone, 0):
            best = event
    return best


def enrich_courier_names(
    events: list[TrackingEvent],
    courier_names: Mapping[str, str],
) -> list[TrackingEvent]:
    """Fill ``courier_name`` from the courier table, falling back to the code."""
    enriched = []
    for event in events:
        if event.courier_code:
            name = courier_names.get(event.courier_code) or event.courier_code
            event = event.model_copy(update={"courier_name": name})
        enriched.append(event)
    return enriched
