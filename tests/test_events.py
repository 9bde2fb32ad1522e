from factories import make_event

from rastro.services.events import enrich_courier_names, merge_events, select_relevant_event


def ids(events):
    return [e.event_id for e in events]


def test_merge_orders_newest_first():
    existing = [make_event("e1", "info_received", "2024-01-01T08:00:00Z")]
    new = [
        make_event("e3", "out_for_delivery", "2024-01-02T09:00:00Z"),
        make_event("e2", "in_transit", "2024-01-01T12:00:00Z"),
    ]
    assert ids(merge_events(existing, new)) == ["e3", "e2", "e1"]


def test_merge_prefers_datetime_over_occurrence():
    events = [
        make_event("a", "in_transit", "2024-01-01T10:00:00Z", datetime="2024-01-01T09:00:00Z"),
        make_event("b", "in_transit", "2024-01-01T09:30:00Z"),
    ]
    assert ids(merge_events([], events)) == ["b", "a"]


def test_merge_new_event_replaces_stored_one():
    existing = [make_event("e1", "in_transit", "2024-01-01T10:00:00Z", location="Curitiba")]
    corrected = [make_event("e1", "in_transit", "2024-01-01T10:00:00Z", location="São Paulo")]
    merged = merge_events(existing, corrected)
    assert len(merged) == 1
    assert merged[0].location == "São Paulo"


def test_merge_is_idempotent():
    existing = [make_event("e1", "info_received", "2024-01-01T08:00:00Z")]
    new = [
        make_event("e2", "in_transit", "2024-01-01T10:00:00Z"),
        make_event("e1", "info_received", "2024-01-01T08:00:00Z"),
    ]
    once = merge_events(existing, new)
    twice = merge_events(once, new)
    assert twice == once


def test_merge_drops_events_without_id():
    new = [
        make_event("", "in_transit", "2024-01-01T10:00:00Z"),
        make_event("e1", "in_transit", "2024-01-01T09:00:00Z"),
    ]
    assert ids(merge_events([], new)) == ["e1"]


def test_relevant_event_of_nothing_is_none():
    assert select_relevant_event([]) is None


def test_relevant_event_single():
    event = make_event("e1", "in_transit", "2024-01-01T10:00:00Z")
    assert select_relevant_event([event]) is event


def test_delivered_beats_later_in_transit_in_same_minute():
    delivered = make_event("d", "delivered", "2024-01-01T10:00:00Z")
    in_transit = make_event("t", "in_transit", "2024-01-01T10:00:30Z")
    assert select_relevant_event([in_transit, delivered]).event_id == "d"
    assert select_relevant_event([delivered, in_transit]).event_id == "d"


def test_delivered_beats_earlier_in_transit_in_same_minute():
    in_transit = make_event("t", "in_transit", "2024-01-01T10:00:00Z")
    delivered = make_event("d", "delivered", "2024-01-01T10:00:30Z")
    assert select_relevant_event([in_transit, delivered]).event_id == "d"


def test_window_boundary_is_inclusive():
    delivered = make_event("d", "delivered", "2024-01-01T10:00:00.000Z")
    in_transit = make_event("t", "in_transit", "2024-01-01T10:01:00.000Z")
    assert select_relevant_event([delivered, in_transit]).event_id == "d"


def test_outside_window_latest_wins():
    delivered = make_event("d", "delivered", "2024-01-01T10:00:00.000Z")
    in_transit = make_event("t", "in_transit", "2024-01-01T10:01:00.001Z")
    assert select_relevant_event([delivered, in_transit]).event_id == "t"


def test_equal_priority_keeps_latest():
    earlier = make_event("x1", "exception", "2024-01-01T10:00:00Z")
    later = make_event("x2", "failed_attempt", "2024-01-01T10:00:20Z")
    assert select_relevant_event([earlier, later]).event_id == "x2"


def test_unknown_milestone_has_lowest_priority():
    unknown = make_event("u", "some_new_milestone", "2024-01-01T10:00:30Z")
    expired = make_event("x", "expired", "2024-01-01T10:00:00Z")
    assert select_relevant_event([unknown, expired]).event_id == "x"


def test_window_and_priorities_are_configurable():
    delivered = make_event("d", "delivered", "2024-01-01T10:00:00Z")
    in_transit = make_event("t", "in_transit", "2024-01-01T10:00:30Z")
    assert select_relevant_event([delivered, in_transit], window_ms=10_000).event_id == "t"
    assert select_relevant_event([delivered, in_transit], priorities={"in_transit": 1}).event_id == "t"


def test_naive_timestamps_are_utc():
    naive = make_event("n", "in_transit", "2024-01-01T10:00:00")
    aware = make_event("a", "in_transit", "2024-01-01T07:30:00-03:00")
    assert ids(merge_events([], [naive, aware])) == ["a", "n"]


def test_enrich_courier_names():
    events = [
        make_event("e1", "in_transit", "2024-01-01T10:00:00Z", courierCode="brazil-correios"),
        make_event("e2", "in_transit", "2024-01-01T11:00:00Z", courierCode="jadlog"),
        make_event("e3", "in_transit", "2024-01-01T12:00:00Z"),
    ]
    enriched = enrich_courier_names(events, {"brazil-correios": "Correios"})
    assert [e.courier_name for e in enriched] == ["Correios", "jadlog", None]
    assert events[0].courier_name is None
