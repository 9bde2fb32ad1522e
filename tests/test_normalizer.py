import json

import pytest
from factories import event_payload, tracking_payload, webhook_payload

from rastro.errors import InvalidPayload
from rastro.services.normalizer import normalize_payload


def valid_payload():
    return webhook_payload(
        tracking_payload(events=[event_payload("e1", "in_transit", "2024-01-01T10:00:00Z")])
    )


def test_accepts_envelope_list():
    envelopes = normalize_payload(valid_payload())
    assert len(envelopes) == 1
    tracking = envelopes[0].body.trackings[0]
    assert tracking.tracker.tracker_id == "T1"
    assert tracking.events[0].status_milestone == "in_transit"


def test_accepts_json_text():
    envelopes = normalize_payload(json.dumps(valid_payload()).encode())
    assert envelopes[0].body.trackings[0].tracker.tracking_number == "BR1"


def test_wraps_bare_envelope():
    envelopes = normalize_payload(valid_payload()[0])
    assert len(envelopes) == 1


def test_decodes_double_encoded_body():
    envelope = valid_payload()[0]
    envelope["body"] = json.dumps(envelope["body"])
    envelopes = normalize_payload([envelope])
    assert envelopes[0].body.trackings[0].events[0].event_id == "e1"


def test_undecodable_body_becomes_empty_batch():
    envelopes = normalize_payload([{"body": "{broken"}, valid_payload()[0]])
    assert envelopes[0].body.trackings == []
    assert len(envelopes[1].body.trackings) == 1


def test_keeps_unknown_milestones_and_extra_fields():
    payload = webhook_payload(
        tracking_payload(events=[event_payload("e1", "some_new_milestone", "2024-01-01T10:00:00Z", sourceCode="x")])
    )
    event = normalize_payload(payload)[0].body.trackings[0].events[0]
    assert event.status_milestone == "some_new_milestone"
    assert event.model_dump(by_alias=True)["sourceCode"] == "x"


@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        b"",
        b"\xff\xfe[]",
        42,
        None,
        {"trackings": []},
        '"still a string"',
        [],
        "[]",
        [{"body": {}}],
        {"body": {}},
    ],
)
def test_rejects_malformed_input(raw):
    with pytest.raises(InvalidPayload):
        normalize_payload(raw)


def test_rejects_missing_event_id():
    payload = valid_payload()
    del payload[0]["body"]["trackings"][0]["events"][0]["eventId"]
    with pytest.raises(InvalidPayload):
        normalize_payload(payload)


def test_rejects_bad_timestamp():
    payload = webhook_payload(tracking_payload(events=[event_payload("e1", "in_transit", "yesterday")]))
    with pytest.raises(InvalidPayload):
        normalize_payload(payload)


def test_rejects_long_tracking_number():
    payload = webhook_payload(tracking_payload(tracking_number="X" * 151))
    with pytest.raises(InvalidPayload):
        normalize_payload(payload)


def test_rejects_long_location():
    payload = webhook_payload(
        tracking_payload(events=[event_payload("e1", "in_transit", "2024-01-01T10:00:00Z", location="L" * 501)])
    )
    with pytest.raises(InvalidPayload):
        normalize_payload(payload)


def test_rejects_too_many_events():
    events = [event_payload(f"e{i}", "in_transit", "2024-01-01T10:00:00Z") for i in range(1001)]
    with pytest.raises(InvalidPayload):
        normalize_payload(webhook_payload(tracking_payload(events=events)))


def test_rejects_too_many_trackings():
    trackings = [tracking_payload(tracker_id=f"T{i}") for i in range(101)]
    with pytest.raises(InvalidPayload):
        normalize_payload(webhook_payload(*trackings))


def test_one_bad_tracking_rejects_everything():
    good = tracking_payload(tracker_id="T1")
    bad = tracking_payload(tracker_id="T2")
    del bad["tracker"]
    with pytest.raises(InvalidPayload):
        normalize_payload(webhook_payload(good, bad))
