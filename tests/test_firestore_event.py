from datetime import datetime, timezone

import pytest

from triggers.firestore_event import InvalidEventError, decode_fields, decode_value, parse_event, parse_timestamp

NAME = "projects/demo/databases/(default)/documents/donations/abc123"


def test_decode_scalar_values():
    assert decode_value({"stringValue": "Produce"}) == "Produce"
    assert decode_value({"integerValue": "10"}) == 10
    assert decode_value({"doubleValue": 2.5}) == 2.5
    assert decode_value({"booleanValue": True}) is True
    assert decode_value({"nullValue": None}) is None


def test_decode_nested_values():
    fields = {
        "pickupAddress": {"mapValue": {"fields": {"street": {"stringValue": "1 Main St"}}}},
        "imageUrls": {"arrayValue": {"values": [{"stringValue": "a.jpg"}, {"stringValue": "b.jpg"}]}},
        "location": {"geoPointValue": {"latitude": 1.5, "longitude": -2}},
        "empty": {"arrayValue": {}},
    }
    assert decode_fields(fields) == {
        "pickupAddress": {"street": "1 Main St"},
        "imageUrls": ["a.jpg", "b.jpg"],
        "location": {"latitude": 1.5, "longitude": -2.0},
        "empty": [],
    }


def test_parse_timestamp_nanoseconds():
    ts = parse_timestamp("2026-10-17T08:30:00.123456789Z")
    assert ts == datetime(2026, 10, 17, 8, 30, 0, 123456, tzinfo=timezone.utc)
    assert parse_timestamp("2026-10-17T08:30:00Z").tzinfo is not None


def test_bad_values_raise_invalid_event():
    with pytest.raises(InvalidEventError):
        decode_value({"integerValue": "ten"})
    with pytest.raises(InvalidEventError):
        decode_value({"stringValue": "a", "integerValue": "1"})
    with pytest.raises(InvalidEventError):
        parse_timestamp("yesterday")


def test_parse_update_event():
    body = {
        "oldValue": {"name": NAME, "fields": {"status": {"stringValue": "active"}}},
        "value": {
            "name": NAME,
            "fields": {
                "status": {"stringValue": "reserved"},
                "expiryDate": {"timestampValue": "2026-10-20T00:00:00Z"},
            },
        },
    }
    event = parse_event({"ce-id": "evt-1", "ce-type": "google.cloud.firestore.document.v1.updated"}, body)
    assert event.event_id == "evt-1"
    assert event.document_path == "donations/abc123"
    assert event.document_id == "abc123"
    assert event.old_value == {"status": "active"}
    assert event.value["status"] == "reserved"
    assert event.value["expiryDate"] == datetime(2026, 10, 20, tzinfo=timezone.utc)


def test_parse_event_falls_back_to_subject():
    event = parse_event({"ce-id": "evt-2", "ce-subject": "documents/users/u1"}, {"value": {"fields": {}}})
    assert event.document_id == "u1"


def test_parse_event_requires_id_and_object_body():
    with pytest.raises(InvalidEventError):
        parse_event({}, {"value": {"name": NAME}})
    with pytest.raises(InvalidEventError):
        parse_event({"ce-id": "x"}, ["not", "an", "object"])
    with pytest.raises(InvalidEventError):
        parse_event({"ce-id": "x"}, {})
