from __future__ import annotations

import pytest

from designcast.adapters.figma_mapper import PasscodeError, build_event, verify_passcode


def test_build_event_from_payload() -> None:
    event = build_event(
        {
            "event_type": "LIBRARY_PUBLISH",
            "file_key": "S2aPy6GYy0dID7NvarJrSV",
            "file_name": "01. Foundations",
            "description": "feat: chips",
            "triggered_by": {"id": "1", "handle": "ana"},
            "passcode": "secret",
        },
        arrival_timestamp=1234.5,
    )
    assert event.destination_id == "S2aPy6GYy0dID7NvarJrSV"
    assert event.destination_label == "01. Foundations"
    assert event.description == "feat: chips"
    assert event.triggered_by == "ana"
    assert event.arrival_timestamp == 1234.5


def test_build_event_defaults() -> None:
    event = build_event({"event_type": "LIBRARY_PUBLISH", "file_key": "k", "description": None})
    assert event.description == ""
    assert event.triggered_by == "unknown"
    assert event.arrival_timestamp > 0


def test_verify_passcode() -> None:
    verify_passcode({"passcode": "s3cret"}, "s3cret")
    with pytest.raises(PasscodeError):
        verify_passcode({"passcode": "wrong"}, "s3cret")
    with pytest.raises(PasscodeError):
        verify_passcode({}, "s3cret")
    with pytest.raises(PasscodeError):
        verify_passcode({"passcode": "s3cret"}, None)
