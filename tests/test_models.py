import re

import pytest
from pydantic import ValidationError

from app.models import IdentityState, Identity, Registration, now_iso, registration_key
from app.schemas import EventIn


def test_registration_key_is_user_then_event():
    assert registration_key("u1", "e1") == "u1-e1"
    assert Registration.new("u1", "e1", now_iso()).id == "u1-e1"


def test_new_registration_document_has_no_check_in_time():
    doc = Registration.new("u1", "e1", "2024-05-01T09:00:00.000Z").to_document()
    assert doc == {
        "id": "u1-e1",
        "userId": "u1",
        "eventId": "e1",
        "registrationDate": "2024-05-01T09:00:00.000Z",
        "checkedIn": False,
    }


def test_check_in_fields_must_agree():
    base = {"id": "u1-e1", "userId": "u1", "eventId": "e1", "registrationDate": "2024-05-01T09:00:00.000Z"}
    with pytest.raises(ValidationError):
        Registration.model_validate({**base, "checkedIn": True})
    with pytest.raises(ValidationError):
        Registration.model_validate({**base, "checkedIn": False, "checkedInAt": "2024-05-01T10:00:00.000Z"})


def test_checked_in_copy_sets_both_fields():
    reg = Registration.new("u1", "e1", "2024-05-01T09:00:00.000Z")
    done = reg.checked_in_copy("2024-05-01T10:00:00.000Z")
    assert done.checked_in and done.checked_in_at == "2024-05-01T10:00:00.000Z"
    assert reg.checked_in is False


def test_now_iso_is_utc_millis():
    assert re.fullmatch(r"\d{4}-\d\d-\d\dT\d\d:\d\d:\d\d\.\d{3}Z", now_iso())


def test_identity_state_key():
    assert IdentityState().key == (None, None, False)
    state = IdentityState(identity=Identity(id="u1", role="student"), resolved=True)
    assert state.key == ("u1", "student", True)


def test_event_payload_validation():
    good = {
        "title": "Career Fair",
        "description": "Meet employers from around the region.",
        "date": "2024-06-01",
        "time": "09:00",
        "endTime": "17:30",
        "location": "Main Hall",
        "category": "Careers",
    }
    assert EventIn(**good).title == "Career Fair"
    for field, value in [("time", "25:00"), ("date", "not a date"), ("title", "ab"), ("description", "short")]:
        with pytest.raises(ValidationError):
            EventIn(**{**good, field: value})
