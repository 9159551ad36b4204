"""Tests for the pure mapping helpers."""
from datetime import datetime, timedelta, timezone

import pytest

from agenda.mappers import (
    UNKNOWN_STUDENT,
    agenda_kind_from_type,
    confirmed_to_agenda,
    extract_date,
    extract_hhmm,
    form_to_request_payload,
    format_agenda_title,
    format_agenda_type,
    merge_agendas,
    month_date_range,
    pending_to_agenda,
    to_utc_iso,
)
from agenda.models import (
    AgendaData,
    ConfirmedAppointment,
    PendingRequest,
    RequestForm,
    StudentRecord,
)

DIRECTORY = {"s1": StudentRecord(id="s1", display_name="Ana Reyes", email="ana@school.edu")}


def make_appointment(appointment_id: str = "a1", student_id: str = "s1", start: str = "2025-11-15T14:00:00") -> ConfirmedAppointment:
    return ConfirmedAppointment(
        appointment_id=appointment_id,
        student_id=student_id,
        counselor_id="c1",
        agenda_kind="counseling",
        start_time=start,
        end_time="2025-11-15T15:30:00",
        request_id="r0",
    )


def make_request(request_id: str = "r1", created_by: str = "student") -> PendingRequest:
    return PendingRequest(
        request_id=request_id,
        student_id="s1",
        counselor_id="c1",
        agenda_kind="routine_interview",
        proposed_start="2025-11-20T09:00:00.000Z",
        proposed_end="2025-11-20T10:00:00.000Z",
        created_by=created_by,
        student_response="accepted",
        counselor_response="pending",
        status="pending",
    )


def test_time_and_date_are_taken_literally() -> None:
    """Test that no timezone shift is applied when extracting display fields."""
    assert extract_hhmm("2025-11-15T14:00:00") == "14:00"
    assert extract_hhmm("2025-11-15T23:45:00.000Z") == "23:45"
    assert extract_hhmm("2025-11-15T23:45:00+08:00") == "23:45"
    assert extract_date("2025-11-15T23:45:00.000Z") == "2025-11-15"


def test_missing_time_falls_back_to_midnight() -> None:
    assert extract_hhmm("2025-11-15") == "00:00"


def test_extract_date_rejects_garbage() -> None:
    with pytest.raises(ValueError):
        extract_date("not a date")


def test_labels_have_fallbacks() -> None:
    """Test title and type labels, including unknown kinds."""
    assert format_agenda_title("counseling") == "Counseling Session"
    assert format_agenda_title("mystery") == "Consultation"
    assert format_agenda_type("routine_interview") == "Routine Interview"
    assert format_agenda_type("mystery") == "Meeting"
    assert agenda_kind_from_type("Routine Interview") == "routine_interview"
    assert agenda_kind_from_type("Event") == "counseling"


def test_confirmed_appointment_mapping() -> None:
    """Test the calendar entry built from a confirmed appointment."""
    agenda = confirmed_to_agenda(make_appointment(), DIRECTORY)

    assert agenda.id == "a1"
    assert agenda.appointment_id == "a1"
    assert agenda.request_id is None
    assert agenda.status == "confirmed"
    assert agenda.date == "2025-11-15"
    assert (agenda.start_time, agenda.end_time) == ("14:00", "15:30")
    assert agenda.title == "Counseling Session"
    assert agenda.agenda_type == "Counseling"
    assert agenda.student_name == "Ana Reyes"


def test_pending_request_mapping_keeps_creator() -> None:
    """Test that the request's creator and responses are carried over."""
    agenda = pending_to_agenda(make_request(created_by="counselor"), DIRECTORY)

    assert agenda.id == "r1"
    assert agenda.request_id == "r1"
    assert agenda.appointment_id is None
    assert agenda.status == "pending"
    assert agenda.created_by == "counselor"
    assert agenda.student_response == "accepted"
    assert agenda.counselor_response == "pending"
    assert agenda.start_time == "09:00"


def test_unknown_student_is_labelled() -> None:
    agenda = confirmed_to_agenda(make_appointment(student_id="s404"), DIRECTORY)

    assert agenda.student_name == UNKNOWN_STUDENT


def test_merge_puts_confirmed_before_pending_in_source_order() -> None:
    """Test the merge order: confirmed entries, then requests, each as received."""
    merged = merge_agendas(
        [make_appointment("a2", start="2025-11-30T09:00:00"), make_appointment("a1")],
        [make_request("r2"), make_request("r1")],
        DIRECTORY,
    )

    assert [a.id for a in merged] == ["a2", "a1", "r2", "r1"]


def test_agenda_requires_exactly_one_identifier() -> None:
    """Test that an entry cannot be both, or neither, a request and an appointment."""
    common = dict(
        id="x", title="t", date="2025-11-15", agenda_type="Meeting", start_time="09:00",
        end_time="10:00", status="pending", student_id="s1", student_name="Ana", created_by="student",
    )
    with pytest.raises(ValueError):
        AgendaData(**common)
    with pytest.raises(ValueError):
        AgendaData(**common, request_id="r1", appointment_id="a1")
    assert AgendaData(**common, request_id="r1").is_request


def test_form_to_payload_builds_local_naive_timestamps() -> None:
    payload = form_to_request_payload(RequestForm(
        student_id="s1", date="2025-12-20", start_time="10:00", end_time="11:30", agenda_kind="routine_interview",
    ))

    assert payload.student_id == "s1"
    assert payload.agenda == "routine_interview"
    assert payload.proposed_start == "2025-12-20T10:00:00"
    assert payload.proposed_end == "2025-12-20T11:30:00"


def test_request_payload_strips_form_values() -> None:
    payload = form_to_request_payload(RequestForm(
        student_id=" s1 ", date=" 2025-12-20", start_time=" 09:30", end_time="10:00 ",
    ))

    assert payload.student_id == "s1"
    assert payload.proposed_start == "2025-12-20T09:30:00"
    assert payload.proposed_end == "2025-12-20T10:00:00"


def test_to_utc_iso_uses_millisecond_precision() -> None:
    moment = datetime(2025, 3, 4, 5, 6, 7, 891234, tzinfo=timezone.utc)

    assert to_utc_iso(moment) == "2025-03-04T05:06:07.891Z"


def test_month_range_december() -> None:
    """Test the last month of the year (0-indexed month 11)."""
    date_range = month_date_range(2025, 11, tz=timezone.utc)

    assert date_range.start_date == "2025-12-01T00:00:00.000Z"
    assert date_range.end_date == "2025-12-31T23:59:59.999Z"


def test_month_range_january_and_leap_february() -> None:
    january = month_date_range(2026, 0, tz=timezone.utc)
    february = month_date_range(2024, 1, tz=timezone.utc)

    assert january.start_date == "2026-01-01T00:00:00.000Z"
    assert january.end_date == "2026-01-31T23:59:59.999Z"
    assert february.end_date == "2024-02-29T23:59:59.999Z"


def test_month_range_boundaries_follow_the_given_zone() -> None:
    """Test that month boundaries are local to the zone, then serialized as UTC."""
    manila = timezone(timedelta(hours=8))

    date_range = month_date_range(2025, 0, tz=manila)

    assert date_range.start_date == "2024-12-31T16:00:00.000Z"
    assert date_range.end_date == "2025-01-31T15:59:59.999Z"


@pytest.mark.parametrize("month", [-1, 12])
def test_month_range_rejects_out_of_range_months(month: int) -> None:
    with pytest.raises(ValueError):
        month_date_range(2025, month)
