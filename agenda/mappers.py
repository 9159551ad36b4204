"""Pure conversions between backend records and the calendar view-model.

Nothing here performs I/O. Date and time fields are taken verbatim from the
ISO strings the backend emits; no timezone conversion is applied, so a
booking at ``2025-11-15T14:00:00`` shows at 14:00 on the 15th.
"""
from __future__ import annotations

import calendar
import re
import typing as t
from datetime import datetime, timezone, tzinfo

from agenda.models import (
    AgendaData,
    ConfirmedAppointment,
    CreateRequestPayload,
    DateRange,
    PendingRequest,
    RequestForm,
    SchedulableKind,
    StudentRecord,
)

UNKNOWN_STUDENT = "Unknown Student"

_HHMM = re.compile(r"T(\d{2}:\d{2}):\d{2}")
_DATE = re.compile(r"^(\d{4}-\d{2}-\d{2})")

AGENDA_TITLES: dict[str, str] = {
    "counseling": "Counseling Session",
    "routine_interview": "Routine Interview",
    "meeting": "Meeting",
    "event": "Event",
}

AGENDA_TYPES: dict[str, str] = {
    "counseling": "Counseling",
    "routine_interview": "Routine Interview",
    "meeting": "Meeting",
    "event": "Event",
}

_TYPE_TO_KIND: dict[str, SchedulableKind] = {
    "Counseling": "counseling",
    "Routine Interview": "routine_interview",
}

StudentLookup = t.Mapping[str, StudentRecord]


def extract_hhmm(iso_time: str) -> str:
    """``"2025-11-15T14:00:00.000Z"`` -> ``"14:00"``; ``"00:00"`` when absent."""
    match = _HHMM.search(iso_time)
    return match.group(1) if match else "00:00"


def extract_date(iso_time: str) -> str:
    """Literal calendar date of an ISO timestamp."""
    match = _DATE.match(iso_time)
    if not match:
        raise ValueError(f"Not an ISO-8601 timestamp: {iso_time!r}")
    return match.group(1)


def format_agenda_title(kind: str) -> str:
    return AGENDA_TITLES.get(kind, "Consultation")


def format_agenda_type(kind: str) -> str:
    return AGENDA_TYPES.get(kind, "Meeting")


def agenda_kind_from_type(agenda_type: str) -> SchedulableKind:
    """Inverse of :func:`format_agenda_type` for the kinds a counselor can schedule."""
    return _TYPE_TO_KIND.get(agenda_type, "counseling")


def _student_name(student_id: str, directory: StudentLookup) -> str:
    student = directory.get(student_id)
    return student.display_name if student else UNKNOWN_STUDENT


def confirmed_to_agenda(appointment: ConfirmedAppointment, directory: StudentLookup) -> AgendaData:
    """Convert a confirmed appointment to a calendar entry."""
    return AgendaData(
        id=appointment.appointment_id,
        appointment_id=appointment.appointment_id,
        title=format_agenda_title(appointment.agenda_kind),
        date=extract_date(appointment.start_time),
        agenda_type=format_agenda_type(appointment.agenda_kind),
        start_time=extract_hhmm(appointment.start_time),
        end_time=extract_hhmm(appointment.end_time),
        status="confirmed",
        counselor_id=appointment.counselor_id,
        student_id=appointment.student_id,
        student_name=_student_name(appointment.student_id, directory),
        # The originating request is not fetched for confirmed bookings
        created_by="student",
    )


def pending_to_agenda(request: PendingRequest, directory: StudentLookup) -> AgendaData:
    """Convert an appointment request to a calendar entry.

    ``created_by`` is passed through untouched; it decides who owes the next
    response and therefore whether the counselor sees accept/decline.
    """
    return AgendaData(
        id=request.request_id,
        request_id=request.request_id,
        title=format_agenda_title(request.agenda_kind),
        date=extract_date(request.proposed_start),
        agenda_type=format_agenda_type(request.agenda_kind),
        start_time=extract_hhmm(request.proposed_start),
        end_time=extract_hhmm(request.proposed_end),
        status=request.status,
        counselor_id=request.counselor_id,
        student_id=request.student_id,
        student_name=_student_name(request.student_id, directory),
        created_by=request.created_by,
        student_response=request.student_response,
        counselor_response=request.counselor_response,
    )


def merge_agendas(
    confirmed: t.Iterable[ConfirmedAppointment],
    pending: t.Iterable[PendingRequest],
    directory: StudentLookup,
) -> list[AgendaData]:
    """Confirmed entries first, then requests, each in source order."""
    merged = [confirmed_to_agenda(a, directory) for a in confirmed]
    merged.extend(pending_to_agenda(r, directory) for r in pending)
    return merged


def form_to_request_payload(form: RequestForm) -> CreateRequestPayload:
    """Build the create-request payload from an already validated form.

    Timestamps are local-naive (no ``Z`` or offset).
    """
    return CreateRequestPayload(
        agenda=form.agenda_kind,
        student_id=form.student_id.strip(),
        proposed_start=f"{form.date.strip()}T{form.start_time.strip()}:00",
        proposed_end=f"{form.date.strip()}T{form.end_time.strip()}:00",
    )


def to_utc_iso(moment: datetime) -> str:
    """Serialize as UTC with millisecond precision, e.g. ``2025-12-01T00:00:00.000Z``."""
    utc = moment.astimezone(timezone.utc)
    return utc.strftime("%Y-%m-%dT%H:%M:%S.") + f"{utc.microsecond // 1000:03d}Z"


def month_date_range(year: int, month: int, tz: t.Optional[tzinfo] = None) -> DateRange:
    """
    Query range covering one whole calendar month.

    Args:
        year: Four-digit year
        month: 0-indexed month (0 = January, 11 = December)
        tz: Zone the month boundaries are taken in. Defaults to local time.

    Returns:
        DateRange from the first day at 00:00:00.000 to the last day at
        23:59:59.999, both serialized as UTC ISO-8601 strings.
    """
    if not 0 <= month <= 11:
        raise ValueError(f"month must be between 0 and 11, got {month}")

    calendar_month = month + 1
    last_day = calendar.monthrange(year, calendar_month)[1]

    start = datetime(year, calendar_month, 1, 0, 0, 0, 0, tzinfo=tz)
    end = datetime(year, calendar_month, last_day, 23, 59, 59, 999000, tzinfo=tz)

    return DateRange(start_date=to_utc_iso(start), end_date=to_utc_iso(end))
