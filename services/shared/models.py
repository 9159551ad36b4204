"""
Shared Pydantic models for REST API serialization.

These mirror the JSON emitted by the booking and users backends. The client in
``booking_api`` decodes responses with them, and the mock service in
``services.booking_service`` encodes responses with them, so both sides agree
on one wire format.
"""
from __future__ import annotations

import re
import typing as t

from pydantic import BaseModel, Field, field_validator


# Type literals for commonly used values
AgendaKind = t.Literal["counseling", "routine_interview", "meeting", "event"]
SchedulableKind = t.Literal["counseling", "routine_interview"]
Party = t.Literal["student", "counselor"]
PartyResponse = t.Literal["pending", "accepted", "declined"]
RequestStatus = t.Literal["pending", "both_confirmed", "declined", "expired"]
Classification = t.Literal["Excelling", "Thriving", "Struggling", "InCrisis"]

T = t.TypeVar("T")

_ISO_PREFIX = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}")


def _require_iso_prefix(value: str) -> str:
    if not _ISO_PREFIX.match(value):
        raise ValueError(f"expected an ISO-8601 timestamp, got {value!r}")
    return value


class ApiEnvelope(BaseModel, t.Generic[T]):
    """
    Envelope shared by every backend response.

    ``data`` is only meaningful when ``success`` is true.
    """
    success: bool
    code: str = ""
    message: str = ""
    data: t.Optional[T] = None


# Users API
class Student(BaseModel):
    """A student row from the counselor's department listing."""
    student_id: str
    email: str = ""
    user_name: t.Optional[str] = None
    classification_id: str = ""
    classification: str = ""
    is_flagged: bool = False
    classified_at: str = ""
    department_name: str = ""


class StudentsPage(BaseModel):
    """One cursor page of the student listing."""
    classifications: list[Student] = Field(default_factory=list)
    hasMore: bool = False
    nextCursor: t.Optional[str] = None


class MoodCheckIn(BaseModel):
    """One self-reported mood check-in; each mood is a free-form label."""
    check_in_id: str
    user_id: str
    mood_1: str = ""
    mood_2: str = ""
    mood_3: str = ""
    checked_in_at: str = ""


class StudentProfile(Student):
    """A single student with department details and mood history."""
    department_id: str = ""
    program_name: str = ""
    mood_check_ins: list[MoodCheckIn] = Field(default_factory=list)


class StudentCredentials(BaseModel):
    """Request body for POST /students/{id}; the counselor re-enters their login."""
    email: str
    password: str


# Booking API
class Appointment(BaseModel):
    """A finalized, mutually confirmed booking."""
    appointment_id: str
    student_id: str
    counselor_id: str
    agenda: AgendaKind
    start_time: str  # ISO 8601
    end_time: str    # ISO 8601
    request_id: str
    department: str = ""
    google_event_id: str = ""
    status: str = "both_confirmed"
    cancelled_by: t.Optional[str] = None
    cancelled_at: t.Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @field_validator("start_time", "end_time")
    @classmethod
    def check_times(cls, value: str) -> str:
        return _require_iso_prefix(value)


class AppointmentRequest(BaseModel):
    """A proposed appointment awaiting the counterparty's response."""
    request_id: str
    student_id: str
    counselor_id: str
    agenda: AgendaKind
    proposed_start: str  # ISO 8601
    proposed_end: str    # ISO 8601
    created_by: Party
    student_response: PartyResponse = "pending"
    counselor_response: PartyResponse = "pending"
    status: RequestStatus = "pending"
    department: str = ""
    proposed_by: t.Optional[Party] = None
    finalized_at: t.Optional[str] = None
    created_at: str = ""
    updated_at: str = ""

    @field_validator("proposed_start", "proposed_end")
    @classmethod
    def check_times(cls, value: str) -> str:
        return _require_iso_prefix(value)


class CreateCounselorRequestPayload(BaseModel):
    """Request body for POST /counselor/requests/."""
    agenda: SchedulableKind
    studentId: str
    proposedStart: str
    proposedEnd: str

    @field_validator("proposedStart", "proposedEnd")
    @classmethod
    def check_times(cls, value: str) -> str:
        return _require_iso_prefix(value)


class UnavailableSlot(BaseModel):
    """A block of the counselor's time that is already taken."""
    start: str
    end: str
    agenda: str = ""
    student_email: t.Optional[str] = None


class AvailableSlot(BaseModel):
    """A free slot in the department schedule."""
    start: str
    end: str
