"""
Data models for the counselor agenda.

This module contains the dataclasses used throughout the core: the records
fetched from the backends, the unified calendar view-model built from them,
and the create-request form and payload.
"""
from __future__ import annotations

from dataclasses import dataclass
import typing as t

AgendaKind = t.Literal["counseling", "routine_interview", "meeting", "event"]
SchedulableKind = t.Literal["counseling", "routine_interview"]
Party = t.Literal["student", "counselor"]
PartyResponse = t.Literal["pending", "accepted", "declined"]
RequestStatus = t.Literal["pending", "both_confirmed", "declined", "expired"]
AgendaStatus = t.Literal["confirmed", "pending", "both_confirmed", "declined", "expired"]


@dataclass(frozen=True)
class StudentRecord:
    """A student as shown in the counselor's directory."""
    id: str
    display_name: str
    email: str


@dataclass(frozen=True)
class ConfirmedAppointment:
    """A finalized booking both parties have accepted."""
    appointment_id: str
    student_id: str
    counselor_id: str
    agenda_kind: AgendaKind
    start_time: str  # ISO 8601
    end_time: str    # ISO 8601
    request_id: str


@dataclass(frozen=True)
class PendingRequest:
    """A proposed appointment awaiting the counterparty."""
    request_id: str
    student_id: str
    counselor_id: str
    agenda_kind: AgendaKind
    proposed_start: str  # ISO 8601
    proposed_end: str    # ISO 8601
    created_by: Party
    student_response: PartyResponse
    counselor_response: PartyResponse
    status: RequestStatus


@dataclass(frozen=True)
class AgendaData:
    """Unified calendar entry built from either a confirmed appointment or a pending request."""
    id: str
    title: str
    date: str        # "YYYY-MM-DD"
    agenda_type: str
    start_time: str  # "HH:MM"
    end_time: str    # "HH:MM"
    status: AgendaStatus
    student_id: str
    student_name: str
    created_by: Party
    counselor_id: str = ""
    request_id: t.Optional[str] = None
    appointment_id: t.Optional[str] = None
    student_response: t.Optional[PartyResponse] = None
    counselor_response: t.Optional[PartyResponse] = None

    def __post_init__(self) -> None:
        if (self.request_id is None) == (self.appointment_id is None):
            raise ValueError(
                f"Agenda {self.id!r} must carry exactly one of request_id or appointment_id"
            )

    @property
    def is_request(self) -> bool:
        return self.request_id is not None


@dataclass(frozen=True)
class RequestForm:
    """Fields of the counselor's schedule-consultation form, as typed."""
    student_id: str = ""
    date: str = ""        # "YYYY-MM-DD"
    start_time: str = ""  # "HH:MM"
    end_time: str = ""    # "HH:MM"
    agenda_kind: SchedulableKind = "counseling"


@dataclass(frozen=True)
class CreateRequestPayload:
    """A validated request ready to be sent to the booking API."""
    agenda: SchedulableKind
    student_id: str
    proposed_start: str  # local-naive "YYYY-MM-DDTHH:MM:SS"
    proposed_end: str


@dataclass(frozen=True)
class DateRange:
    """Inclusive range sent as startDate/endDate query parameters."""
    start_date: str
    end_date: str
