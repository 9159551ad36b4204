# -*- coding: utf-8 -*-
"""In-memory state for the mock booking service.

In a real deployment the backend owns a database; this store only keeps
enough state to exercise the request lifecycle end to end.
"""
from __future__ import annotations

import typing as t
from datetime import date, datetime, timedelta, timezone

from services.shared.models import (
    Appointment,
    AppointmentRequest,
    AvailableSlot,
    Classification,
    CreateCounselorRequestPayload,
    MoodCheckIn,
    RequestStatus,
    Student,
    StudentProfile,
    StudentsPage,
    UnavailableSlot,
)

COUNSELOR_ID = "counselor-1"
DEPARTMENT = "College of Computing"
DEPARTMENT_ID = "dept-computing"
PROGRAM = "BS Computer Science"

# Login the mock accepts for student profile lookups
COUNSELOR_EMAIL = "counselor@school.edu"
COUNSELOR_PASSWORD = "counselor-pass"


class StoreError(Exception):
    """A request the store refuses, carrying the envelope code and HTTP status."""

    def __init__(self, code: str, message: str, status_code: int) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


def _now() -> str:
    return datetime.now().isoformat(timespec="seconds")


def _at(day: date, hour: int) -> str:
    return f"{day.isoformat()}T{hour:02d}:00:00"


def _instant(value: str) -> datetime:
    """Parse an ISO timestamp; stored times without an offset are UTC."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class BookingStore:
    """Students, appointments and requests for a single counselor."""

    def __init__(self) -> None:
        self.students: list[Student] = []
        self.appointments: dict[str, Appointment] = {}
        self.requests: dict[str, AppointmentRequest] = {}
        self.mood_check_ins: dict[str, list[MoodCheckIn]] = {}
        self._next_id = 1

    def _new_id(self, prefix: str) -> str:
        value = f"{prefix}-{self._next_id}"
        self._next_id += 1
        return value

    def reset(self, today: t.Optional[date] = None) -> None:
        """Restore the seed data, with bookings placed around ``today``."""
        today = today or date.today()
        self.students = [
            Student(
                student_id=f"student-{i}",
                email=f"student{i}@school.edu",
                user_name=name,
                classification_id=f"class-{i}",
                classification=classification,
                is_flagged=classification == "InCrisis",
                classified_at=_at(today - timedelta(days=30), 9),
                department_name=DEPARTMENT,
            )
            for i, (name, classification) in enumerate(
                [
                    ("Ana Reyes", "Excelling"),
                    ("Ben Cruz", "Thriving"),
                    ("Carla Santos", "Struggling"),
                    ("Dan Lim", "InCrisis"),
                    ("Ela Garcia", "Thriving"),
                ],
                start=1,
            )
        ]
        self.appointments = {}
        self.requests = {}
        self._next_id = 1
        self.mood_check_ins = {
            "student-3": [
                MoodCheckIn(check_in_id="mood-1", user_id="student-3", mood_1="Anxious", mood_2="Tired",
                            checked_in_at=_at(today - timedelta(days=3), 8)),
            ],
            "student-4": [
                MoodCheckIn(check_in_id="mood-2", user_id="student-4", mood_1="Overwhelmed",
                            checked_in_at=_at(today - timedelta(days=7), 20)),
                MoodCheckIn(check_in_id="mood-3", user_id="student-4", mood_1="Sad", mood_2="Lonely", mood_3="Tired",
                            checked_in_at=_at(today - timedelta(days=1), 21)),
            ],
        }

        self._seed_appointment("student-1", "counseling", today + timedelta(days=2), 9)
        self._seed_appointment("student-2", "routine_interview", today + timedelta(days=5), 14)
        self._seed_request("student-3", "counseling", today + timedelta(days=9), 10, created_by="student")
        self._seed_request("student-4", "routine_interview", today + timedelta(days=10), 13, created_by="counselor")

    def _seed_appointment(self, student_id: str, agenda: str, day: date, hour: int) -> Appointment:
        request = self._seed_request(student_id, agenda, day, hour, created_by="student")
        request.counselor_response = "accepted"
        request.status = "both_confirmed"
        request.finalized_at = _now()
        return self._promote(request)

    def _seed_request(self, student_id: str, agenda: str, day: date, hour: int, created_by: str) -> AppointmentRequest:
        request = AppointmentRequest(
            request_id=self._new_id("req"),
            student_id=student_id,
            counselor_id=COUNSELOR_ID,
            department=DEPARTMENT,
            agenda=agenda,
            proposed_start=_at(day, hour),
            proposed_end=_at(day, hour + 1),
            proposed_by=created_by,
            created_by=created_by,
            student_response="accepted" if created_by == "student" else "pending",
            counselor_response="accepted" if created_by == "counselor" else "pending",
            status="pending",
            created_at=_now(),
            updated_at=_now(),
        )
        self.requests[request.request_id] = request
        return request

    def _promote(self, request: AppointmentRequest) -> Appointment:
        appointment = Appointment(
            appointment_id=self._new_id("appt"),
            student_id=request.student_id,
            counselor_id=request.counselor_id,
            department=request.department,
            agenda=request.agenda,
            start_time=request.proposed_start,
            end_time=request.proposed_end,
            request_id=request.request_id,
            created_at=_now(),
            updated_at=_now(),
        )
        self.appointments[appointment.appointment_id] = appointment
        return appointment

    @classmethod
    def seeded(cls) -> "BookingStore":
        store = cls()
        store.reset()
        return store

    def student_page(
        self,
        cursor: t.Optional[str],
        limit: int,
        classification: t.Optional[Classification] = None,
        is_flagged: t.Optional[bool] = None,
    ) -> StudentsPage:
        """Cursor is the stringified offset of the next page within the filtered listing."""
        try:
            offset = int(cursor) if cursor else 0
        except ValueError as e:
            raise StoreError("INVALID_CURSOR", f"Invalid cursor: {cursor}", 400) from e

        matching = [
            s for s in self.students
            if (classification is None or s.classification == classification)
            and (is_flagged is None or s.is_flagged == is_flagged)
        ]
        page = matching[offset:offset + limit]
        next_offset = offset + len(page)
        has_more = next_offset < len(matching)
        return StudentsPage(
            classifications=page,
            hasMore=has_more,
            nextCursor=str(next_offset) if has_more else None,
        )

    def student_profile(self, student_id: str, email: str, password: str) -> StudentProfile:
        """One student with mood history, after re-checking the counselor's login."""
        if email != COUNSELOR_EMAIL or password != COUNSELOR_PASSWORD:
            raise StoreError("INVALID_CREDENTIALS", "Invalid email or password.", 401)
        student = next((s for s in self.students if s.student_id == student_id), None)
        if student is None:
            raise StoreError("STUDENT_NOT_FOUND", "Student not found.", 404)
        return StudentProfile(
            **student.model_dump(),
            department_id=DEPARTMENT_ID,
            program_name=PROGRAM,
            mood_check_ins=self.mood_check_ins.get(student_id, []),
        )

    def appointments_between(self, start_date: str, end_date: str) -> list[Appointment]:
        """Non-cancelled appointments starting inside the inclusive range."""
        try:
            first, last = _instant(start_date), _instant(end_date)
        except ValueError as e:
            raise StoreError("INVALID_DATE_RANGE", "startDate and endDate must be ISO-8601 timestamps.", 400) from e
        return [
            a for a in self.appointments.values()
            if a.cancelled_at is None and first <= _instant(a.start_time) <= last
        ]

    def requests_with_status(self, status: t.Optional[RequestStatus]) -> list[AppointmentRequest]:
        return [r for r in self.requests.values() if status is None or r.status == status]

    def create_request(self, payload: CreateCounselorRequestPayload) -> AppointmentRequest:
        if not any(s.student_id == payload.studentId for s in self.students):
            raise StoreError("STUDENT_NOT_FOUND", "Student not found in your department.", 404)
        if payload.proposedEnd <= payload.proposedStart:
            raise StoreError("INVALID_TIME_RANGE", "Proposed end must be after proposed start.", 400)

        request = AppointmentRequest(
            request_id=self._new_id("req"),
            student_id=payload.studentId,
            counselor_id=COUNSELOR_ID,
            department=DEPARTMENT,
            agenda=payload.agenda,
            proposed_start=payload.proposedStart,
            proposed_end=payload.proposedEnd,
            proposed_by="counselor",
            created_by="counselor",
            student_response="pending",
            counselor_response="accepted",
            status="pending",
            created_at=_now(),
            updated_at=_now(),
        )
        self.requests[request.request_id] = request
        return request

    def _respondable(self, request_id: str) -> AppointmentRequest:
        request = self.requests.get(request_id)
        if request is None:
            raise StoreError("REQUEST_NOT_FOUND", "Appointment request not found.", 404)
        if request.status != "pending":
            raise StoreError("REQUEST_NOT_PENDING", f"Request is already {request.status}.", 409)
        if request.created_by != "student":
            raise StoreError("AWAITING_STUDENT", "Only the student can respond to this request.", 409)
        return request

    def accept(self, request_id: str) -> Appointment:
        request = self._respondable(request_id)
        if request.student_response != "accepted":
            raise StoreError("AWAITING_STUDENT", "The student has not accepted this request yet.", 409)
        request.counselor_response = "accepted"
        request.updated_at = _now()
        request.status = "both_confirmed"
        request.finalized_at = _now()
        return self._promote(request)

    def decline(self, request_id: str) -> AppointmentRequest:
        request = self._respondable(request_id)
        request.counselor_response = "declined"
        request.status = "declined"
        request.updated_at = _now()
        return request

    def cancel(self, appointment_id: str) -> Appointment:
        appointment = self.appointments.get(appointment_id)
        if appointment is None:
            raise StoreError("APPOINTMENT_NOT_FOUND", "Appointment not found.", 404)
        if appointment.cancelled_at is not None:
            raise StoreError("ALREADY_CANCELLED", "Appointment is already cancelled.", 409)
        appointment.cancelled_by = "counselor"
        appointment.cancelled_at = _now()
        appointment.status = "cancelled"
        appointment.updated_at = _now()
        return appointment

    def unavailable_between(self, start_date: str, end_date: str) -> list[UnavailableSlot]:
        emails = {s.student_id: s.email for s in self.students}
        return [
            UnavailableSlot(
                start=a.start_time,
                end=a.end_time,
                agenda=a.agenda,
                student_email=emails.get(a.student_id),
            )
            for a in self.appointments_between(start_date, end_date)
        ]

    def available_between(
        self,
        start_date: str,
        end_date: str,
        slot_duration: int,
        work_start_hour: int,
        work_end_hour: int,
    ) -> list[AvailableSlot]:
        """Weekday slots inside working hours that do not overlap a booking."""
        taken = [(a.start_time[:16], a.end_time[:16]) for a in self.appointments_between(start_date, end_date)]
        day = date.fromisoformat(start_date[:10])
        last = date.fromisoformat(end_date[:10])
        step = timedelta(minutes=slot_duration)
        slots: list[AvailableSlot] = []

        while day <= last:
            if day.weekday() < 5:
                cursor = datetime.combine(day, datetime.min.time()).replace(hour=work_start_hour)
                close = cursor.replace(hour=work_end_hour)
                while cursor + step <= close:
                    start = cursor.isoformat(timespec="minutes")
                    end = (cursor + step).isoformat(timespec="minutes")
                    if not any(start < t_end and t_start < end for t_start, t_end in taken):
                        slots.append(AvailableSlot(start=f"{start}:00", end=f"{end}:00"))
                    cursor += step
            day += timedelta(days=1)

        return slots
