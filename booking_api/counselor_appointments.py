"""
Booking API wrappers for the counselor's confirmed appointments and availability.

Every function takes the session context first, returns an ``ApiResult`` and
converts the Pydantic wire models back to the core's dataclasses.
"""
from __future__ import annotations

import typing as t

from agenda.models import ConfirmedAppointment
from booking_api.http import call_api
from booking_api.result import ApiResult, Ok
from booking_api.session import SessionContext
from services.shared.models import Appointment, AvailableSlot, UnavailableSlot


async def get_confirmed_appointments(
    ctx: SessionContext,
    start_date: str,
    end_date: str,
) -> ApiResult[list[ConfirmedAppointment]]:
    """Get all confirmed counselor appointments in a range (GET /counselor/appointments/)."""
    result = await call_api(
        ctx,
        "GET",
        ctx.booking_endpoint("/counselor/appointments/"),
        list[Appointment],
        params={"startDate": start_date, "endDate": end_date},
        description="fetch confirmed appointments",
    )
    if isinstance(result, Ok):
        return Ok([_pydantic_to_dataclass_appointment(a) for a in result.value])
    return result


async def cancel_appointment(
    ctx: SessionContext,
    appointment_id: str,
) -> ApiResult[Appointment]:
    """Cancel a confirmed appointment (PATCH /counselor/appointments/{id}/cancel)."""
    return await call_api(
        ctx,
        "PATCH",
        ctx.booking_endpoint(f"/counselor/appointments/{appointment_id}/cancel"),
        Appointment,
        description="cancel appointment",
    )


async def get_unavailable_slots(
    ctx: SessionContext,
    start_date: str,
    end_date: str,
) -> ApiResult[list[UnavailableSlot]]:
    """Get the counselor's taken slots (GET /counselor/availability/)."""
    return await call_api(
        ctx,
        "GET",
        ctx.booking_endpoint("/counselor/availability/"),
        list[UnavailableSlot],
        params={"startDate": start_date, "endDate": end_date},
        description="fetch unavailable slots",
    )


async def get_department_available_slots(
    ctx: SessionContext,
    start_date: str,
    end_date: str,
    slot_duration: int = 60,
    work_start_hour: int = 9,
    work_end_hour: int = 17,
) -> ApiResult[list[AvailableSlot]]:
    """Get free department slots (GET /counselor/availability/department)."""
    params: dict[str, t.Any] = {
        "startDate": start_date,
        "endDate": end_date,
        "slotDuration": slot_duration,
        "workStartHour": work_start_hour,
        "workEndHour": work_end_hour,
    }
    return await call_api(
        ctx,
        "GET",
        ctx.booking_endpoint("/counselor/availability/department"),
        list[AvailableSlot],
        params=params,
        description="fetch department available slots",
    )


def _pydantic_to_dataclass_appointment(appointment: Appointment) -> ConfirmedAppointment:
    """Convert Pydantic Appointment to dataclass ConfirmedAppointment."""
    return ConfirmedAppointment(
        appointment_id=appointment.appointment_id,
        student_id=appointment.student_id,
        counselor_id=appointment.counselor_id,
        agenda_kind=appointment.agenda,
        start_time=appointment.start_time,
        end_time=appointment.end_time,
        request_id=appointment.request_id,
    )
