"""Booking API wrappers for counselor appointment requests."""
from __future__ import annotations

import typing as t

from agenda.models import CreateRequestPayload, PendingRequest
from booking_api.http import call_api
from booking_api.result import ApiResult, Ok
from booking_api.session import SessionContext
from services.shared.models import (
    Appointment,
    AppointmentRequest,
    CreateCounselorRequestPayload,
    RequestStatus,
)


async def get_counselor_requests(
    ctx: SessionContext,
    status: t.Optional[RequestStatus] = None,
) -> ApiResult[list[PendingRequest]]:
    """Get counselor appointment requests, optionally by status (GET /counselor/requests/)."""
    params = {"status": status} if status else None
    result = await call_api(
        ctx,
        "GET",
        ctx.booking_endpoint("/counselor/requests/"),
        list[AppointmentRequest],
        params=params,
        description="fetch appointment requests",
    )
    if isinstance(result, Ok):
        return Ok([_pydantic_to_dataclass_request(r) for r in result.value])
    return result


async def create_counselor_request(
    ctx: SessionContext,
    payload: CreateRequestPayload,
) -> ApiResult[PendingRequest]:
    """Propose an appointment to a student (POST /counselor/requests/)."""
    body = CreateCounselorRequestPayload(
        agenda=payload.agenda,
        studentId=payload.student_id,
        proposedStart=payload.proposed_start,
        proposedEnd=payload.proposed_end,
    )
    result = await call_api(
        ctx,
        "POST",
        ctx.booking_endpoint("/counselor/requests/"),
        AppointmentRequest,
        json=body.model_dump(),
        description="create appointment request",
    )
    if isinstance(result, Ok):
        return Ok(_pydantic_to_dataclass_request(result.value))
    return result


async def accept_counselor_request(
    ctx: SessionContext,
    request_id: str,
) -> ApiResult[Appointment]:
    """Accept a student's request (PATCH /counselor/requests/{id}/accept)."""
    return await call_api(
        ctx,
        "PATCH",
        ctx.booking_endpoint(f"/counselor/requests/{request_id}/accept"),
        Appointment,
        description="accept appointment request",
    )


async def decline_counselor_request(
    ctx: SessionContext,
    request_id: str,
) -> ApiResult[AppointmentRequest]:
    """Decline a student's request (PATCH /counselor/requests/{id}/decline)."""
    return await call_api(
        ctx,
        "PATCH",
        ctx.booking_endpoint(f"/counselor/requests/{request_id}/decline"),
        AppointmentRequest,
        description="decline appointment request",
    )


def _pydantic_to_dataclass_request(request: AppointmentRequest) -> PendingRequest:
    """Convert Pydantic AppointmentRequest to dataclass PendingRequest."""
    return PendingRequest(
        request_id=request.request_id,
        student_id=request.student_id,
        counselor_id=request.counselor_id,
        agenda_kind=request.agenda,
        proposed_start=request.proposed_start,
        proposed_end=request.proposed_end,
        created_by=request.created_by,
        student_response=request.student_response,
        counselor_response=request.counselor_response,
        status=request.status,
    )
