"""
Mock booking and users service for local development and tests.

Serves the same routes, envelope and record shapes as the real backends from
an in-memory store, so the client and CLI can be exercised without the
production API. Any non-empty bearer token is accepted.
"""
from __future__ import annotations

import logging
import typing as t
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Query
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from services.booking_service.store import BookingStore, StoreError
from services.shared.models import (
    ApiEnvelope,
    Classification,
    CreateCounselorRequestPayload,
    RequestStatus,
    StudentCredentials,
)

logger = logging.getLogger(__name__)

BOOKING = "/api/v1/booking"
USERS = "/api/v1/users"

store = BookingStore.seeded()
security = HTTPBearer(auto_error=False)


class Unauthorized(Exception):
    pass


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Mock lifespan - the store is seeded at import time."""
    logger.info("Mock booking service starting with %d students", len(store.students))
    yield
    logger.info("Mock booking service shutting down")


app = FastAPI(
    title="Mock Booking Service",
    description="Mock REST API for counselor appointments, requests and students",
    version="1.0.0-mock",
    lifespan=lifespan,
)


def _dump(data: t.Any) -> t.Any:
    if isinstance(data, BaseModel):
        return data.model_dump()
    if isinstance(data, list):
        return [_dump(item) for item in data]
    return data


def _ok(data: t.Any, message: str = "OK") -> dict[str, t.Any]:
    return ApiEnvelope[t.Any](success=True, code="OK", message=message, data=_dump(data)).model_dump()


def _fail(code: str, message: str, status_code: int) -> JSONResponse:
    body = ApiEnvelope[t.Any](success=False, code=code, message=message).model_dump(exclude_none=True)
    return JSONResponse(status_code=status_code, content=body)


def require_token(
    credentials: t.Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    if credentials is None or not credentials.credentials:
        raise Unauthorized()
    return credentials.credentials


@app.exception_handler(Unauthorized)
async def unauthorized_handler(request, exc: Unauthorized) -> JSONResponse:
    return _fail("UNAUTHORIZED", "Missing or invalid bearer token.", 401)


@app.exception_handler(StoreError)
async def store_error_handler(request, exc: StoreError) -> JSONResponse:
    return _fail(exc.code, exc.message, exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
    return _fail("VALIDATION_ERROR", f"Invalid {field}: {first.get('msg', 'invalid value')}", 400)


@app.get("/health")
async def health_check():
    """Health check endpoint for container orchestration."""
    return {"status": "healthy", "service": "mock-booking-service", "mode": "test"}


@app.get(f"{USERS}/students")
async def list_students(
    limit: int = Query(50, ge=1, le=200),
    cursor: t.Optional[str] = None,
    classification: t.Optional[Classification] = None,
    isFlagged: t.Optional[bool] = None,
    _: str = Depends(require_token),
):
    return _ok(store.student_page(cursor, limit, classification, isFlagged))


@app.post(f"{USERS}/students/{{student_id}}")
async def student_profile(student_id: str, credentials: StudentCredentials, _: str = Depends(require_token)):
    return _ok(store.student_profile(student_id, credentials.email, credentials.password))


@app.get(f"{BOOKING}/counselor/appointments/")
async def list_appointments(
    startDate: str,
    endDate: str,
    _: str = Depends(require_token),
):
    return _ok(store.appointments_between(startDate, endDate))


@app.patch(f"{BOOKING}/counselor/appointments/{{appointment_id}}/cancel")
async def cancel_appointment(appointment_id: str, _: str = Depends(require_token)):
    return _ok(store.cancel(appointment_id), "Appointment cancelled")


@app.get(f"{BOOKING}/counselor/requests/")
async def list_requests(
    status: t.Optional[RequestStatus] = None,
    _: str = Depends(require_token),
):
    return _ok(store.requests_with_status(status))


@app.post(f"{BOOKING}/counselor/requests/")
async def create_request(payload: CreateCounselorRequestPayload, _: str = Depends(require_token)):
    return _ok(store.create_request(payload), "Appointment request created")


@app.patch(f"{BOOKING}/counselor/requests/{{request_id}}/accept")
async def accept_request(request_id: str, _: str = Depends(require_token)):
    return _ok(store.accept(request_id), "Appointment confirmed")


@app.patch(f"{BOOKING}/counselor/requests/{{request_id}}/decline")
async def decline_request(request_id: str, _: str = Depends(require_token)):
    return _ok(store.decline(request_id), "Appointment request declined")


@app.get(f"{BOOKING}/counselor/availability/")
async def unavailable_slots(startDate: str, endDate: str, _: str = Depends(require_token)):
    return _ok(store.unavailable_between(startDate, endDate))


@app.get(f"{BOOKING}/counselor/availability/department")
async def department_slots(
    startDate: str,
    endDate: str,
    slotDuration: int = Query(60, ge=15, le=240),
    workStartHour: int = Query(9, ge=0, le=23),
    workEndHour: int = Query(17, ge=1, le=23),
    _: str = Depends(require_token),
):
    return _ok(store.available_between(startDate, endDate, slotDuration, workStartHour, workEndHour))


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8010)
