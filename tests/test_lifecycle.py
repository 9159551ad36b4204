"""Tests for the accept, decline, cancel and create actions."""
import asyncio
from datetime import date, timezone

import httpx
import pytest

from agenda.directory import StudentDirectory
from agenda.errors import (
    ActionInProgressError,
    ActionNotAllowedError,
    FormValidationError,
    MissingIdentifierError,
)
from agenda.lifecycle import RequestLifecycleController, can_cancel, can_respond
from agenda.models import AgendaData, RequestForm
from agenda.reconciler import AgendaReconciler
from agenda.validation import TOO_SOON

from conftest import (
    APPOINTMENTS_PATH,
    REQUESTS_PATH,
    FakeBackend,
    appointment_json,
    envelope,
    request_json,
)

ACCEPT_R1 = "/api/v1/booking/counselor/requests/r1/accept"
DECLINE_R1 = "/api/v1/booking/counselor/requests/r1/decline"


async def loaded_controller(backend: FakeBackend, role: str = "counselor") -> RequestLifecycleController:
    reconciler = AgendaReconciler(backend.session(role=role), StudentDirectory(), 2025, 11, tz=timezone.utc)
    await reconciler.on_session_available(reconciler.ctx)
    return RequestLifecycleController(reconciler)


def fetch_count(backend: FakeBackend) -> int:
    return len(backend.calls_to("GET", APPOINTMENTS_PATH))


def test_gating_rules() -> None:
    """Test which entries offer accept/decline and cancel."""
    common = dict(
        title="t", date="2025-12-15", agenda_type="Counseling", start_time="10:00",
        end_time="11:00", student_id="s1", student_name="Ana",
    )
    from_student = AgendaData(id="r1", request_id="r1", status="pending", created_by="student", **common)
    from_counselor = AgendaData(id="r2", request_id="r2", status="pending", created_by="counselor", **common)
    declined = AgendaData(id="r3", request_id="r3", status="declined", created_by="student", **common)
    confirmed = AgendaData(id="a1", appointment_id="a1", status="confirmed", created_by="student", **common)

    assert can_respond(from_student)
    assert not can_respond(from_counselor)
    assert not can_respond(declined)
    assert not can_respond(confirmed)
    assert can_cancel(confirmed)
    assert not can_cancel(from_student)


@pytest.mark.asyncio
async def test_accept_refreshes_and_closes_details(calendar_backend: FakeBackend) -> None:
    """Test that a successful accept re-fetches the calendar and closes the detail view."""
    calendar_backend.route("PATCH", ACCEPT_R1, envelope(
        appointment_json("a9", "s3", "2025-12-15T10:00:00", "2025-12-15T11:00:00"),
    ))
    controller = await loaded_controller(calendar_backend)
    agenda = controller.reconciler.find("r1")
    controller.select(agenda)
    before = fetch_count(calendar_backend)

    outcome = await controller.accept(agenda)

    assert outcome.ok
    assert outcome.message == "Request accepted."
    assert fetch_count(calendar_backend) == before + 1
    assert controller.selected is None
    assert not controller.processing


@pytest.mark.asyncio
async def test_failed_decline_reports_server_message(calendar_backend: FakeBackend) -> None:
    """Test that a rejected action surfaces the server's message and changes nothing locally."""
    calendar_backend.route(
        "PATCH",
        DECLINE_R1,
        envelope(success=False, code="REQUEST_NOT_PENDING", message="Request is already declined."),
        status=409,
    )
    controller = await loaded_controller(calendar_backend)
    agenda = controller.reconciler.find("r1")
    controller.select(agenda)
    snapshot = controller.reconciler.snapshot
    before = fetch_count(calendar_backend)

    outcome = await controller.decline(agenda)

    assert not outcome.ok
    assert outcome.message == "Request is already declined."
    assert fetch_count(calendar_backend) == before
    assert controller.reconciler.snapshot is snapshot
    assert controller.selected is agenda


@pytest.mark.asyncio
async def test_accept_without_request_id_raises_before_any_call(calendar_backend: FakeBackend) -> None:
    controller = await loaded_controller(calendar_backend)
    confirmed = controller.reconciler.find("a1")
    calls_before = len(calendar_backend.calls)

    with pytest.raises(MissingIdentifierError):
        await controller.accept(confirmed)

    assert len(calendar_backend.calls) == calls_before


@pytest.mark.asyncio
async def test_cannot_respond_to_own_request(calendar_backend: FakeBackend) -> None:
    """Test that a counselor-created request awaits the student, not the counselor."""
    controller = await loaded_controller(calendar_backend)

    with pytest.raises(ActionNotAllowedError):
        await controller.accept(controller.reconciler.find("r2"))


@pytest.mark.asyncio
async def test_non_counselor_cannot_respond(calendar_backend: FakeBackend) -> None:
    controller = await loaded_controller(calendar_backend, role="admin")

    with pytest.raises(ActionNotAllowedError):
        await controller.decline(controller.reconciler.find("r1"))


@pytest.mark.asyncio
async def test_cancel_confirmed_appointment(calendar_backend: FakeBackend) -> None:
    cancelled = appointment_json("a1", "s1", "2025-12-03T09:00:00", "2025-12-03T10:00:00")
    cancelled.update(cancelled_by="counselor", cancelled_at="2025-12-01T08:00:00")
    calendar_backend.route("PATCH", "/api/v1/booking/counselor/appointments/a1/cancel", envelope(cancelled))
    controller = await loaded_controller(calendar_backend)
    before = fetch_count(calendar_backend)

    outcome = await controller.cancel(controller.reconciler.find("a1"))

    assert outcome.ok
    assert outcome.message == "Appointment cancelled."
    assert fetch_count(calendar_backend) == before + 1


@pytest.mark.asyncio
async def test_cancel_pending_request_raises(calendar_backend: FakeBackend) -> None:
    controller = await loaded_controller(calendar_backend)

    with pytest.raises(MissingIdentifierError):
        await controller.cancel(controller.reconciler.find("r1"))


@pytest.mark.asyncio
async def test_invalid_form_is_not_sent(calendar_backend: FakeBackend) -> None:
    """Test that validation failures raise before any network call."""
    controller = await loaded_controller(calendar_backend)
    calls_before = len(calendar_backend.calls)
    form = RequestForm(student_id="s1", date="2025-01-03", start_time="10:00", end_time="11:00")

    with pytest.raises(FormValidationError) as excinfo:
        await controller.create(form, today=date(2025, 1, 1))

    assert excinfo.value.message == TOO_SOON
    assert len(calendar_backend.calls) == calls_before


@pytest.mark.asyncio
async def test_create_sends_request_and_refreshes(calendar_backend: FakeBackend) -> None:
    calendar_backend.route("POST", REQUESTS_PATH, envelope(
        request_json("r7", "s2", "2025-12-20T10:00:00", "2025-12-20T11:00:00", created_by="counselor"),
    ))
    controller = await loaded_controller(calendar_backend)
    before = fetch_count(calendar_backend)
    form = RequestForm(student_id="s2", date="2025-12-20", start_time="10:00", end_time="11:00")

    outcome = await controller.create(form, today=date(2025, 12, 1))

    assert outcome.ok
    assert outcome.message == "Request sent to the student."
    assert outcome.data.request_id == "r7"
    assert fetch_count(calendar_backend) == before + 1


@pytest.mark.asyncio
async def test_admin_cannot_schedule(calendar_backend: FakeBackend) -> None:
    controller = await loaded_controller(calendar_backend, role="super_admin")
    form = RequestForm(student_id="s2", date="2025-12-20", start_time="10:00", end_time="11:00")

    with pytest.raises(ActionNotAllowedError):
        await controller.create(form, today=date(2025, 12, 1))


@pytest.mark.asyncio
async def test_second_action_while_processing_is_rejected(calendar_backend: FakeBackend) -> None:
    """Test that only one action runs at a time."""
    release = asyncio.Event()
    started = asyncio.Event()

    async def slow_accept(request: httpx.Request) -> httpx.Response:
        started.set()
        await release.wait()
        return httpx.Response(200, json=envelope(
            appointment_json("a9", "s3", "2025-12-15T10:00:00", "2025-12-15T11:00:00"),
        ))

    calendar_backend.route("PATCH", ACCEPT_R1, slow_accept)
    controller = await loaded_controller(calendar_backend)
    agenda = controller.reconciler.find("r1")

    accept = asyncio.create_task(controller.accept(agenda))
    await started.wait()
    assert controller.processing
    with pytest.raises(ActionInProgressError):
        await controller.decline(agenda)
    release.set()
    outcome = await accept

    assert outcome.ok
    assert not controller.processing
