"""
Accept, decline, create and cancel actions on the counselor calendar.

The controller never edits the published agenda list itself. After a
successful action it asks the reconciler for a fresh snapshot, so the view
only ever shows what the backend reports.
"""
from __future__ import annotations

import logging
import typing as t
from dataclasses import dataclass
from datetime import date

from agenda.errors import (
    ActionInProgressError,
    ActionNotAllowedError,
    FormValidationError,
    MissingIdentifierError,
)
from agenda.mappers import form_to_request_payload
from agenda.models import AgendaData, RequestForm
from agenda.reconciler import AgendaReconciler, RefreshReason
from agenda.validation import validate_request_form
from booking_api.counselor_appointments import cancel_appointment
from booking_api.counselor_requests import (
    accept_counselor_request,
    create_counselor_request,
    decline_counselor_request,
)
from booking_api.result import ApiResult, Ok
from booking_api.session import SessionContext

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ActionOutcome:
    """Result of one lifecycle action, ready to show as a toast."""
    ok: bool
    message: str
    data: t.Any = None


def can_respond(agenda: AgendaData) -> bool:
    """Accept/decline is offered only on pending requests the student initiated."""
    return agenda.status == "pending" and agenda.created_by == "student"


def can_cancel(agenda: AgendaData) -> bool:
    return agenda.status == "confirmed" and agenda.appointment_id is not None


class RequestLifecycleController:
    """Runs counselor actions against the booking API and refreshes the calendar."""

    def __init__(self, reconciler: AgendaReconciler) -> None:
        self.reconciler = reconciler
        self.processing = False
        self.selected: t.Optional[AgendaData] = None

    @property
    def ctx(self) -> SessionContext:
        """The session the calendar is currently showing."""
        return self.reconciler.ctx

    def select(self, agenda: AgendaData) -> None:
        """Open the detail view for an agenda."""
        self.selected = agenda

    def close_details(self) -> None:
        self.selected = None

    async def accept(self, agenda: AgendaData) -> ActionOutcome:
        request_id = self._require_request_id(agenda, "accept")
        self._require_respondable(agenda, "accept")
        return await self._run(
            "Request accepted.",
            lambda: accept_counselor_request(self.ctx, request_id),
        )

    async def decline(self, agenda: AgendaData) -> ActionOutcome:
        request_id = self._require_request_id(agenda, "decline")
        self._require_respondable(agenda, "decline")
        return await self._run(
            "Request declined.",
            lambda: decline_counselor_request(self.ctx, request_id),
        )

    async def cancel(self, agenda: AgendaData) -> ActionOutcome:
        appointment_id = agenda.appointment_id
        if not appointment_id:
            logger.error("cancel called on agenda %r without an appointment id", agenda.id)
            raise MissingIdentifierError(f"Agenda {agenda.id!r} has no appointment id to cancel")
        if not can_cancel(agenda):
            raise ActionNotAllowedError(f"Only confirmed appointments can be cancelled (status {agenda.status!r})")
        return await self._run(
            "Appointment cancelled.",
            lambda: cancel_appointment(self.ctx, appointment_id),
        )

    async def create(self, form: RequestForm, today: t.Optional[date] = None) -> ActionOutcome:
        """
        Validate the schedule form and propose the appointment to the student.

        Raises:
            ActionNotAllowedError: The session does not belong to a counselor.
            FormValidationError: The first violated form rule; nothing is sent.
        """
        if not self.ctx.is_counselor:
            raise ActionNotAllowedError("Only counselors can schedule consultations")
        message = validate_request_form(form, today=today)
        if message:
            raise FormValidationError(message)
        payload = form_to_request_payload(form)
        return await self._run(
            "Request sent to the student.",
            lambda: create_counselor_request(self.ctx, payload),
        )

    async def _run(
        self,
        success_message: str,
        call: t.Callable[[], t.Awaitable[ApiResult[t.Any]]],
    ) -> ActionOutcome:
        if self.processing:
            raise ActionInProgressError("Another action is still being processed")

        self.processing = True
        try:
            result = await call()
            if not isinstance(result, Ok):
                return ActionOutcome(ok=False, message=result.error.message)

            await self.reconciler.refresh(RefreshReason.EXPLICIT)
            self.close_details()
            return ActionOutcome(ok=True, message=success_message, data=result.value)
        finally:
            self.processing = False

    def _require_request_id(self, agenda: AgendaData, action: str) -> str:
        if not agenda.request_id:
            logger.error("%s called on agenda %r without a request id", action, agenda.id)
            raise MissingIdentifierError(f"Agenda {agenda.id!r} has no request id to {action}")
        return agenda.request_id

    def _require_respondable(self, agenda: AgendaData, action: str) -> None:
        if not self.ctx.is_counselor:
            raise ActionNotAllowedError(f"Only counselors can {action} requests")
        if not can_respond(agenda):
            raise ActionNotAllowedError(
                f"Cannot {action} request {agenda.request_id!r}: "
                f"status {agenda.status!r}, created by {agenda.created_by!r}"
            )
