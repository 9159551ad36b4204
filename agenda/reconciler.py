"""Fetch orchestration for the counselor calendar.

Confirmed appointments and pending requests come from two endpoints with two
record shapes. The reconciler fetches both for the visible month, maps them to
``AgendaData`` and publishes one merged snapshot once both calls settle.
"""
from __future__ import annotations

import asyncio
import logging
import typing as t
from dataclasses import dataclass, replace
from datetime import tzinfo
from enum import Enum

from agenda.directory import StudentDirectory
from agenda.mappers import merge_agendas, month_date_range
from agenda.models import AgendaData, ConfirmedAppointment, PendingRequest
from booking_api.counselor_appointments import get_confirmed_appointments
from booking_api.counselor_requests import get_counselor_requests
from booking_api.result import ApiError, Ok
from booking_api.session import SessionContext

logger = logging.getLogger(__name__)


class FetchState(Enum):
    """Lifecycle of the visible month's data."""
    IDLE = "IDLE"
    LOADING = "LOADING"
    READY = "READY"
    ERROR = "ERROR"


class RefreshReason(Enum):
    """What asked for a refresh."""
    SESSION_AVAILABLE = "SESSION_AVAILABLE"
    DIRECTORY_READY = "DIRECTORY_READY"
    MONTH_CHANGED = "MONTH_CHANGED"
    EXPLICIT = "EXPLICIT"


@dataclass(frozen=True)
class AgendaSnapshot:
    """Immutable view of the calendar handed to subscribers."""
    year: int
    month: int  # 0-indexed
    agendas: tuple[AgendaData, ...] = ()
    state: FetchState = FetchState.IDLE
    errors: tuple[ApiError, ...] = ()
    generation: int = 0


Subscriber = t.Callable[[AgendaSnapshot], None]


class AgendaReconciler:
    """Keeps the merged agenda list for one visible month current."""

    def __init__(
        self,
        ctx: SessionContext,
        directory: StudentDirectory,
        year: int,
        month: int,
        tz: t.Optional[tzinfo] = None,
    ) -> None:
        self.ctx = ctx
        self.directory = directory
        self.tz = tz
        self._generation = 0
        self._subscribers: list[Subscriber] = []
        self.snapshot = AgendaSnapshot(year=year, month=month)

    @property
    def state(self) -> FetchState:
        return self.snapshot.state

    @property
    def agendas(self) -> tuple[AgendaData, ...]:
        return self.snapshot.agendas

    @property
    def errors(self) -> tuple[ApiError, ...]:
        return self.snapshot.errors

    def subscribe(self, callback: Subscriber) -> t.Callable[[], None]:
        """Register a callback for every published snapshot; returns an unsubscribe function."""
        self._subscribers.append(callback)
        return lambda: self._subscribers.remove(callback)

    async def on_session_available(self, ctx: SessionContext) -> AgendaSnapshot:
        """Adopt a (new) session, make sure its directory is loaded, then refresh."""
        self.ctx = ctx
        await self.directory.ensure_loaded(ctx)
        return await self.refresh(RefreshReason.SESSION_AVAILABLE)

    async def on_directory_ready(self) -> AgendaSnapshot:
        return await self.refresh(RefreshReason.DIRECTORY_READY)

    async def set_visible_month(self, year: int, month: int) -> AgendaSnapshot:
        """Switch the visible month (0-indexed) and refresh."""
        if not 0 <= month <= 11:
            raise ValueError(f"month must be between 0 and 11, got {month}")
        self.snapshot = replace(self.snapshot, year=year, month=month)
        return await self.refresh(RefreshReason.MONTH_CHANGED)

    async def refresh(self, reason: RefreshReason = RefreshReason.EXPLICIT) -> AgendaSnapshot:
        """
        Fetch and publish the merged agenda list for the visible month.

        Skips without any network call when there is no session token or
        the student directory is still empty. Responses that arrive after a
        newer refresh has started are discarded.

        Args:
            reason: What triggered the refresh, for logging

        Returns:
            The snapshot current after this call
        """
        if not self.ctx.authenticated:
            logger.debug("Refresh (%s) skipped: no session token", reason.value)
            return self.snapshot
        if not self.directory.is_ready:
            logger.debug("Refresh (%s) skipped: student directory is empty", reason.value)
            return self.snapshot

        self._generation += 1
        generation = self._generation
        year, month = self.snapshot.year, self.snapshot.month
        date_range = month_date_range(year, month, self.tz)

        self._publish(AgendaSnapshot(
            year=year,
            month=month,
            agendas=self.snapshot.agendas,
            state=FetchState.LOADING,
            generation=generation,
        ))
        logger.debug("Refresh %d (%s) for %04d-%02d", generation, reason.value, year, month + 1)

        confirmed_result, pending_result = await asyncio.gather(
            get_confirmed_appointments(self.ctx, date_range.start_date, date_range.end_date),
            get_counselor_requests(self.ctx, status="pending"),
        )

        if generation != self._generation:
            logger.debug("Discarding stale refresh %d (current is %d)", generation, self._generation)
            return self.snapshot

        errors: list[ApiError] = []
        confirmed: list[ConfirmedAppointment] = []
        pending: list[PendingRequest] = []

        if isinstance(confirmed_result, Ok):
            confirmed = confirmed_result.value
        else:
            errors.append(confirmed_result.error)

        if isinstance(pending_result, Ok):
            pending = pending_result.value
        else:
            errors.append(pending_result.error)

        agendas = merge_agendas(confirmed, pending, self.directory.students)
        snapshot = AgendaSnapshot(
            year=year,
            month=month,
            agendas=tuple(agendas),
            state=FetchState.ERROR if errors else FetchState.READY,
            errors=tuple(errors),
            generation=generation,
        )
        self._publish(snapshot)
        return snapshot

    def find(self, agenda_id: str) -> t.Optional[AgendaData]:
        """Look up a published agenda by request id or appointment id."""
        for agenda in self.snapshot.agendas:
            if agenda_id in (agenda.request_id, agenda.appointment_id):
                return agenda
        return None

    def _publish(self, snapshot: AgendaSnapshot) -> None:
        self.snapshot = snapshot
        for callback in list(self._subscribers):
            callback(snapshot)
