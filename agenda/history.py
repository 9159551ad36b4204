"""Consultation history shown on a student's profile."""
from __future__ import annotations

import typing as t
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from agenda.mappers import format_agenda_type, to_utc_iso
from booking_api.counselor_appointments import get_confirmed_appointments
from booking_api.result import ApiResult, Ok
from booking_api.session import SessionContext

HistoryPeriod = t.Literal["All Time", "This Week", "This Month"]


@dataclass(frozen=True)
class Consultation:
    """One past or upcoming confirmed session with a student."""
    id: str
    session_type: str
    starts_at: datetime


def _parse_iso(value: str) -> datetime:
    # Keep the written wall clock; any offset is dropped
    return datetime.fromisoformat(value.replace("Z", "+00:00")).replace(tzinfo=None)


async def fetch_student_history(
    ctx: SessionContext,
    student_id: str,
    now: t.Optional[datetime] = None,
) -> ApiResult[list[Consultation]]:
    """
    Confirmed appointments with one student, newest first.

    The lookup covers roughly two years back and one year ahead of ``now``.
    """
    now = now or datetime.now(timezone.utc)
    start = now - timedelta(days=730)
    end = now + timedelta(days=365)

    result = await get_confirmed_appointments(ctx, to_utc_iso(start), to_utc_iso(end))
    if not isinstance(result, Ok):
        return result

    consultations = [
        Consultation(
            id=a.appointment_id,
            session_type=format_agenda_type(a.agenda_kind),
            starts_at=_parse_iso(a.start_time),
        )
        for a in result.value
        if a.student_id == student_id
    ]
    consultations.sort(key=lambda c: c.starts_at, reverse=True)
    return Ok(consultations)


def _same_week(a: datetime, b: datetime) -> bool:
    # Weeks start on Sunday
    start_a = a.date() - timedelta(days=(a.weekday() + 1) % 7)
    start_b = b.date() - timedelta(days=(b.weekday() + 1) % 7)
    return start_a == start_b


def filter_history(
    consultations: t.Iterable[Consultation],
    session_type: str = "All",
    period: HistoryPeriod = "All Time",
    now: t.Optional[datetime] = None,
) -> list[Consultation]:
    """Filter by session type label ("All" keeps every type) and time period."""
    now = now or datetime.now()
    kept = []
    for item in consultations:
        if session_type != "All" and item.session_type != session_type:
            continue
        if period == "This Week" and not _same_week(item.starts_at, now):
            continue
        if period == "This Month" and (item.starts_at.year, item.starts_at.month) != (now.year, now.month):
            continue
        kept.append(item)
    return kept
