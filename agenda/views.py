"""List shaping for the calendar: badges, tabs, day cells and week buckets."""
from __future__ import annotations

import typing as t
from dataclasses import dataclass, field
from datetime import date, timedelta

from agenda.models import AgendaData


def status_badge(agenda: AgendaData) -> str:
    """Counselor-facing label for an agenda's status."""
    if agenda.status in ("confirmed", "both_confirmed"):
        return "Confirmed"
    if agenda.status == "declined":
        if agenda.student_response == "declined":
            return "Declined by Student"
        return "Declined by You"
    if agenda.status == "pending":
        if agenda.created_by == "counselor":
            return "Pending Student"
        return "Pending Your Reply"
    return f"? {agenda.status}"


def sort_agendas(agendas: t.Iterable[AgendaData]) -> list[AgendaData]:
    """Chronological order by date, then start time."""
    return sorted(agendas, key=lambda a: (a.date, a.start_time))


def request_tabs(agendas: t.Iterable[AgendaData]) -> tuple[list[AgendaData], list[AgendaData]]:
    """Split into (pending, declined) lists, each sorted chronologically."""
    ordered = sort_agendas(agendas)
    pending = [a for a in ordered if a.status == "pending"]
    declined = [a for a in ordered if a.status == "declined"]
    return pending, declined


def group_by_date(agendas: t.Iterable[AgendaData]) -> dict[str, list[AgendaData]]:
    """Calendar cells keyed by ``YYYY-MM-DD``, entries sorted by start time."""
    cells: dict[str, list[AgendaData]] = {}
    for agenda in sort_agendas(agendas):
        cells.setdefault(agenda.date, []).append(agenda)
    return cells


@dataclass
class WeekBuckets:
    today: list[AgendaData] = field(default_factory=list)
    upcoming: list[AgendaData] = field(default_factory=list)
    next_week: list[AgendaData] = field(default_factory=list)


def bucket_by_week(agendas: t.Iterable[AgendaData], today: t.Optional[date] = None) -> WeekBuckets:
    """
    Sort future agendas into today, the coming six days, and a week out or later.

    Past agendas are left out.
    """
    today = today or date.today()
    next_week = today + timedelta(days=7)
    buckets = WeekBuckets()

    for agenda in sort_agendas(agendas):
        day = date.fromisoformat(agenda.date)
        if day == today:
            buckets.today.append(agenda)
        elif today < day < next_week:
            buckets.upcoming.append(agenda)
        elif day >= next_week:
            buckets.next_week.append(agenda)

    return buckets
