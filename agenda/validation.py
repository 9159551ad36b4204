"""Client-side checks for the schedule-consultation form."""
from __future__ import annotations

import re
import typing as t
from datetime import date, datetime, timedelta

from agenda.models import RequestForm
from booking_api import config

MISSING_FIELDS = "Please select a student, date, and time."
TOO_SOON = "Date must be at least 1 week (7 days) in advance."
END_BEFORE_START = "End time must be after start time."

# strptime alone accepts unpadded values such as "9:30" or "2025-1-5"
_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
_HHMM = re.compile(r"^\d{2}:\d{2}$")


def _parse_date(value: str) -> t.Optional[date]:
    if not _DATE.match(value.strip()):
        return None
    try:
        return datetime.strptime(value.strip(), "%Y-%m-%d").date()
    except ValueError:
        return None


def _minutes(value: str) -> t.Optional[int]:
    if not _HHMM.match(value.strip()):
        return None
    try:
        parsed = datetime.strptime(value.strip(), "%H:%M")
    except ValueError:
        return None
    return parsed.hour * 60 + parsed.minute


def validate_request_form(
    form: RequestForm,
    today: t.Optional[date] = None,
    min_days: int = config.MIN_DAYS_IN_ADVANCE,
) -> t.Optional[str]:
    """
    Return the first violated rule's message, or None when the form is valid.

    Rules are checked in order: required fields, date far enough ahead,
    end after start. Dates must be ``YYYY-MM-DD`` and times zero-padded
    ``HH:MM``; anything else counts as missing.
    """
    today = today or date.today()

    proposed = _parse_date(form.date)
    start = _minutes(form.start_time)
    end = _minutes(form.end_time)

    if not form.student_id.strip() or proposed is None or start is None or end is None:
        return MISSING_FIELDS

    if proposed < today + timedelta(days=min_days):
        return TOO_SOON

    if end <= start:
        return END_BEFORE_START

    return None
