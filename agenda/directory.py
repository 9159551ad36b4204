"""
Session-scoped student directory.

The directory is loaded once per session token by paging through the users
API. It is read by every mapper call, so it is only ever replaced as a whole:
readers always see either the previous complete map or the new one.
"""
from __future__ import annotations

import asyncio
import logging
import typing as t
from dataclasses import dataclass, field
from types import MappingProxyType

from agenda.models import StudentRecord
from booking_api import config
from booking_api.result import ApiError, Err
from booking_api.session import SessionContext
from booking_api.students import get_department_students, student_to_record

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DirectoryLoad:
    """Outcome of one pagination scan. ``students`` may be partial when ``error`` is set."""
    students: dict[str, StudentRecord] = field(default_factory=dict)
    error: t.Optional[ApiError] = None
    pages: int = 0


async def load_all_students(
    ctx: SessionContext,
    page_size: int = config.STUDENT_PAGE_SIZE,
) -> DirectoryLoad:
    """
    Page through the department's students and key them by student id.

    Pagination follows ``nextCursor`` until the server reports no more pages
    or stops returning a cursor. A failed page ends the scan; whatever was
    accumulated so far is returned together with the error.

    Args:
        ctx: Session context; a missing token means no request is made
        page_size: Number of students requested per page

    Returns:
        DirectoryLoad with the collected records and the first error, if any
    """
    if not ctx.authenticated:
        return DirectoryLoad(error=ApiError.missing_token())

    students: dict[str, StudentRecord] = {}
    seen_cursors: set[str] = set()
    cursor: t.Optional[str] = None
    pages = 0

    while True:
        result = await get_department_students(ctx, cursor=cursor, limit=page_size)
        if isinstance(result, Err):
            logger.warning(
                "Student directory stopped after %d page(s) with %d student(s): %s",
                pages, len(students), result.error.message,
            )
            return DirectoryLoad(students=students, error=result.error, pages=pages)

        pages += 1
        page = result.value
        for student in page.classifications:
            record = student_to_record(student)
            students.setdefault(record.id, record)

        if not page.hasMore or not page.nextCursor:
            break
        if page.nextCursor in seen_cursors:
            logger.warning("Server repeated cursor %r; stopping pagination", page.nextCursor)
            break
        seen_cursors.add(page.nextCursor)
        cursor = page.nextCursor

    logger.debug("Loaded %d student(s) in %d page(s)", len(students), pages)
    return DirectoryLoad(students=students, pages=pages)


class StudentDirectory:
    """Read-mostly lookup from student id to StudentRecord for one session."""

    def __init__(self, page_size: int = config.STUDENT_PAGE_SIZE) -> None:
        self.page_size = page_size
        self._students: t.Mapping[str, StudentRecord] = MappingProxyType({})
        self._token: t.Optional[str] = None
        self._requested_token: t.Optional[str] = None
        self._last_load: t.Optional[DirectoryLoad] = None
        self._inflight: dict[str, asyncio.Task[DirectoryLoad]] = {}

    def __len__(self) -> int:
        return len(self._students)

    def __contains__(self, student_id: object) -> bool:
        return student_id in self._students

    def get(self, student_id: str) -> t.Optional[StudentRecord]:
        return self._students.get(student_id)

    @property
    def students(self) -> t.Mapping[str, StudentRecord]:
        """The current map. Safe to hold on to; it is never mutated."""
        return self._students

    @property
    def is_ready(self) -> bool:
        return len(self._students) > 0

    @property
    def last_error(self) -> t.Optional[ApiError]:
        return self._last_load.error if self._last_load else None

    async def ensure_loaded(self, ctx: SessionContext) -> DirectoryLoad:
        """
        Load the directory for ``ctx.token`` unless that already happened.

        Concurrent callers with the same token share one scan. A different
        token replaces the directory once its scan completes.
        """
        token = ctx.token
        if not token:
            return DirectoryLoad(error=ApiError.missing_token())

        self._requested_token = token
        if token == self._token and self._last_load is not None:
            return self._last_load

        task = self._inflight.get(token)
        if task is None:
            task = asyncio.create_task(load_all_students(ctx, self.page_size))
            self._inflight[token] = task
            task.add_done_callback(lambda _: self._inflight.pop(token, None))

        load = await asyncio.shield(task)
        if token == self._requested_token and token != self._token:
            self._publish(token, load)
        return load

    async def reload(self, ctx: SessionContext) -> DirectoryLoad:
        """Force a new scan for the current token (user-triggered retry)."""
        if ctx.token == self._token:
            self._token = None
            self._last_load = None
        return await self.ensure_loaded(ctx)

    def clear(self) -> None:
        """Drop everything, e.g. on sign-out."""
        self._students = MappingProxyType({})
        self._token = None
        self._requested_token = None
        self._last_load = None

    def _publish(self, token: str, load: DirectoryLoad) -> None:
        self._students = MappingProxyType(dict(load.students))
        self._token = token
        self._last_load = load
