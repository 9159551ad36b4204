"""Shared fixtures: a routable fake backend and wire-shaped sample records."""
import typing as t

import httpx
import pytest

from booking_api.session import SessionContext

BASE_URL = "http://backend.test"
STUDENTS_PATH = "/api/v1/users/students"
APPOINTMENTS_PATH = "/api/v1/booking/counselor/appointments/"
REQUESTS_PATH = "/api/v1/booking/counselor/requests/"

Handler = t.Callable[[httpx.Request], t.Any]


def envelope(data: t.Any = None, success: bool = True, code: str = "OK", message: str = "OK") -> dict[str, t.Any]:
    """Build a response body in the backend's envelope shape."""
    body: dict[str, t.Any] = {"success": success, "code": code, "message": message}
    if data is not None:
        body["data"] = data
    return body


def student_json(n: int, name: t.Optional[str] = None) -> dict[str, t.Any]:
    return {
        "student_id": f"s{n}",
        "email": f"s{n}@school.edu",
        "user_name": name if name is not None else f"Student {n}",
        "classification_id": f"c{n}",
        "classification": "Thriving",
        "is_flagged": False,
        "classified_at": "2025-01-01T00:00:00",
        "department_name": "College of Computing",
    }


def appointment_json(
    appointment_id: str,
    student_id: str,
    start: str,
    end: str,
    agenda: str = "counseling",
) -> dict[str, t.Any]:
    return {
        "appointment_id": appointment_id,
        "student_id": student_id,
        "counselor_id": "counselor-1",
        "agenda": agenda,
        "start_time": start,
        "end_time": end,
        "request_id": f"req-for-{appointment_id}",
    }


def request_json(
    request_id: str,
    student_id: str,
    start: str,
    end: str,
    created_by: str = "student",
    status: str = "pending",
    agenda: str = "counseling",
) -> dict[str, t.Any]:
    return {
        "request_id": request_id,
        "student_id": student_id,
        "counselor_id": "counselor-1",
        "agenda": agenda,
        "proposed_start": start,
        "proposed_end": end,
        "created_by": created_by,
        "student_response": "accepted" if created_by == "student" else "pending",
        "counselor_response": "accepted" if created_by == "counselor" else "pending",
        "status": status,
    }


class FakeBackend:
    """Routes requests by (method, path) to canned responses and records every call."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], Handler] = {}
        self.calls: list[httpx.Request] = []

    def route(self, method: str, path: str, handler: t.Union[Handler, dict[str, t.Any]], status: int = 200) -> None:
        """Register a handler, or a JSON body to return with ``status``."""
        if callable(handler):
            self.routes[(method, path)] = handler
        else:
            body = handler
            self.routes[(method, path)] = lambda request: httpx.Response(status, json=body)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.calls if r.method == method and r.url.path == path]

    async def handle(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        handler = self.routes.get((request.method, request.url.path))
        if handler is None:
            return httpx.Response(404, json=envelope(success=False, code="NOT_FOUND", message="No route"))
        response = handler(request)
        if hasattr(response, "__await__"):
            response = await response
        return response

    def session(self, token: t.Optional[str] = "token-1", role: str = "counselor") -> SessionContext:
        return SessionContext(
            token=token,
            role=role,
            booking_url=BASE_URL,
            users_url=BASE_URL,
            timeout=5.0,
            transport=httpx.MockTransport(self.handle),
        )


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def calendar_backend(backend: FakeBackend) -> FakeBackend:
    """Backend with 3 students, 3 confirmed appointments and 2 pending requests in December 2025."""
    backend.route("GET", STUDENTS_PATH, envelope({
        "classifications": [student_json(1, "Ana"), student_json(2, "Ben"), student_json(3, "Cy")],
        "hasMore": False,
        "nextCursor": None,
    }))
    backend.route("GET", APPOINTMENTS_PATH, envelope([
        appointment_json("a1", "s1", "2025-12-03T09:00:00", "2025-12-03T10:00:00"),
        appointment_json("a2", "s2", "2025-12-10T14:00:00", "2025-12-10T15:00:00", "routine_interview"),
        appointment_json("a3", "s9", "2025-12-12T08:30:00", "2025-12-12T09:00:00"),
    ]))
    backend.route("GET", REQUESTS_PATH, envelope([
        request_json("r1", "s3", "2025-12-15T10:00:00", "2025-12-15T11:00:00", created_by="student"),
        request_json("r2", "s1", "2025-12-16T13:00:00", "2025-12-16T14:00:00", created_by="counselor"),
    ]))
    return backend
