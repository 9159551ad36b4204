"""Explicit session context passed to every backend call."""
from __future__ import annotations

import typing as t
from dataclasses import dataclass

import httpx

from booking_api import config

Role = t.Literal["counselor", "admin", "super_admin"]


@dataclass(frozen=True)
class SessionContext:
    """Who is calling and where the backends live.

    The token and role are issued by the sign-in layer; this package only
    carries them. ``transport`` lets tests route calls to a fake backend.
    """
    token: t.Optional[str]
    role: Role = "counselor"
    booking_url: str = config.BOOKING_API_URL
    users_url: str = config.USERS_API_URL
    timeout: float = config.STANDARD_TIMEOUT
    transport: t.Optional[httpx.AsyncBaseTransport] = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    @property
    def is_counselor(self) -> bool:
        return self.role == "counselor"

    def booking_endpoint(self, path: str) -> str:
        return f"{self.booking_url}{config.BOOKING_API_PREFIX}{path}"

    def users_endpoint(self, path: str) -> str:
        return f"{self.users_url}{config.USERS_API_PREFIX}{path}"

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    def auth_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}
