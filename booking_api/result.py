"""Typed results returned by every backend call.

Calls never raise for transport or envelope problems. They return either
``Ok(value)`` or ``Err(ApiError)`` so callers branch on the outcome instead of
catching exceptions.
"""
from __future__ import annotations

import typing as t
from dataclasses import dataclass
from enum import Enum

T = t.TypeVar("T")


class ErrorKind(Enum):
    """Where a failed call went wrong."""
    NETWORK = "NETWORK"
    TIMEOUT = "TIMEOUT"
    ENVELOPE = "ENVELOPE"
    HTTP_STATUS = "HTTP_STATUS"
    DECODE = "DECODE"
    MISSING_TOKEN = "MISSING_TOKEN"


@dataclass(frozen=True)
class ApiError:
    """A user-presentable failure from the network boundary."""
    kind: ErrorKind
    code: str
    message: str

    @classmethod
    def network(cls) -> "ApiError":
        return cls(ErrorKind.NETWORK, "NETWORK_ERROR", "Failed to connect to the server. Please try again.")

    @classmethod
    def timeout(cls, seconds: float) -> "ApiError":
        return cls(ErrorKind.TIMEOUT, "TIMEOUT", f"The server did not respond within {seconds:g} seconds.")

    @classmethod
    def missing_token(cls) -> "ApiError":
        return cls(ErrorKind.MISSING_TOKEN, "MISSING_TOKEN", "You are not signed in.")

    @classmethod
    def decode(cls) -> "ApiError":
        return cls(ErrorKind.DECODE, "INVALID_RESPONSE", "Received an invalid response from the server.")

    @classmethod
    def http_status(cls, status_code: int) -> "ApiError":
        return cls(ErrorKind.HTTP_STATUS, f"HTTP_{status_code}", f"Server responded with status {status_code}.")


@dataclass(frozen=True)
class Ok(t.Generic[T]):
    value: T
    ok: t.Literal[True] = True


@dataclass(frozen=True)
class Err:
    error: ApiError
    ok: t.Literal[False] = False


ApiResult = t.Union[Ok[T], Err]
