"""Environment-driven settings for the booking and users APIs."""
import os


def _get_float(value: str | None, default: float) -> float:
    if value is None or not value.strip():
        return default
    return float(value)


def _get_int(value: str | None, default: int) -> int:
    if value is None or not value.strip():
        return default
    return int(value)


# Service URLs - configurable via environment variables
BOOKING_API_URL = os.getenv("BOOKING_API_URL", "http://localhost:8010").rstrip("/")
USERS_API_URL = os.getenv("USERS_API_URL", BOOKING_API_URL).rstrip("/")

BOOKING_API_PREFIX = "/api/v1/booking"
USERS_API_PREFIX = "/api/v1/users"

# Timeout for every backend call (in seconds)
STANDARD_TIMEOUT = _get_float(os.getenv("BOOKING_API_TIMEOUT"), 30.0)

STUDENT_PAGE_SIZE = _get_int(os.getenv("STUDENT_PAGE_SIZE"), 50)
MIN_DAYS_IN_ADVANCE = _get_int(os.getenv("MIN_DAYS_IN_ADVANCE"), 7)

LOG_LEVEL = os.getenv("LOG_LEVEL", "WARNING").upper()
