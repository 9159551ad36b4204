"""
Envelope-aware HTTP helper shared by every endpoint wrapper.

Each wrapper module describes one endpoint (method, URL, query, body and the
expected ``data`` type) and delegates the transport, the envelope check and
the decoding to :func:`call_api`.
"""
from __future__ import annotations

import logging
import typing as t

import httpx
from pydantic import ValidationError

from booking_api.result import ApiError, ApiResult, Err, ErrorKind, Ok
from booking_api.session import SessionContext
from services.shared.models import ApiEnvelope

logger = logging.getLogger(__name__)

T = t.TypeVar("T")


async def call_api(
    ctx: SessionContext,
    method: str,
    url: str,
    data_type: t.Any,
    *,
    params: t.Optional[dict[str, t.Any]] = None,
    json: t.Optional[dict[str, t.Any]] = None,
    description: str = "backend call",
) -> ApiResult[t.Any]:
    """
    Perform one authenticated call and decode its envelope.

    Args:
        ctx: Session context carrying the bearer token and base URLs
        method: HTTP method
        url: Absolute URL of the endpoint
        data_type: Type of the envelope's ``data`` field (e.g. ``list[Appointment]``)
        params: Optional query parameters
        json: Optional JSON body
        description: Human-readable name used in log lines

    Returns:
        ``Ok(data)`` when the server reports success, otherwise ``Err(ApiError)``.
        Missing tokens short-circuit before any request is made.
    """
    if not ctx.authenticated:
        logger.debug("Skipping %s: no session token", description)
        return Err(ApiError.missing_token())

    try:
        async with ctx.client() as client:
            response = await client.request(
                method,
                url,
                params=params,
                json=json,
                headers=ctx.auth_headers(),
            )
    except httpx.TimeoutException:
        logger.warning("%s timed out after %s seconds", description, ctx.timeout)
        return Err(ApiError.timeout(ctx.timeout))
    except httpx.HTTPError as e:
        logger.warning("Network error during %s: %s", description, e)
        return Err(ApiError.network())

    try:
        envelope = ApiEnvelope[data_type].model_validate(response.json())
    except (ValueError, ValidationError) as e:
        if response.is_success:
            logger.warning("Invalid response body for %s: %s", description, e)
            return Err(ApiError.decode())
        logger.warning("%s failed with HTTP %s", description, response.status_code)
        return Err(ApiError.http_status(response.status_code))

    if not envelope.success:
        logger.warning("%s failed: %s", description, envelope.message)
        return Err(ApiError(ErrorKind.ENVELOPE, envelope.code, envelope.message))

    if envelope.data is None:
        logger.warning("%s reported success without data", description)
        return Err(ApiError.decode())

    return Ok(envelope.data)
