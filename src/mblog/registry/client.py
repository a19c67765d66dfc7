"""
Secondary registration lookup.

Some networks keep a registry of validators outside the chain (for example
a sidechain registration service). The answer is informational only: any
failure is reported as UNKNOWN and never stops the monitor.
"""

from __future__ import annotations

import logging
from enum import StrEnum
from typing import Final

import httpx
from pydantic import BaseModel, ValidationError

from mblog.types import AuraPublicKey, StrictBaseModel

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT: Final = 5.0
"""HTTP request timeout in seconds."""

REGISTRATION_ENDPOINT: Final = "/registrations/{public_key}"
"""Registry path template for one key."""


class RegistrationStatus(StrEnum):
    """What the registry said about the identity."""

    REGISTERED = "registered"
    NOT_REGISTERED = "not registered"
    UNKNOWN = "unknown"


class Registration(StrictBaseModel):
    """Registry answer for one key."""

    status: RegistrationStatus
    stake: float | None = None


UNKNOWN_REGISTRATION: Final = Registration(status=RegistrationStatus.UNKNOWN)
"""Result used whenever the registry cannot answer."""


class _RegistryResponse(BaseModel):
    """Wire format of the registry response."""

    registered: bool
    stake: float | None = None


async def fetch_registration(
    url: str,
    public_key: AuraPublicKey,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> Registration:
    """
    Ask the registry whether public_key is registered.

    Args:
        url: Base URL of the registry service.
        public_key: The identity to look up.
        timeout: Request timeout in seconds.
        transport: Custom transport (testing).

    Returns:
        The registration, or UNKNOWN if the registry fails in any way.
    """
    full_url = url.rstrip("/") + REGISTRATION_ENDPOINT.format(public_key=public_key.to_hex())

    try:
        async with httpx.AsyncClient(timeout=timeout, transport=transport) as client:
            response = await client.get(full_url)
            response.raise_for_status()
            body = _RegistryResponse.model_validate_json(response.content)
    except httpx.HTTPError as exc:
        logger.warning("Registry lookup at %s failed: %s", full_url, exc)
        return UNKNOWN_REGISTRATION
    except ValidationError as exc:
        logger.warning("Registry at %s returned an unexpected body: %s", full_url, exc)
        return UNKNOWN_REGISTRATION

    status = RegistrationStatus.REGISTERED if body.registered else RegistrationStatus.NOT_REGISTERED
    return Registration(status=status, stake=body.stake)
