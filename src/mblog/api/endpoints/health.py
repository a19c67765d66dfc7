"""Health endpoint handler."""

from __future__ import annotations

import json
from typing import Final

from aiohttp import web

from mblog.api.context import PHASE_GETTER, STATE_GETTER

STATUS_HEALTHY: Final = "healthy"
"""Status returned while the watcher is running."""

SERVICE_NAME: Final = "mblog-api"
"""Fixed service identifier returned by the health endpoint."""


async def handle(request: web.Request) -> web.Response:
    """
    Handle health check request.

    Response: JSON object with fields:
        - status (string): Always healthy when the endpoint is reachable.
        - service (string): Fixed identifier "mblog-api".
        - phase (string): Watcher phase, e.g. "ACTIVE" or "RECONNECTING".
        - epoch (integer or null): Watched epoch.

    Status Codes:
        200 OK: Server is running.
    """
    phase_getter = request.app.get(PHASE_GETTER)
    state_getter = request.app.get(STATE_GETTER)
    state = state_getter() if state_getter else None

    return web.Response(
        body=json.dumps(
            {
                "status": STATUS_HEALTHY,
                "service": SERVICE_NAME,
                "phase": phase_getter().name if phase_getter else None,
                "epoch": state.epoch if state is not None else None,
            }
        ),
        content_type="application/json",
    )
