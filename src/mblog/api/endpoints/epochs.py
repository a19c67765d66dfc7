"""Epochs endpoint handlers."""

from __future__ import annotations

from aiohttp import web

from mblog.api.context import DATABASE_GETTER


async def handle_epoch(request: web.Request) -> web.Response:
    """
    Handle epoch history request.

    Returns the persisted summary and slot records of one epoch, read-only.

    Response: JSON object with fields:
        - info (object): epoch, start_slot, end_slot, authority_set_hash,
          authority_set_len, created_at_utc.
        - blocks (array): slot records in slot order, each with slot, epoch,
          planned_time_utc, block_number, block_hash, produced_time_utc, status.

    Status Codes:
        200 OK: Epoch returned.
        400 Bad Request: Epoch is not a non-negative integer.
        404 Not Found: Epoch not recorded.
        503 Service Unavailable: Storage disabled.
    """
    raw = request.match_info["epoch"]
    if not raw.isdigit():
        raise web.HTTPBadRequest(reason=f"Invalid epoch: {raw!r}")

    database_getter = request.app.get(DATABASE_GETTER)
    database = database_getter() if database_getter else None
    if database is None:
        raise web.HTTPServiceUnavailable(reason="Storage disabled")

    stored = database.read_epoch(int(raw))
    if stored is None:
        raise web.HTTPNotFound(reason=f"Epoch {raw} not recorded")

    return web.Response(body=stored.model_dump_json(), content_type="application/json")
