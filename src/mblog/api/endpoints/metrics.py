"""Metrics endpoint handler."""

from __future__ import annotations

from aiohttp import web

from mblog.api.context import STATE_GETTER
from mblog.metrics import generate_metrics, slot_status
from mblog.types import BlockStatus

CONTENT_TYPE = "text/plain; version=0.0.4"
"""Prometheus text exposition format."""


async def handle(request: web.Request) -> web.Response:
    """
    Handle metrics request.

    The per-status slot counts are taken from the watch state at scrape
    time. Before the watcher has a state they are all zero.

    Response: Prometheus text format (text/plain; version=0.0.4)

    Status Codes:
        200 OK: Metrics returned.
    """
    state_getter = request.app.get(STATE_GETTER)
    state = state_getter() if state_getter else None
    for status in BlockStatus:
        slot_status.labels(status=status.value).set(state.count(status) if state else 0)

    return web.Response(body=generate_metrics(), content_type=CONTENT_TYPE, charset="utf-8")
