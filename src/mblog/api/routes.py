"""API route definitions."""

from collections.abc import Awaitable, Callable

from aiohttp import web

from .endpoints import epochs, health, metrics

ROUTES: dict[str, Callable[[web.Request], Awaitable[web.Response]]] = {
    "/mblog/v0/health": health.handle,
    "/mblog/v0/epochs/{epoch}": epochs.handle_epoch,
    "/metrics": metrics.handle,
}
"""All API routes mapped to their handlers."""
