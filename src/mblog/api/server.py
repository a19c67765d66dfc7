"""
Read-only API server for watcher status, history and metrics.

Provides HTTP endpoints for:
- /mblog/v0/health - Health check with watcher phase and epoch
- /mblog/v0/epochs/{epoch} - Persisted schedule and outcomes of one epoch
- /metrics - Prometheus metrics endpoint
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from aiohttp import web

from mblog.watcher import WatcherPhase

from .context import DATABASE_GETTER, PHASE_GETTER, STATE_GETTER
from .routes import ROUTES

if TYPE_CHECKING:
    from mblog.storage import Database
    from mblog.watcher import WatchState


def _no_database() -> Database | None:
    """Watch mode without --db."""
    return None


def _no_state() -> WatchState | None:
    """Watcher not started yet."""
    return None


def _idle() -> WatcherPhase:
    """Watcher not started yet."""
    return WatcherPhase.IDLE


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ApiServerConfig:
    """Configuration for the API server."""

    host: str = "127.0.0.1"
    """Host address to bind to."""

    port: int = 9615
    """Port to listen on."""

    enabled: bool = True
    """Whether the API server is enabled."""


@dataclass(slots=True)
class ApiServer:
    """
    HTTP API server exposing the watcher's view.

    Getters are read per request, so the server always reports live state.
    """

    config: ApiServerConfig
    """Server configuration."""

    database_getter: Callable[[], Database | None] = _no_database
    """Callable that returns the schedule database."""

    state_getter: Callable[[], WatchState | None] = _no_state
    """Callable that returns the current watch state."""

    phase_getter: Callable[[], WatcherPhase] = _idle
    """Callable that returns the watcher phase."""

    _runner: web.AppRunner | None = field(default=None, init=False)
    """The aiohttp application runner."""

    _site: web.TCPSite | None = field(default=None, init=False)
    """The TCP site for the server."""

    async def start(self) -> None:
        """Bind and serve until stop() is called."""
        if not self.config.enabled:
            logger.info("API server is disabled")
            return

        app = web.Application()
        app[DATABASE_GETTER] = self.database_getter
        app[STATE_GETTER] = self.state_getter
        app[PHASE_GETTER] = self.phase_getter
        app.add_routes([web.get(path, handler) for path, handler in ROUTES.items()])

        self._runner = web.AppRunner(app)
        await self._runner.setup()

        self._site = web.TCPSite(self._runner, self.config.host, self.config.port)
        await self._site.start()

        logger.info("API server listening on %s:%d", self.config.host, self.config.port)

    async def stop(self) -> None:
        """Shut the server down. Safe to call when not started."""
        if self._runner is not None:
            await self._runner.cleanup()
            self._runner = None
            self._site = None
            logger.info("API server stopped")
