"""Application keys shared by the server and the endpoint handlers."""

from __future__ import annotations

from collections.abc import Callable

from aiohttp import web

from mblog.storage import Database
from mblog.watcher import WatcherPhase, WatchState

DATABASE_GETTER = web.AppKey("database_getter", Callable[[], Database | None])
"""Returns the schedule database, or None when storage is disabled."""

STATE_GETTER = web.AppKey("state_getter", Callable[[], WatchState | None])
"""Returns the current watch state, or None before bootstrap."""

PHASE_GETTER = web.AppKey("phase_getter", Callable[[], WatcherPhase])
"""Returns the watcher phase."""
