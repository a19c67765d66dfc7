"""Tests for the read-only API server."""

from __future__ import annotations

import asyncio

import httpx

from mblog.api import ApiServer, ApiServerConfig
from mblog.chain import SlotClock
from mblog.schedule import compute_schedule
from mblog.storage import SQLiteDatabase
from mblog.types import BlockStatus
from mblog.watcher import WatcherPhase, WatchState
from tests.mblog.helpers import SLOT_DURATION_MS, make_authority_set, make_key, make_record


def _database() -> SQLiteDatabase:
    db = SQLiteDatabase(":memory:")
    aset = make_authority_set()
    db.record_epoch(
        aset, compute_schedule(aset, make_key(1), SlotClock(slot_duration_ms=SLOT_DURATION_MS))
    )
    db.advance_status(103, BlockStatus.MINTED, 7, "0xaa", "1970-01-01T00:10:18+00:00")
    return db


class TestApiServerConfiguration:
    """Tests for API server configuration behavior."""

    def test_default_config(self) -> None:
        """Default configuration binds to localhost on 9615."""
        config = ApiServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 9615
        assert config.enabled is True

    def test_disabled_server_does_not_listen(self) -> None:
        """A disabled server starts nothing."""

        async def run_test() -> None:
            server = ApiServer(config=ApiServerConfig(port=15060, enabled=False))
            await server.start()
            await server.stop()

        asyncio.run(run_test())


class TestHealthEndpoint:
    """Tests for the /mblog/v0/health endpoint."""

    def test_reports_phase_and_epoch(self) -> None:
        """Health includes the watcher phase and watched epoch."""

        async def run_test() -> None:
            state = WatchState(authority_set=make_authority_set())
            server = ApiServer(
                config=ApiServerConfig(port=15061),
                state_getter=lambda: state,
                phase_getter=lambda: WatcherPhase.ACTIVE,
            )
            await server.start()

            try:
                async with httpx.AsyncClient() as client:
                    response = await client.get("http://127.0.0.1:15061/mblog/v0/health")

                    assert response.status_code == 200
                    assert response.json() == {
                        "status": "healthy",
                        "service": "mblog-api",
                        "phase": "ACTIVE",
                        "epoch": 10,
                    }
            finally:
                await server.stop()

        asyncio.run(run_test())

    def test_before_bootstrap(self) -> None:
        """Without state the epoch is null."""

        async def run_test() -> None:
            server = ApiServer(config=ApiServerConfig(port=15062))
            await server.start()

            try:
                async with httpx.AsyncClient() as client:
                    response = await client.get("http://127.0.0.1:15062/mblog/v0/health")

                    assert response.json()["phase"] == "IDLE"
                    assert response.json()["epoch"] is None
            finally:
                await server.stop()

        asyncio.run(run_test())


class TestEpochEndpoint:
    """Tests for the /mblog/v0/epochs/{epoch} endpoint."""

    def test_returns_recorded_epoch(self) -> None:
        """A recorded epoch is returned with its slot records."""

        async def run_test() -> None:
            db = _database()
            server = ApiServer(config=ApiServerConfig(port=15063), database_getter=lambda: db)
            await server.start()

            try:
                async with httpx.AsyncClient() as client:
                    response = await client.get("http://127.0.0.1:15063/mblog/v0/epochs/10")

                    assert response.status_code == 200
                    body = response.json()
                    assert body["info"]["epoch"] == 10
                    assert [b["slot"] for b in body["blocks"]] == [100, 103, 106, 109]
                    assert body["blocks"][1]["status"] == "mint"
                    assert body["blocks"][1]["block_hash"] == "0xaa"
            finally:
                await server.stop()
                db.close()

        asyncio.run(run_test())

    def test_error_statuses(self) -> None:
        """Bad, missing and unavailable epochs map to 400, 404 and 503."""

        async def run_test() -> None:
            db = _database()
            with_db = ApiServer(config=ApiServerConfig(port=15064), database_getter=lambda: db)
            without_db = ApiServer(config=ApiServerConfig(port=15065))
            await with_db.start()
            await without_db.start()

            try:
                async with httpx.AsyncClient() as client:
                    bad = await client.get("http://127.0.0.1:15064/mblog/v0/epochs/abc")
                    missing = await client.get("http://127.0.0.1:15064/mblog/v0/epochs/99")
                    disabled = await client.get("http://127.0.0.1:15065/mblog/v0/epochs/10")

                    assert bad.status_code == 400
                    assert missing.status_code == 404
                    assert disabled.status_code == 503
            finally:
                await with_db.stop()
                await without_db.stop()
                db.close()

        asyncio.run(run_test())


class TestMetricsEndpoint:
    """Tests for the /metrics endpoint."""

    def test_prometheus_text(self) -> None:
        """Metrics are served in the Prometheus text format."""

        async def run_test() -> None:
            server = ApiServer(config=ApiServerConfig(port=15066))
            await server.start()

            try:
                async with httpx.AsyncClient() as client:
                    response = await client.get("http://127.0.0.1:15066/metrics")

                    assert response.status_code == 200
                    assert response.headers["content-type"].startswith("text/plain")
                    assert "mblog_best_block" in response.text
                    assert "mblog_blocks_minted_total" in response.text
            finally:
                await server.stop()

        asyncio.run(run_test())

    def test_slot_status_from_watch_state(self) -> None:
        """Per-status slot counts reflect the watch state at scrape time."""
        state = WatchState.from_records(
            make_authority_set(),
            [
                make_record(100, status=BlockStatus.FINALIZED, block_number=1, block_hash="0xaa"),
                make_record(103, status=BlockStatus.MINTED, block_number=2, block_hash="0xbb"),
                make_record(106),
                make_record(109),
            ],
        )

        async def run_test() -> None:
            server = ApiServer(config=ApiServerConfig(port=15067), state_getter=lambda: state)
            await server.start()

            try:
                async with httpx.AsyncClient() as client:
                    response = await client.get("http://127.0.0.1:15067/metrics")

                    assert response.status_code == 200
                    assert 'mblog_slot_status{status="schedule"} 2.0' in response.text
                    assert 'mblog_slot_status{status="mint"} 1.0' in response.text
                    assert 'mblog_slot_status{status="finality"} 1.0' in response.text
            finally:
                await server.stop()

        asyncio.run(run_test())
