"""
Metric registry using prometheus_client.

Provides pre-defined metrics for the schedule watcher.
Exposes metrics in Prometheus text format via the /metrics endpoint.
"""

from __future__ import annotations

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

# Create a dedicated registry for mblog metrics.
#
# Using a dedicated registry avoids pollution from default Python process metrics.
REGISTRY = CollectorRegistry()

# -----------------------------------------------------------------------------
# Chain Position
# -----------------------------------------------------------------------------

best_block = Gauge(
    "mblog_best_block",
    "Highest best-head block number seen",
    registry=REGISTRY,
)

finalized_block = Gauge(
    "mblog_finalized_block",
    "Highest finalized block number seen",
    registry=REGISTRY,
)

current_epoch = Gauge(
    "mblog_epoch",
    "Epoch currently watched",
    registry=REGISTRY,
)

own_slots = Gauge(
    "mblog_own_slots",
    "Slots assigned to this identity in the watched epoch",
    registry=REGISTRY,
)

slot_status = Gauge(
    "mblog_slot_status",
    "Owned slots of the watched epoch by status, refreshed on scrape",
    ["status"],
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Block Production
# -----------------------------------------------------------------------------

blocks_minted = Counter(
    "mblog_blocks_minted_total",
    "Owned slots observed with a best-head block (reorg corrections included)",
    registry=REGISTRY,
)

blocks_finalized = Counter(
    "mblog_blocks_finalized_total",
    "Owned slots whose block was finalized",
    registry=REGISTRY,
)

blocks_orphaned = Counter(
    "mblog_blocks_orphaned_total",
    "Minted blocks replaced by a different canonical block at finality",
    registry=REGISTRY,
)

# -----------------------------------------------------------------------------
# Watcher Health
# -----------------------------------------------------------------------------

reconnects = Counter(
    "mblog_reconnects_total",
    "Node reconnection attempts",
    registry=REGISTRY,
)

ignored_updates = Counter(
    "mblog_ignored_status_updates_total",
    "Status updates rejected by the database as regressions",
    registry=REGISTRY,
)

epoch_boundary_seconds = Histogram(
    "mblog_epoch_boundary_seconds",
    "Time to resolve and persist the next epoch at a boundary",
    buckets=(0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0),
    registry=REGISTRY,
)


def generate_metrics() -> bytes:
    """
    Generate Prometheus metrics output.

    Returns:
        Prometheus text format output as bytes.
    """
    return generate_latest(REGISTRY)
