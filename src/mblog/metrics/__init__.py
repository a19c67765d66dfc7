"""
Metrics module for observability.

Provides counters, gauges, and histograms for tracking the watcher.
Exposes metrics in Prometheus text format.
"""

from .registry import (
    REGISTRY,
    best_block,
    blocks_finalized,
    blocks_minted,
    blocks_orphaned,
    current_epoch,
    epoch_boundary_seconds,
    finalized_block,
    generate_metrics,
    ignored_updates,
    own_slots,
    reconnects,
    slot_status,
)

__all__ = [
    "REGISTRY",
    "best_block",
    "blocks_finalized",
    "blocks_minted",
    "blocks_orphaned",
    "current_epoch",
    "epoch_boundary_seconds",
    "finalized_block",
    "generate_metrics",
    "ignored_updates",
    "own_slots",
    "reconnects",
    "slot_status",
]
