"""API endpoint handlers."""

from . import epochs, health, metrics

__all__ = [
    "epochs",
    "health",
    "metrics",
]
