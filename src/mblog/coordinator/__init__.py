"""Epoch bootstrap, resume and boundary handling."""

from .coordinator import EpochCoordinator

__all__ = ["EpochCoordinator"]
