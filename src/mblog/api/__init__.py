"""
API server module for watcher status and history endpoints.

Provides HTTP endpoints for:
- /mblog/v0/health - Health check endpoint
- /mblog/v0/epochs/{epoch} - Persisted epoch history
- /metrics - Prometheus metrics
"""

from .server import ApiServer, ApiServerConfig

__all__ = [
    "ApiServer",
    "ApiServerConfig",
]
