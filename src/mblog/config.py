"""
Global configuration for mblog.

This module contains environment-specific settings that apply across all modules.
"""

import os

_SUPPORTED_MBLOG_ENVS: list[str] = ["prod", "test"]

MBLOG_ENV = os.environ.get("MBLOG_ENV", "prod").lower()
"""The environment flag ('prod' or 'test'). Defaults to 'prod'."""

if MBLOG_ENV not in _SUPPORTED_MBLOG_ENVS:
    raise ValueError(
        f"Invalid MBLOG_ENV environment variable: '{MBLOG_ENV}'. "
        f"Supported values: {_SUPPORTED_MBLOG_ENVS}"
    )
