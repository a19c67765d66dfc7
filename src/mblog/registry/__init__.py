"""Optional secondary registry lookup."""

from .client import (
    UNKNOWN_REGISTRATION,
    Registration,
    RegistrationStatus,
    fetch_registration,
)

__all__ = [
    "UNKNOWN_REGISTRATION",
    "Registration",
    "RegistrationStatus",
    "fetch_registration",
]
