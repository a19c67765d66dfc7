"""Validator identity discovery and confirmation."""

from .keystore import list_candidate_keys, parse_key_file_name
from .resolver import resolve_identity

__all__ = [
    "list_candidate_keys",
    "parse_key_file_name",
    "resolve_identity",
]
