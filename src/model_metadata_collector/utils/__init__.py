"""Utility functions for the model metadata collector."""

from .digest import calculate_digest, validate_digest, verify_digest
from .license import get_human_readable_license_name, get_license_url

__all__ = [
    "calculate_digest",
    "validate_digest",
    "verify_digest",
    "get_human_readable_license_name",
    "get_license_url",
]
