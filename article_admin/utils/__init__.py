"""Shared helpers."""

from .security import get_password_hash, verify_and_update_password, verify_password

__all__ = [
    "get_password_hash",
    "verify_and_update_password",
    "verify_password",
]
