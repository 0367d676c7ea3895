"""Utility modules for common operations."""

from rodoguard.utils.crypto import (
    decrypt_container,
    derive_key,
    encrypt_container,
    is_encrypted_container,
    resolve_key,
)

__all__ = [
    "decrypt_container",
    "derive_key",
    "encrypt_container",
    "is_encrypted_container",
    "resolve_key",
]
