"""Encrypted storage for persisted application data."""

from rodoguard.storage.encrypted_store import (
    EncryptedStoreFile,
    StoreDecryptionError,
    StoreLockedError,
)

__all__ = ["EncryptedStoreFile", "StoreDecryptionError", "StoreLockedError"]
