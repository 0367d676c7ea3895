"""Encrypted persistence for the serialized data store."""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from rodoguard.config import Settings
from rodoguard.utils.crypto import (
    decrypt_container,
    encrypt_container,
    is_encrypted_container,
    resolve_key,
)

logger = logging.getLogger(__name__)


class StoreLockedError(RuntimeError):
    """The store on disk is encrypted but no key is available."""


class StoreDecryptionError(ValueError):
    """The store on disk is an encrypted container that failed to decrypt."""


class EncryptedStoreFile:
    """A single store file written as an encrypted container.

    With ``key=None`` the store is written in plaintext (encryption disabled
    or key material unavailable). Plaintext files found on load are accepted
    and get encrypted on the next :meth:`save` once a key is available.
    """

    def __init__(self, path: Path, key: bytes | None) -> None:
        self._path = path
        self._key = key

    @classmethod
    def from_settings(cls, settings: Settings, name: str = "store") -> EncryptedStoreFile:
        """Open the named store with the key resolved from ``settings``."""
        return cls(settings.get_store_path(name), resolve_key(settings))

    @property
    def path(self) -> Path:
        """Return the underlying storage path."""
        return self._path

    @property
    def encryption_enabled(self) -> bool:
        return self._key is not None

    def save(self, data: bytes) -> None:
        """Atomically replace the store contents with ``data``."""
        payload = encrypt_container(data, self._key) if self._key is not None else data
        self._path.parent.mkdir(parents=True, exist_ok=True)

        fd: int | None = None
        tmp_path: str | None = None
        try:
            fd, tmp_path = tempfile.mkstemp(
                dir=str(self._path.parent),
                prefix=self._path.name,
                suffix=".tmp",
            )
            with os.fdopen(fd, "wb") as handle:
                fd = None  # Ownership transferred to file object
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())

            os.chmod(tmp_path, 0o600)
            os.replace(tmp_path, self._path)
            tmp_path = None
        finally:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass

    def load(self) -> bytes | None:
        """Return the decrypted store contents, or ``None`` if absent.

        Raises:
            StoreLockedError: The file is encrypted and no key is configured.
            StoreDecryptionError: The file is encrypted but cannot be
                decrypted (wrong key, truncation or corruption).
        """
        try:
            raw = self._path.read_bytes()
        except FileNotFoundError:
            return None

        if not is_encrypted_container(raw):
            if self._key is not None:
                logger.info(
                    "Store %s is not encrypted; it will be encrypted on next save", self._path
                )
            return raw

        if self._key is None:
            raise StoreLockedError(f"Store {self._path} is encrypted but no key is available")

        data = decrypt_container(raw, self._key)
        if data is None:
            raise StoreDecryptionError(
                f"Failed to decrypt store {self._path}: wrong key or corrupted file"
            )
        return data

    def is_encrypted(self) -> bool:
        """Return True when the file on disk is an encrypted container."""
        try:
            with open(self._path, "rb") as fh:
                head = fh.read(16)
        except FileNotFoundError:
            return False
        return is_encrypted_container(head)

    def purge(self) -> None:
        """Remove the store file."""
        try:
            self._path.unlink()
        except FileNotFoundError:
            return
