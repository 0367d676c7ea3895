"""Utilities for key management and authenticated encryption at rest.

Encrypted containers are laid out as::

    MAGIC (8) | IV (12) | AUTH TAG (16) | CIPHERTEXT

and sealed with AES-256-GCM under a key derived from a passphrase with
scrypt and a per-installation salt.
"""

from __future__ import annotations

import logging
import os
import secrets
from functools import lru_cache
from pathlib import Path
from typing import TYPE_CHECKING

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.scrypt import Scrypt

if TYPE_CHECKING:  # pragma: no cover
    from rodoguard.config import Settings

logger = logging.getLogger(__name__)

MAGIC = b"RODOGRD1"
IV_LENGTH = 12
AUTH_TAG_LENGTH = 16
KEY_LENGTH = 32
SALT_LENGTH = 16
MIN_CONTAINER_LENGTH = len(MAGIC) + IV_LENGTH + AUTH_TAG_LENGTH

# Used only when the installation salt cannot be persisted, so that the same
# passphrase still re-derives the same key on the next start.
FALLBACK_SALT = b"rodoguard-salt-v1"

DEFAULT_SCRYPT_N = 2**14
DEFAULT_SCRYPT_R = 8
DEFAULT_SCRYPT_P = 1


class KeyMaterialError(RuntimeError):
    """Raised when encryption is required but no key can be produced."""


def _write_secure_file(path: Path, data: bytes, *, mode: int = 0o600) -> None:
    """Write ``data`` to ``path`` and restrict permissions.

    Args:
        path: Target file path
        data: Bytes to persist
        mode: File mode to apply (POSIX style)
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    try:
        os.write(fd, data)
        os.fsync(fd)
    finally:
        os.close(fd)

    try:
        os.chmod(path, mode)
    except PermissionError:
        # Windows may not support POSIX-style chmod; best effort only.
        pass


def load_or_create_hmac_key(path: Path, *, length: int = 32) -> bytes:
    """Load an existing HMAC key or generate a new random key.

    Args:
        path: Key file location
        length: Number of random bytes to generate

    Returns:
        Raw key bytes suitable for HMAC operations.
    """
    try:
        return path.read_bytes()
    except FileNotFoundError:
        key = secrets.token_bytes(length)
        _write_secure_file(path, key)
        return key


def load_or_create_salt(path: Path) -> bytes:
    """Return the installation salt stored at ``path``, creating it once.

    If the salt cannot be read or persisted, :data:`FALLBACK_SALT` is returned
    instead of a fresh random value so the key stays re-derivable.
    """
    try:
        salt = path.read_bytes()
        if len(salt) == SALT_LENGTH:
            return salt
        logger.warning(
            "Salt file %s has unexpected length %d; using fallback salt", path, len(salt)
        )
        return FALLBACK_SALT
    except FileNotFoundError:
        pass
    except OSError as exc:
        logger.warning("Cannot read salt file %s (%s); using fallback salt", path, exc)
        return FALLBACK_SALT

    salt = secrets.token_bytes(SALT_LENGTH)
    try:
        _write_secure_file(path, salt)
    except OSError as exc:
        logger.warning(
            "Cannot persist salt file %s (%s); using fallback salt. "
            "Key derivation has reduced salt entropy until this is fixed.",
            path,
            exc,
        )
        return FALLBACK_SALT

    logger.info("Generated key derivation salt at %s", path)
    return salt


@lru_cache(maxsize=8)
def derive_key(
    passphrase: str,
    salt: bytes,
    *,
    n: int = DEFAULT_SCRYPT_N,
    r: int = DEFAULT_SCRYPT_R,
    p: int = DEFAULT_SCRYPT_P,
) -> bytes:
    """Derive a 256-bit key from ``passphrase`` with scrypt.

    Results are cached for the process lifetime; scrypt is intentionally slow.
    """
    kdf = Scrypt(salt=salt, length=KEY_LENGTH, n=n, r=r, p=p)
    return kdf.derive(passphrase.encode("utf-8"))


def _load_or_generate_passphrase(key_path: Path) -> str:
    """Read the keyfile passphrase, generating one on first run.

    Raises:
        OSError: If an existing keyfile cannot be read or a new one written.
    """
    if key_path.exists():
        passphrase = key_path.read_text(encoding="utf-8").strip()
        if not passphrase:
            raise OSError(f"keyfile {key_path} is empty")
        return passphrase

    generated = secrets.token_hex(32)
    _write_secure_file(key_path, (generated + "\n").encode("utf-8"))
    logger.info("Generated store encryption keyfile at %s", key_path)
    return generated


def resolve_key(settings: Settings | None = None) -> bytes | None:
    """Resolve the store encryption key.

    Order: ``RODOGUARD_DB_KEY`` passphrase, then the keyfile, then a newly
    generated keyfile.

    Returns:
        The derived 32-byte key, or ``None`` when encryption is disabled or
        key material is unavailable.

    Raises:
        KeyMaterialError: Key material is unavailable and
            ``settings.require_encryption`` is set.
    """
    if settings is None:
        from rodoguard.config import get_settings

        settings = get_settings()

    if not settings.db_encrypt:
        logger.info("Store encryption disabled by configuration")
        return None

    passphrase = settings.get_db_passphrase()
    if passphrase is None:
        key_path = settings.get_db_key_path()
        try:
            passphrase = _load_or_generate_passphrase(key_path)
        except OSError as exc:
            if settings.require_encryption:
                raise KeyMaterialError(
                    f"Encryption key unavailable at {key_path}: {exc}"
                ) from exc
            logger.warning(
                "ENCRYPTION DISABLED: cannot load or create keyfile %s (%s). "
                "The data store will be written UNENCRYPTED.",
                key_path,
                exc,
            )
            return None

    salt = load_or_create_salt(settings.get_db_salt_path())
    return derive_key(
        passphrase,
        salt,
        n=settings.scrypt_n,
        r=settings.scrypt_r,
        p=settings.scrypt_p,
    )


def encrypt_container(data: bytes, key: bytes) -> bytes:
    """Encrypt ``data`` into a self-describing container."""
    iv = secrets.token_bytes(IV_LENGTH)
    sealed = AESGCM(key).encrypt(iv, data, None)
    ciphertext, tag = sealed[:-AUTH_TAG_LENGTH], sealed[-AUTH_TAG_LENGTH:]
    return MAGIC + iv + tag + ciphertext


def decrypt_container(data: bytes, key: bytes) -> bytes | None:
    """Decrypt a container produced by :func:`encrypt_container`.

    Returns:
        Plaintext bytes, or ``None`` for wrong keys, truncated or corrupted
        containers, and inputs that are not containers at all.
    """
    if len(data) < MIN_CONTAINER_LENGTH or not is_encrypted_container(data):
        return None

    offset = len(MAGIC)
    iv = data[offset : offset + IV_LENGTH]
    tag = data[offset + IV_LENGTH : MIN_CONTAINER_LENGTH]
    ciphertext = data[MIN_CONTAINER_LENGTH:]

    try:
        return AESGCM(key).decrypt(iv, ciphertext + tag, None)
    except (InvalidTag, ValueError):
        return None


def is_encrypted_container(data: bytes) -> bool:
    """Return True when ``data`` starts with the container magic bytes."""
    return data[: len(MAGIC)] == MAGIC
