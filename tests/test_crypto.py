"""Tests for encryption at rest and key management."""

import logging
import os
import stat
from pathlib import Path

import pytest

from rodoguard.config import Settings
from rodoguard.utils.crypto import (
    FALLBACK_SALT,
    MAGIC,
    MIN_CONTAINER_LENGTH,
    SALT_LENGTH,
    KeyMaterialError,
    decrypt_container,
    derive_key,
    encrypt_container,
    is_encrypted_container,
    load_or_create_salt,
    resolve_key,
)

TEST_SCRYPT_N = 2**10


def _mode(path: Path) -> int:
    return stat.S_IMODE(path.stat().st_mode)


def _settings(temp_dir: Path, **overrides) -> Settings:
    overrides.setdefault("scrypt_n", TEST_SCRYPT_N)
    return Settings(
        data_dir=temp_dir / "data",
        config_dir=temp_dir / "config",
        **overrides,
    )


@pytest.fixture
def key() -> bytes:
    return os.urandom(32)


class TestContainer:
    """Test the encrypted container format."""

    def test_round_trip(self, key: bytes):
        sealed = encrypt_container(b"dane klienta", key)

        assert sealed.startswith(MAGIC)
        assert len(sealed) == MIN_CONTAINER_LENGTH + len(b"dane klienta")
        assert b"dane klienta" not in sealed
        assert decrypt_container(sealed, key) == b"dane klienta"

    def test_empty_plaintext(self, key: bytes):
        sealed = encrypt_container(b"", key)

        assert len(sealed) == MIN_CONTAINER_LENGTH
        assert decrypt_container(sealed, key) == b""

    def test_fresh_iv_per_encryption(self, key: bytes):
        assert encrypt_container(b"x", key) != encrypt_container(b"x", key)

    def test_wrong_key_returns_none(self, key: bytes):
        sealed = encrypt_container(b"secret", key)

        assert decrypt_container(sealed, os.urandom(32)) is None

    def test_tampered_ciphertext_returns_none(self, key: bytes):
        sealed = bytearray(encrypt_container(b"secret", key))
        sealed[-1] ^= 0x01

        assert decrypt_container(bytes(sealed), key) is None

    def test_truncated_container_returns_none(self, key: bytes):
        sealed = encrypt_container(b"secret", key)

        assert decrypt_container(sealed[: MIN_CONTAINER_LENGTH - 1], key) is None
        assert decrypt_container(MAGIC, key) is None

    def test_plaintext_is_not_a_container(self, key: bytes):
        plain = b'{"sessions": []}' * 4

        assert not is_encrypted_container(plain)
        assert decrypt_container(plain, key) is None

    def test_bad_magic_returns_none(self, key: bytes):
        sealed = encrypt_container(b"secret", key)

        assert decrypt_container(b"XXXXXXXX" + sealed[len(MAGIC) :], key) is None


class TestKeyDerivation:
    """Test scrypt key derivation and salt handling."""

    def test_derive_key_deterministic(self):
        salt = b"s" * SALT_LENGTH

        first = derive_key("passphrase", salt, n=TEST_SCRYPT_N)
        second = derive_key("passphrase", salt, n=TEST_SCRYPT_N)

        assert first == second
        assert len(first) == 32
        assert derive_key("passphrase", b"t" * SALT_LENGTH, n=TEST_SCRYPT_N) != first
        assert derive_key("other", salt, n=TEST_SCRYPT_N) != first

    def test_salt_created_once(self, temp_dir: Path):
        salt_path = temp_dir / "db.salt"

        salt = load_or_create_salt(salt_path)

        assert len(salt) == SALT_LENGTH
        assert _mode(salt_path) == 0o600
        assert load_or_create_salt(salt_path) == salt

    def test_wrong_length_salt_uses_fallback(self, temp_dir: Path, caplog):
        salt_path = temp_dir / "db.salt"
        salt_path.write_bytes(b"short")

        assert load_or_create_salt(salt_path) == FALLBACK_SALT
        assert salt_path.read_bytes() == b"short"
        assert "fallback salt" in caplog.text

    def test_unpersistable_salt_uses_fallback(self, temp_dir: Path, caplog):
        blocker = temp_dir / "blocker"
        blocker.write_text("file, not directory")

        assert load_or_create_salt(blocker / "db.salt") == FALLBACK_SALT
        assert "fallback salt" in caplog.text


class TestResolveKey:
    """Test key resolution order and degradation."""

    def test_disabled_by_configuration(self, temp_dir: Path):
        settings = _settings(temp_dir, db_encrypt=False)

        assert resolve_key(settings) is None
        assert not settings.get_db_key_path().exists()

    def test_passphrase_from_settings(self, temp_dir: Path):
        settings = _settings(temp_dir, db_key="operator passphrase")

        key = resolve_key(settings)

        salt = settings.get_db_salt_path().read_bytes()
        assert key == derive_key("operator passphrase", salt, n=TEST_SCRYPT_N, r=8, p=1)
        assert not settings.get_db_key_path().exists()

    def test_passphrase_from_environment(self, temp_dir: Path, monkeypatch):
        monkeypatch.setenv("RODOGUARD_DB_KEY", "env passphrase")
        settings = _settings(temp_dir)

        key = resolve_key(settings)

        salt = settings.get_db_salt_path().read_bytes()
        assert key == derive_key("env passphrase", salt, n=TEST_SCRYPT_N, r=8, p=1)

    def test_keyfile_generated_on_first_run(self, temp_dir: Path):
        settings = _settings(temp_dir)

        key = resolve_key(settings)

        key_path = settings.get_db_key_path()
        assert key is not None
        assert len(key) == 32
        assert _mode(key_path) == 0o600
        content = key_path.read_text(encoding="utf-8")
        assert content.endswith("\n")
        assert len(content.strip()) == 64
        assert _mode(settings.get_db_salt_path()) == 0o600

    def test_keyfile_reused(self, temp_dir: Path):
        settings = _settings(temp_dir)
        first = resolve_key(settings)
        contents = settings.get_db_key_path().read_bytes()

        second = resolve_key(_settings(temp_dir))

        assert first == second
        assert settings.get_db_key_path().read_bytes() == contents

    def test_empty_keyfile_degrades_without_overwrite(self, temp_dir: Path, caplog):
        settings = _settings(temp_dir)
        key_path = settings.get_db_key_path()
        key_path.parent.mkdir(parents=True)
        key_path.write_text("\n", encoding="utf-8")

        with caplog.at_level(logging.WARNING, logger="rodoguard.utils.crypto"):
            assert resolve_key(settings) is None

        assert key_path.read_text(encoding="utf-8") == "\n"
        assert "ENCRYPTION DISABLED" in caplog.text

    def test_empty_keyfile_with_required_encryption(self, temp_dir: Path):
        settings = _settings(temp_dir, require_encryption=True)
        key_path = settings.get_db_key_path()
        key_path.parent.mkdir(parents=True)
        key_path.write_text("", encoding="utf-8")

        with pytest.raises(KeyMaterialError):
            resolve_key(settings)

    def test_unwritable_keyfile_location(self, temp_dir: Path):
        blocker = temp_dir / "blocker"
        blocker.write_text("file, not directory")
        key_path = blocker / "db.key"

        assert resolve_key(_settings(temp_dir, db_key_path=key_path)) is None
        with pytest.raises(KeyMaterialError):
            resolve_key(_settings(temp_dir, db_key_path=key_path, require_encryption=True))

    def test_uncreatable_config_dir_with_passphrase(self, temp_dir: Path, caplog):
        blocker = temp_dir / "blocker"
        blocker.write_text("file, not directory")
        settings = Settings(config_dir=blocker / "cfg", db_key="passphrase", scrypt_n=TEST_SCRYPT_N)

        key = resolve_key(settings)

        assert key == derive_key("passphrase", FALLBACK_SALT, n=TEST_SCRYPT_N, r=8, p=1)
        assert "fallback salt" in caplog.text

    def test_uncreatable_config_dir_without_passphrase(self, temp_dir: Path, caplog):
        blocker = temp_dir / "blocker"
        blocker.write_text("file, not directory")
        settings = Settings(config_dir=blocker / "cfg", scrypt_n=TEST_SCRYPT_N)

        with caplog.at_level(logging.WARNING, logger="rodoguard.utils.crypto"):
            assert resolve_key(settings) is None
        assert "ENCRYPTION DISABLED" in caplog.text

        with pytest.raises(KeyMaterialError):
            resolve_key(
                Settings(config_dir=blocker / "cfg", scrypt_n=TEST_SCRYPT_N, require_encryption=True)
            )
