"""Pytest configuration and fixtures."""

import gc
import shutil
import tempfile
import time
from collections.abc import Generator
from pathlib import Path

import pytest

from rodoguard.config import Settings

# Low scrypt cost keeps key derivation fast in tests.
TEST_SCRYPT_N = 2**10


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        # Force garbage collection to release any file handles
        gc.collect()
        time.sleep(0.05)
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def hmac_key() -> bytes:
    """Fixed signing key for ledger tests."""
    return b"k" * 32


@pytest.fixture
def override_settings(temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide isolated RodoGuard settings scoped to tests."""

    import rodoguard.app.audit_service as audit_service_module
    import rodoguard.config as config_module

    original_settings = getattr(config_module, "_settings", None)
    original_service = getattr(audit_service_module, "_service", None)

    data_dir = temp_dir / "appdata"
    config_dir = temp_dir / "appconfig"
    data_dir.mkdir(parents=True, exist_ok=True)
    config_dir.mkdir(parents=True, exist_ok=True)

    settings = config_module.Settings(
        data_dir=data_dir,
        config_dir=config_dir,
        audit_enabled=True,
        scrypt_n=TEST_SCRYPT_N,
    )

    config_module._settings = settings
    audit_service_module._service = None

    try:
        yield settings
    finally:
        config_module._settings = original_settings
        audit_service_module._service = original_service


@pytest.fixture
def sample_legal_text() -> str:
    """A short client note containing several kinds of personal data."""
    return (
        "Klient: Jan Kowalski, PESEL 92010112343, "
        "e-mail jan.kowalski@example.pl, tel. +48 601 234 567."
    )
