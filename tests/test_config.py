import pytest
from pydantic import ValidationError

from rodoguard.config import Settings, get_settings, set_settings


def test_defaults(tmp_path):
    settings = Settings(data_dir=tmp_path / "data", config_dir=tmp_path / "config")

    assert settings.db_encrypt is True
    assert settings.require_encryption is False
    assert settings.audit_enabled is True
    assert settings.audit_query_default_limit == 100
    assert settings.audit_query_max_limit == 1000
    assert settings.scrypt_n == 2**14
    assert settings.get_audit_path() == tmp_path / "data" / "privacy_audit.jsonl"
    assert settings.get_db_key_path() == tmp_path / "config" / "db.key"
    assert settings.get_db_salt_path() == tmp_path / "config" / "db.salt"
    assert settings.get_store_path("sessions") == tmp_path / "data" / "sessions.enc"


def test_environment_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("RODOGUARD_DATA_DIR", str(tmp_path / "envdata"))
    monkeypatch.setenv("RODOGUARD_DB_ENCRYPT", "false")
    monkeypatch.setenv("RODOGUARD_AUDIT_QUERY_MAX_LIMIT", "50")

    settings = Settings()

    assert settings.db_encrypt is False
    assert settings.audit_query_max_limit == 50
    assert settings.get_data_dir() == tmp_path / "envdata"
    assert (tmp_path / "envdata").is_dir()


def test_xdg_directories(tmp_path, monkeypatch):
    monkeypatch.delenv("RODOGUARD_DATA_DIR", raising=False)
    monkeypatch.delenv("RODOGUARD_CONFIG_DIR", raising=False)
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))

    settings = Settings()

    assert settings.get_data_dir() == tmp_path / "xdg-data" / "rodoguard"
    assert settings.get_config_dir() == tmp_path / "xdg-config" / "rodoguard"


def test_passphrase_accessor(tmp_path):
    assert Settings(config_dir=tmp_path, db_key="  secret  ").get_db_passphrase() == "secret"
    assert Settings(config_dir=tmp_path, db_key="   ").get_db_passphrase() is None
    assert Settings(config_dir=tmp_path).get_db_passphrase() is None


def test_passphrase_not_exposed_in_repr(tmp_path):
    settings = Settings(config_dir=tmp_path, db_key="very-secret-passphrase")

    assert "very-secret-passphrase" not in repr(settings)


def test_audit_limit_clamping(tmp_path):
    settings = Settings(data_dir=tmp_path)

    assert settings.clamp_audit_limit(None) == 100
    assert settings.clamp_audit_limit(0) == 1
    assert settings.clamp_audit_limit(250) == 250
    assert settings.clamp_audit_limit(99999) == 1000


def test_default_limit_never_exceeds_max(tmp_path):
    settings = Settings(
        data_dir=tmp_path,
        audit_query_default_limit=500,
        audit_query_max_limit=20,
    )

    assert settings.audit_query_default_limit == 20
    assert settings.clamp_audit_limit(None) == 20


def test_scrypt_n_must_be_power_of_two(tmp_path, monkeypatch):
    assert Settings(config_dir=tmp_path, scrypt_n=2**10).scrypt_n == 1024

    with pytest.raises(ValidationError):
        Settings(config_dir=tmp_path, scrypt_n=1000)

    monkeypatch.setenv("RODOGUARD_SCRYPT_N", "1000")
    with pytest.raises(ValidationError):
        Settings(config_dir=tmp_path)


def test_key_paths_do_not_create_config_dir(tmp_path):
    settings = Settings(config_dir=tmp_path / "config")

    assert settings.get_db_key_path() == tmp_path / "config" / "db.key"
    assert settings.get_db_salt_path() == tmp_path / "config" / "db.salt"
    assert not (tmp_path / "config").exists()


def test_audit_hmac_key_persisted(tmp_path):
    settings = Settings(config_dir=tmp_path / "config")

    key = settings.get_audit_hmac_key()

    assert len(key) == 32
    assert (tmp_path / "config" / "audit-ledger.key").exists()
    assert Settings(config_dir=tmp_path / "config").get_audit_hmac_key() == key


def test_global_settings_override(tmp_path):
    import rodoguard.config as config_module

    original = config_module._settings
    custom = Settings(data_dir=tmp_path)
    try:
        set_settings(custom)
        assert get_settings() is custom
    finally:
        config_module._settings = original
