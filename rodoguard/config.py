"""RodoGuard settings loaded from ``RODOGUARD_*`` variables, ``.env`` and XDG paths."""

import logging
import os
from pathlib import Path
from typing import Any

from pydantic import Field, PrivateAttr, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from rodoguard.utils.crypto import load_or_create_hmac_key

logger = logging.getLogger(__name__)

APP_DIR_NAME = "rodoguard"


def _xdg_base(env_var: str, *default: str) -> Path:
    value = os.getenv(env_var)
    return Path(value) if value else Path.home().joinpath(*default)


def get_xdg_data_home() -> Path:
    """Return ``$XDG_DATA_HOME`` or ``~/.local/share``."""
    return _xdg_base("XDG_DATA_HOME", ".local", "share")


def get_xdg_config_home() -> Path:
    """Return ``$XDG_CONFIG_HOME`` or ``~/.config``."""
    return _xdg_base("XDG_CONFIG_HOME", ".config")


class Settings(BaseSettings):
    """RodoGuard configuration settings.

    Precedence: CLI flag > environment variable > .env file > defaults.
    """

    model_config = SettingsConfigDict(
        env_prefix="RODOGUARD_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Data directories
    data_dir: Path | None = Field(
        default=None,
        description="Override data directory (defaults to XDG_DATA_HOME/rodoguard)",
    )

    config_dir: Path | None = Field(
        default=None,
        description="Override config directory (defaults to XDG_CONFIG_HOME/rodoguard)",
    )

    # Encryption at rest
    db_encrypt: bool = Field(
        default=True,
        description="Encrypt the persisted data store (RODOGUARD_DB_ENCRYPT=false disables)",
    )

    db_key: SecretStr | None = Field(
        default=None,
        description="Operator-supplied passphrase for store encryption",
    )

    db_key_path: Path | None = Field(
        default=None,
        description="Location of the generated passphrase keyfile",
    )

    db_salt_path: Path | None = Field(
        default=None,
        description="Location of the per-installation key derivation salt",
    )

    require_encryption: bool = Field(
        default=False,
        description="Fail instead of running unencrypted when key material is unavailable",
    )

    scrypt_n: int = Field(
        default=2**14,
        ge=2,
        description="scrypt CPU/memory cost parameter (power of two)",
    )

    scrypt_r: int = Field(default=8, ge=1, description="scrypt block size parameter")

    scrypt_p: int = Field(default=1, ge=1, description="scrypt parallelization parameter")

    @field_validator("scrypt_n")
    @classmethod
    def _check_scrypt_n(cls, value: int) -> int:
        if value & (value - 1):
            raise ValueError("scrypt_n must be a power of two")
        return value

    # Audit settings
    audit_enabled: bool = Field(
        default=True,
        description="Enable append-only privacy audit ledger",
    )

    audit_path: Path | None = Field(
        default=None,
        description="Override location of the privacy audit ledger",
    )

    audit_hmac_key_path: Path | None = Field(
        default=None,
        description="Location of the audit ledger HMAC key for tamper detection",
    )

    audit_query_default_limit: int = Field(
        default=100,
        ge=1,
        description="Number of audit entries returned when no limit is given",
    )

    audit_query_max_limit: int = Field(
        default=1000,
        ge=1,
        description="Upper bound applied to audit query limits",
    )

    _data_dir_cache: Path | None = PrivateAttr(default=None)

    def model_post_init(self, __context: Any) -> None:
        super().model_post_init(__context)
        if self.audit_query_default_limit > self.audit_query_max_limit:
            object.__setattr__(self, "audit_query_default_limit", self.audit_query_max_limit)

    def get_data_dir(self) -> Path:
        """Return the data directory (ledger, stores), creating it on first use.

        An unwritable XDG location falls back to ``./.rodoguard-data``.
        """
        if self._data_dir_cache is None:
            self._data_dir_cache = self._ensure_data_dir()
        return self._data_dir_cache

    def _ensure_data_dir(self) -> Path:
        if self.data_dir:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            return self.data_dir

        xdg_dir = get_xdg_data_home() / APP_DIR_NAME
        try:
            xdg_dir.mkdir(parents=True, exist_ok=True)
        except PermissionError as exc:
            local_dir = Path.cwd() / ".rodoguard-data"
            local_dir.mkdir(parents=True, exist_ok=True)
            logger.warning(
                "Data directory %s is not writable (%s); using %s. "
                "Set RODOGUARD_DATA_DIR to choose another location.",
                xdg_dir,
                exc,
                local_dir,
            )
            return local_dir
        return xdg_dir

    def get_config_dir(self, *, create: bool = True) -> Path:
        """Return the config directory (keys, salt), creating it unless ``create`` is False."""
        config_dir = self.config_dir or get_xdg_config_home() / APP_DIR_NAME
        if create:
            config_dir.mkdir(parents=True, exist_ok=True)
        return config_dir

    def get_audit_path(self) -> Path:
        """Return the privacy audit ledger location."""
        return self.audit_path or self.get_data_dir() / "privacy_audit.jsonl"

    def get_audit_hmac_key(self) -> bytes:
        """Return the key sealing audit records, generating it on first use."""
        key_path = self.audit_hmac_key_path or self.get_config_dir() / "audit-ledger.key"
        return load_or_create_hmac_key(key_path)

    def get_db_key_path(self) -> Path:
        """Return the location of the generated store passphrase. Creates nothing."""
        if self.db_key_path is not None:
            return self.db_key_path
        return self.get_config_dir(create=False) / "db.key"

    def get_db_salt_path(self) -> Path:
        """Return the location of the key derivation salt. Creates nothing."""
        if self.db_salt_path is not None:
            return self.db_salt_path
        return self.get_config_dir(create=False) / "db.salt"

    def get_db_passphrase(self) -> str | None:
        """Return the operator-supplied passphrase, if any."""
        if self.db_key is None:
            return None
        value = self.db_key.get_secret_value().strip()
        return value or None

    def get_store_path(self, name: str) -> Path:
        """Return the path of a named encrypted store file."""
        return self.get_data_dir() / f"{name}.enc"

    def clamp_audit_limit(self, limit: int | None) -> int:
        """Clamp a requested audit query limit into the configured bounds."""
        if limit is None:
            limit = self.audit_query_default_limit
        return max(1, min(limit, self.audit_query_max_limit))


# Process-wide settings, replaced by tests through set_settings()
_settings: Settings | None = None


def get_settings() -> Settings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def set_settings(settings: Settings) -> None:
    """Replace the process-wide settings."""
    global _settings
    _settings = settings
