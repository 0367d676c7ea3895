"""Append-only privacy audit ledger with hash chaining for tamper evidence.

Entries record *that* a privacy decision was made (action, counts, kinds,
operator-authored reason). They never carry the detected values themselves:
free-text fields are passed through PII redaction when an entry is built.
Stored records are read back verbatim so their hashes still verify.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import os
import threading
from datetime import UTC, datetime
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationInfo, field_validator

from rodoguard import __version__
from rodoguard.app.adapters.pii_regex import redact_text
from rodoguard.app.ports.pii import PiiKind
from rodoguard.utils.crypto import load_or_create_hmac_key

GENESIS_HASH = "0" * 64
GENESIS_SIGNATURE = "0" * 64
MAX_QUERY_LIMIT = 1000
DEFAULT_QUERY_LIMIT = 100

# Validation context marking records parsed back from disk
STORED_CONTEXT = {"stored": True}


class PrivacyAction(str, Enum):
    """Kinds of privacy decisions recorded in the ledger."""

    ROUTE_LOCAL = "route_local"
    ROUTE_CLOUD = "route_cloud"
    ROUTE_CLOUD_ANON = "route_cloud_anon"
    ROUTE_REFUSE = "route_refuse"
    ANONYMIZE = "anonymize"
    SESSION_LOCK = "session_lock"
    SESSION_PURGE = "session_purge"
    GDPR_DELETE = "gdpr_delete"
    CONSENT_RECORD = "consent_record"
    CONSENT_CHECK = "consent_check"
    CONSENT_REVOKE = "consent_revoke"
    MODE_CHANGE = "mode_change"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class AuditEntry(BaseModel):
    """A single privacy decision. Immutable once built.

    No field can hold a detected value. ``reason``, ``privacy_mode`` and
    ``provider`` are redacted on construction in case a caller passes one
    anyway; the ``*_ref`` fields are opaque identifiers kept as given.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    action: PrivacyAction
    reason: str = Field(..., description="Operator-authored reason for the decision")
    session_ref: str | None = Field(default=None, description="Opaque session reference")
    user_ref: str | None = Field(default=None, description="Opaque user reference")
    case_ref: str | None = Field(default=None, description="Opaque case reference")
    pii_match_count: int | None = Field(default=None, ge=0)
    pii_kinds: list[PiiKind] | None = Field(default=None)
    anonymization_count: int | None = Field(default=None, ge=0)
    privacy_mode: str | None = Field(default=None)
    provider: str | None = Field(default=None)
    timestamp: datetime = Field(default_factory=_utcnow, description="UTC time of decision")

    @field_validator("reason", "privacy_mode", "provider")
    @classmethod
    def _redact_free_text(cls, value: str | None, info: ValidationInfo) -> str | None:
        if value is None or (info.context or {}).get("stored"):
            return value
        return redact_text(value)

    @field_validator("timestamp")
    @classmethod
    def _normalize_timestamp(cls, value: datetime) -> datetime:
        return _as_utc(value)


class LedgerRecord(BaseModel):
    """An audit entry as sealed on disk, linked into the hash chain."""

    sequence: int = Field(..., ge=1, description="Monotonic sequence number starting at 1")
    previous_hash: str = Field(default=GENESIS_HASH, description="Hash of previous record")
    entry: AuditEntry
    producer: str = Field(default_factory=lambda: f"rodoguard-{__version__}")
    entry_hash: str | None = Field(default=None)
    signature: str | None = Field(default=None)

    def compute_hash(self) -> str:
        """Compute deterministic hash of record content.

        Returns:
            SHA-256 hash of the record (excluding entry_hash and signature)
        """
        data = self.model_dump(
            mode="json",
            exclude={"entry_hash", "signature"},
            exclude_none=True,
        )
        content = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(content.encode("utf-8")).hexdigest()


class AuditQuery(BaseModel):
    """Filters for compliance reporting queries."""

    action: PrivacyAction | None = None
    session_ref: str | None = None
    user_ref: str | None = None
    since: datetime | None = None
    limit: int = DEFAULT_QUERY_LIMIT

    @field_validator("limit", mode="before")
    @classmethod
    def _clamp_limit(cls, value: Any) -> int:
        if value is None:
            return DEFAULT_QUERY_LIMIT
        return max(1, min(int(value), MAX_QUERY_LIMIT))

    @field_validator("since")
    @classmethod
    def _normalize_since(cls, value: datetime | None) -> datetime | None:
        return None if value is None else _as_utc(value)

    def matches(self, entry: AuditEntry) -> bool:
        if self.action is not None and entry.action != self.action:
            return False
        if self.session_ref is not None and entry.session_ref != self.session_ref:
            return False
        if self.user_ref is not None and entry.user_ref != self.user_ref:
            return False
        if self.since is not None and entry.timestamp < self.since:
            return False
        return True


class PrivacyAuditLedger:
    """Append-only privacy audit ledger.

    Records are stored as JSONL (one JSON object per line), linked in a hash
    chain and sealed with HMAC signatures. Appends are serialized by a lock;
    reads open the file independently and skip a final line that is still
    being written.
    """

    def __init__(self, ledger_path: Path, *, hmac_key: bytes | None = None) -> None:
        """Initialize audit ledger.

        Args:
            ledger_path: Path to JSONL ledger file
            hmac_key: Optional signing key (defaults to an on-disk secret)
        """
        self.ledger_path = ledger_path
        self.ledger_path.parent.mkdir(parents=True, exist_ok=True)

        self._metadata_path = ledger_path.with_suffix(".meta")
        if hmac_key is None:
            self._hmac_key = load_or_create_hmac_key(ledger_path.with_suffix(".key"), length=32)
        else:
            self._hmac_key = hmac_key

        self._lock = threading.Lock()
        self._last_hash = GENESIS_HASH
        self._last_sequence = 0
        self._last_signature = GENESIS_SIGNATURE

        self._bootstrap_state()

    # ---------------------------------------------------------------------#
    # Internal helpers
    # ---------------------------------------------------------------------#

    def _bootstrap_state(self) -> None:
        """Restore last known hash/sequence/signature state from ledger."""
        records = self._read_records(strict=True)

        if records:
            last = records[-1]
            self._last_hash = last.entry_hash or GENESIS_HASH
            self._last_sequence = last.sequence
            self._last_signature = last.signature or GENESIS_SIGNATURE

        try:
            metadata = self._load_metadata()
        except ValueError:
            # Leave invalid metadata untouched so verify() surfaces it.
            return
        if metadata is None:
            last_hash = None if self._last_sequence == 0 else self._last_hash
            self._write_metadata(self._last_sequence, last_hash)

    def _read_records(self, *, strict: bool) -> list[LedgerRecord]:
        """Load ledger records from disk.

        With ``strict=False`` an unterminated final line (a write in
        progress) is ignored instead of raising.
        """
        try:
            raw = self.ledger_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []

        lines = raw.split("\n")
        pending = lines.pop()  # text after the last newline, if any

        records: list[LedgerRecord] = []
        for line_num, line in enumerate(lines, 1):
            line = line.strip()
            if not line:
                continue
            try:
                records.append(LedgerRecord.model_validate_json(line, context=STORED_CONTEXT))
            except Exception as exc:
                raise ValueError(
                    f"Invalid entry at line {line_num} in {self.ledger_path}: {exc}"
                ) from exc

        if pending.strip() and strict:
            raise ValueError(f"Unterminated final entry in {self.ledger_path}")
        return records

    def _compute_signature(self, record: LedgerRecord, previous_signature: str) -> str:
        payload = "|".join(
            [
                str(record.sequence),
                record.previous_hash,
                record.entry_hash or "",
                previous_signature,
            ]
        ).encode("utf-8")
        return hmac.new(self._hmac_key, payload, hashlib.sha256).hexdigest()

    def _compute_metadata_hmac(self, last_sequence: int, last_hash: str | None) -> str:
        payload = f"{last_sequence}:{last_hash or GENESIS_HASH}".encode("utf-8")
        return hmac.new(self._hmac_key, payload, hashlib.sha256).hexdigest()

    def _write_metadata(self, last_sequence: int, last_hash: str | None) -> None:
        """Persist metadata describing the current tip of the ledger."""
        payload = {
            "version": 1,
            "last_sequence": last_sequence,
            "last_hash": last_hash,
            "hmac": self._compute_metadata_hmac(last_sequence, last_hash),
        }
        data = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")

        fd = os.open(self._metadata_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            os.write(fd, data)
            os.fsync(fd)
        finally:
            os.close(fd)

    def _load_metadata(self) -> dict[str, Any] | None:
        try:
            raw = self._metadata_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        data = json.loads(raw)
        expected_hmac = self._compute_metadata_hmac(
            int(data.get("last_sequence", 0)), data.get("last_hash")
        )
        actual_hmac = data.get("hmac")
        if not isinstance(actual_hmac, str) or not hmac.compare_digest(expected_hmac, actual_hmac):
            raise ValueError("Audit metadata HMAC mismatch")
        return data

    # ---------------------------------------------------------------------#
    # Public API
    # ---------------------------------------------------------------------#

    def append(self, entry: AuditEntry) -> LedgerRecord:
        """Seal ``entry`` and append it to the ledger.

        Raises:
            OSError: If the ledger cannot be written.
        """
        with self._lock:
            record = LedgerRecord(
                sequence=self._last_sequence + 1,
                previous_hash=self._last_hash,
                entry=entry,
            )
            record.entry_hash = record.compute_hash()
            record.signature = self._compute_signature(record, self._last_signature)

            with open(self.ledger_path, "a", encoding="utf-8") as fh:
                fh.write(record.model_dump_json() + "\n")
                fh.flush()
                os.fsync(fh.fileno())

            self._last_sequence = record.sequence
            self._last_hash = record.entry_hash
            self._last_signature = record.signature
            self._write_metadata(record.sequence, record.entry_hash)

        return record

    def read_all(self) -> list[LedgerRecord]:
        """Read all committed records in chronological order."""
        return self._read_records(strict=False)

    def query(self, filters: AuditQuery | None = None) -> list[AuditEntry]:
        """Return matching entries, newest first, at most ``filters.limit``."""
        filters = filters or AuditQuery()
        matched = [
            record.entry for record in reversed(self.read_all()) if filters.matches(record.entry)
        ]
        matched.sort(key=lambda entry: entry.timestamp, reverse=True)
        return matched[: filters.limit]

    def verify(self) -> tuple[bool, str | None]:
        """Verify integrity of hash chain and metadata.

        Returns:
            Tuple of (is_valid, error_message). error_message is None if valid.
        """
        try:
            metadata = self._load_metadata()
        except ValueError as exc:
            return False, f"Audit metadata integrity failure: {exc}"

        try:
            records = self._read_records(strict=True)
        except ValueError as exc:
            return False, str(exc)

        if not records:
            if metadata and metadata.get("last_sequence", 0) > 0:
                return False, "Audit ledger appears truncated (no entries but metadata expects data)."
            return True, None

        previous_hash = GENESIS_HASH
        previous_signature = GENESIS_SIGNATURE

        for idx, record in enumerate(records, 1):
            if record.entry_hash is None or record.signature is None:
                return False, f"Entry {idx} is not sealed; ledger corrupted or tampered."

            expected_hash = record.compute_hash()
            if not hmac.compare_digest(record.entry_hash, expected_hash):
                return False, f"Entry {idx} has invalid hash; content was modified."

            if record.previous_hash != previous_hash:
                return False, f"Entry {idx} breaks hash chain."

            expected_signature = self._compute_signature(record, previous_signature)
            if not hmac.compare_digest(record.signature, expected_signature):
                return False, f"Entry {idx} has invalid signature; ledger may have been tampered."

            if record.sequence != idx:
                return False, f"Entry {idx} sequence mismatch (got {record.sequence})."

            previous_hash = record.entry_hash
            previous_signature = record.signature

        if metadata is None:
            return False, "Audit metadata file is missing."

        last = records[-1]
        if int(metadata.get("last_sequence", 0)) != last.sequence:
            return False, "Ledger metadata sequence mismatch; possible truncation."
        if metadata.get("last_hash") != last.entry_hash:
            return False, "Ledger metadata hash mismatch; possible truncation or tampering detected."

        return True, None
