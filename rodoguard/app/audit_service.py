"""Privacy audit orchestration: record decisions, query for compliance reports."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from rodoguard.app.ports.ledger import LedgerPort
from rodoguard.audit.ledger import AuditEntry, AuditQuery, PrivacyAction, PrivacyAuditLedger
from rodoguard.config import Settings, get_settings

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AuditService:
    """Record privacy decisions without ever blocking the caller."""

    ledger: LedgerPort | None
    max_limit: int = 1000
    default_limit: int = 100

    @classmethod
    def from_settings(cls, settings: Settings) -> AuditService:
        """Build a service backed by the configured ledger (or disabled)."""
        ledger: LedgerPort | None = None
        if settings.audit_enabled:
            try:
                ledger = PrivacyAuditLedger(
                    settings.get_audit_path(),
                    hmac_key=settings.get_audit_hmac_key(),
                )
            except (OSError, ValueError) as exc:
                logger.warning("Privacy audit ledger unavailable: %s", exc)
        return cls(
            ledger=ledger,
            max_limit=settings.audit_query_max_limit,
            default_limit=settings.audit_query_default_limit,
        )

    def is_enabled(self) -> bool:
        """Return True when audit entries are persisted."""
        return self.ledger is not None

    def record(self, entry: AuditEntry) -> None:
        """Record ``entry``. Never raises; persistence failures are logged."""
        logger.info(
            "Audit: %s",
            entry.action.value,
            extra={
                "audit": True,
                "action": entry.action.value,
                "reason": entry.reason,
                "pii_match_count": entry.pii_match_count,
                "pii_kinds": [kind.value for kind in entry.pii_kinds or []],
                "anonymization_count": entry.anonymization_count,
                "privacy_mode": entry.privacy_mode,
                "provider": entry.provider,
            },
        )
        if self.ledger is None:
            return
        try:
            self.ledger.append(entry)
        except Exception as exc:  # noqa: BLE001 - audit failure must not block callers
            logger.warning("Failed to persist audit log entry: %s", exc)

    def query(self, filters: AuditQuery | None = None) -> list[AuditEntry]:
        """Return matching entries newest first; empty list on failure."""
        if self.ledger is None:
            return []
        filters = filters or AuditQuery(limit=self.default_limit)
        limit = max(1, min(filters.limit, self.max_limit))
        if limit != filters.limit:
            filters = filters.model_copy(update={"limit": limit})
        try:
            return self.ledger.query(filters)
        except Exception as exc:  # noqa: BLE001 - reporting degrades to empty
            logger.warning("Privacy audit query failed: %s", exc)
            return []

    def verify(self) -> tuple[bool, str | None]:
        """Verify ledger integrity, treating a disabled ledger as valid."""
        if self.ledger is None:
            return True, None
        return self.ledger.verify()


# Global audit service instance
_service: AuditService | None = None


def get_audit_service() -> AuditService:
    """Get or create the process-wide audit service."""
    global _service
    if _service is None:
        _service = AuditService.from_settings(get_settings())
    return _service


def set_audit_service(service: AuditService | None) -> None:
    """Replace the process-wide audit service (useful for testing)."""
    global _service
    _service = service


def record(entry: AuditEntry | None = None, /, **fields: Any) -> None:
    """Record a privacy decision with the process-wide audit service.

    Accepts either a built :class:`AuditEntry` or its fields as keywords.
    Never raises, including for invalid field values.
    """
    try:
        if entry is None:
            entry = AuditEntry(**fields)
        service = get_audit_service()
    except Exception as exc:  # noqa: BLE001 - audit failure must not block callers
        logger.warning("Discarding audit entry: %s", exc)
        return
    service.record(entry)


def query(
    *,
    action: PrivacyAction | str | None = None,
    session_ref: str | None = None,
    user_ref: str | None = None,
    since: datetime | None = None,
    limit: int | None = None,
) -> list[AuditEntry]:
    """Query the process-wide audit ledger, newest first."""
    service = get_audit_service()
    filters = AuditQuery(
        action=action,
        session_ref=session_ref,
        user_ref=user_ref,
        since=since,
        limit=service.default_limit if limit is None else limit,
    )
    return service.query(filters)
