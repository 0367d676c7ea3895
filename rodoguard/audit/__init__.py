"""Privacy audit trail: decision records without personal data."""

from rodoguard.audit.ledger import (
    AuditEntry,
    AuditQuery,
    LedgerRecord,
    PrivacyAction,
    PrivacyAuditLedger,
)

__all__ = [
    "AuditEntry",
    "AuditQuery",
    "LedgerRecord",
    "PrivacyAction",
    "PrivacyAuditLedger",
]
