"""Ledger port interface for the privacy audit trail."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:  # pragma: no cover
    from rodoguard.audit.ledger import AuditEntry, AuditQuery, LedgerRecord


class LedgerPort(Protocol):
    """Persistence for privacy decisions.

    Implementations keep entries append-only and tamper-evident, and must
    never store detected personal data values.

    Side effects: Writes to the local ledger file (offline).
    """

    def append(self, entry: AuditEntry) -> LedgerRecord:
        """Seal ``entry`` and append it.

        Raises:
            OSError: If the entry cannot be persisted
        """
        ...

    def query(self, filters: AuditQuery | None = None) -> list[AuditEntry]:
        """Return matching entries, newest first."""
        ...

    def verify(self) -> tuple[bool, str | None]:
        """Re-walk the chain; returns ``(is_valid, error_message)``."""
        ...
