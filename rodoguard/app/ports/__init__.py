"""Port interfaces for the RodoGuard application layer.

These protocol interfaces define contracts for adapters.
Application logic depends on these ports, never on concrete implementations.
"""

__all__ = [
    "DetectionResult",
    "DetectorPort",
    "LedgerPort",
    "PiiKind",
    "PiiSpan",
]

from rodoguard.app.ports.ledger import LedgerPort
from rodoguard.app.ports.pii import DetectionResult, DetectorPort, PiiKind, PiiSpan
