"""Public surface of the privacy protection engine.

Routers and session layers import from here:

    from rodoguard.privacy import Anonymizer, detect, record

Create one :class:`Anonymizer` per request; never keep it across requests.
"""

from rodoguard.app.adapters.names import contains_polish_name, find_polish_names, match_polish_name
from rodoguard.app.adapters.pii_regex import contains_sensitive_data, detect, redact_text
from rodoguard.app.anonymizer import Anonymizer, strip_residual_placeholders
from rodoguard.app.audit_service import query, record
from rodoguard.app.ports.pii import DetectionResult, PiiKind, PiiSpan
from rodoguard.audit.ledger import AuditEntry, PrivacyAction
from rodoguard.utils.crypto import (
    KeyMaterialError,
    decrypt_container,
    encrypt_container,
    is_encrypted_container,
    resolve_key,
)

__all__ = [
    "Anonymizer",
    "AuditEntry",
    "DetectionResult",
    "KeyMaterialError",
    "PiiKind",
    "PiiSpan",
    "PrivacyAction",
    "contains_polish_name",
    "contains_sensitive_data",
    "decrypt_container",
    "detect",
    "encrypt_container",
    "find_polish_names",
    "is_encrypted_container",
    "match_polish_name",
    "query",
    "record",
    "redact_text",
    "resolve_key",
    "strip_residual_placeholders",
]
