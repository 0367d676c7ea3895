"""PII port interface for personal data detection in Polish legal text."""

from enum import Enum
from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field


class PiiKind(str, Enum):
    """Closed set of personal data kinds the detector reports."""

    PESEL = "pesel"
    NIP = "nip"
    REGON = "regon"
    IBAN = "iban"
    PHONE = "phone"
    EMAIL = "email"
    POSTAL_CODE = "postal_code"
    CASE_SIGNATURE = "case_signature"
    PERSON_NAME = "person_name"
    ADDRESS = "address"
    COMPANY_NAME = "company_name"
    ID_DOCUMENT = "id_document"


class PiiSpan(BaseModel):
    """A detected sensitive value and its position in the source text."""

    model_config = ConfigDict(frozen=True)

    kind: PiiKind
    raw_value: str = Field(..., min_length=1)
    start: int = Field(..., ge=0, description="Character offset into the original text")

    @property
    def end(self) -> int:
        return self.start + len(self.raw_value)

    def overlaps(self, other: "PiiSpan") -> bool:
        return self.start < other.end and other.start < self.end


class DetectionResult(BaseModel):
    """Outcome of scanning one text. Derived, never persisted."""

    model_config = ConfigDict(frozen=True)

    spans: list[PiiSpan] = Field(default_factory=list)
    matched_keywords: list[str] = Field(default_factory=list)

    @property
    def has_pii(self) -> bool:
        return bool(self.spans)

    @property
    def has_sensitive_keywords(self) -> bool:
        return bool(self.matched_keywords)

    @property
    def has_sensitive_data(self) -> bool:
        return self.has_pii or self.has_sensitive_keywords

    @property
    def kinds(self) -> list[PiiKind]:
        """Distinct span kinds in first-seen order."""
        return list(dict.fromkeys(span.kind for span in self.spans))


class DetectorPort(Protocol):
    """Port interface for PII detection.

    Adapters: Polish regex + name dictionary detector.

    Side effects: None (pure analysis, safe to call concurrently).
    """

    def detect(self, text: str) -> DetectionResult:
        """Scan ``text`` for PII spans and sensitivity keywords."""
        ...

    def contains_sensitive_data(self, text: str) -> bool:
        """Return True as soon as any span or keyword is found."""
        ...
