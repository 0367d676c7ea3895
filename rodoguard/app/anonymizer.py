"""Per-scope bidirectional PII <-> placeholder replacement.

Create a NEW :class:`Anonymizer` for each request or message turn and drop it
when the turn ends. Sharing one instance across sessions or users would leak
value mappings between them.
"""

from __future__ import annotations

import logging
import re

from rodoguard.app.adapters.pii_regex import PolishPIIRegexAdapter, resolve_overlaps
from rodoguard.app.ports.pii import DetectorPort, PiiKind

logger = logging.getLogger(__name__)

PLACEHOLDER_PREFIX = "RODO"

PLACEHOLDER_LABELS: dict[PiiKind, str] = {
    PiiKind.PESEL: "PESEL",
    PiiKind.NIP: "NIP",
    PiiKind.REGON: "REGON",
    PiiKind.IBAN: "IBAN",
    PiiKind.PHONE: "TEL",
    PiiKind.EMAIL: "EMAIL",
    PiiKind.POSTAL_CODE: "KOD",
    PiiKind.CASE_SIGNATURE: "SYGN",
    PiiKind.PERSON_NAME: "OSOBA",
    PiiKind.ADDRESS: "ADRES",
    PiiKind.COMPANY_NAME: "FIRMA",
    PiiKind.ID_DOCUMENT: "DOKUMENT",
}

RESIDUAL_PLACEHOLDER_RE = re.compile(rf"<<{PLACEHOLDER_PREFIX}_[A-Z]+_\d+>>")
RESIDUAL_REPLACEMENT = "[dane osobowe]"

_STRIP_SEPARATOR_KINDS = frozenset(
    {PiiKind.PESEL, PiiKind.NIP, PiiKind.REGON, PiiKind.PHONE, PiiKind.IBAN}
)
_TRIM_KINDS = frozenset({PiiKind.PERSON_NAME, PiiKind.COMPANY_NAME})
_SEPARATORS_RE = re.compile(r"[-\s]")


def format_placeholder(kind: PiiKind, counter: int) -> str:
    return f"<<{PLACEHOLDER_PREFIX}_{PLACEHOLDER_LABELS[kind]}_{counter}>>"


def normalize_value(kind: PiiKind, value: str) -> str:
    """Normalize a raw value so different spellings share one placeholder."""
    if kind in _STRIP_SEPARATOR_KINDS:
        return _SEPARATORS_RE.sub("", value)
    if kind in _TRIM_KINDS:
        return value.strip()
    return value


def strip_residual_placeholders(text: str) -> str:
    """Replace placeholders that could not be restored with a neutral marker.

    A remote processor may rewrite a placeholder so it no longer matches any
    known mapping; such leftovers are replaced rather than shown to the user.
    """
    if f"<<{PLACEHOLDER_PREFIX}_" not in text:
        return text
    cleaned, count = RESIDUAL_PLACEHOLDER_RE.subn(RESIDUAL_REPLACEMENT, text)
    if count:
        logger.warning("Stripped %d residual placeholder(s) after deanonymization", count)
    return cleaned


class Anonymizer:
    """Per-scope bidirectional anonymizer.

    The same original value always maps to the same placeholder within one
    instance; placeholders are ``<<RODO_{LABEL}_{n}>>`` with a per-kind
    counter starting at 1.
    """

    def __init__(self, detector: DetectorPort | None = None) -> None:
        self._detector: DetectorPort = detector or PolishPIIRegexAdapter()
        # original (raw and normalized forms) -> placeholder
        self._forward: dict[str, str] = {}
        # placeholder -> first-seen original
        self._reverse: dict[str, str] = {}
        self._counters: dict[PiiKind, int] = {}

    def anonymize(self, text: str) -> str:
        """Replace all detected PII in ``text`` with consistent placeholders."""
        result = self._detector.detect(text)
        if not result.has_pii:
            return text

        out = text
        # Back-to-front so earlier offsets stay valid after each splice
        for span in reversed(resolve_overlaps(result.spans)):
            placeholder = self._get_or_create_placeholder(span.kind, span.raw_value)
            out = out[: span.start] + placeholder + out[span.end :]
        return out

    def deanonymize(self, text: str) -> str:
        """Restore known placeholders in ``text`` (best effort)."""
        out = text
        # Longest first so a placeholder never matches inside a longer one
        for placeholder in sorted(self._reverse, key=len, reverse=True):
            if placeholder in out:
                out = out.replace(placeholder, self._reverse[placeholder])
        return out

    @property
    def has_replacements(self) -> bool:
        return bool(self._reverse)

    @property
    def mapping_count(self) -> int:
        """Number of distinct placeholders issued. For logging only."""
        return len(self._reverse)

    def kind_counts(self) -> dict[PiiKind, int]:
        """Number of placeholders issued per kind. For audit metadata only."""
        return dict(self._counters)

    def _get_or_create_placeholder(self, kind: PiiKind, value: str) -> str:
        normalized = normalize_value(kind, value)
        existing = self._forward.get(value) or self._forward.get(normalized)
        if existing is not None:
            self._forward.setdefault(value, existing)
            return existing

        count = self._counters.get(kind, 0) + 1
        self._counters[kind] = count
        placeholder = format_placeholder(kind, count)

        self._forward[value] = placeholder
        if normalized != value:
            self._forward[normalized] = placeholder
        self._reverse[placeholder] = value
        return placeholder
