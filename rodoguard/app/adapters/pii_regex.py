"""PII detection adapter using regex patterns and Polish name dictionaries."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from typing import Any

from rodoguard.app.adapters.names import LOWER, UPPER, find_polish_names
from rodoguard.app.ports.pii import DetectionResult, PiiKind, PiiSpan

PESEL_WEIGHTS = (1, 3, 7, 9, 1, 3, 7, 9, 1, 3)

LEGAL_ROLES = (
    "Klientka", "Klient", "Powódka", "Powód", "Pozwana", "Pozwany",
    "Pełnomocnik", "Wnioskodawczyni", "Wnioskodawca", "Uczestniczka", "Uczestnik",
    "Dłużniczka", "Dłużnik", "Wierzycielka", "Wierzyciel", "Spadkodawczyni",
    "Spadkodawca", "Spadkobierczyni", "Spadkobierca", "Obwiniona", "Obwiniony",
    "Oskarżona", "Oskarżony", "Pokrzywdzona", "Pokrzywdzony",
)

SENSITIVE_KEYWORDS = (
    "klient",
    "pesel",
    "nip",
    "regon",
    "dane osobowe",
    "pozwany",
    "powód",
    "adres zamieszkania",
    "adres korespondencyjny",
    "numer dowodu",
    "dowód osobisty",
    "numer paszportu",
    "data urodzenia",
    "miejsce urodzenia",
    "imię i nazwisko",
    "stan cywilny",
    "numer konta",
    "rachunek bankowy",
    "akt notarialny",
    "tajemnica adwokacka",
    "tajemnica radcowska",
    "poufne",
    "dane wrażliwe",
    "krs",
)

_NAME_TOKEN = rf"[{UPPER}][{LOWER}]+"

# Digit-oriented rules, matched with ASCII word boundaries. Order is the
# tie-break order for spans that start at the same offset.
DIGIT_PATTERNS = {
    PiiKind.PESEL: r"\b\d{11}\b",
    PiiKind.NIP: r"\b\d{3}[-\s]?\d{3}[-\s]?\d{2}[-\s]?\d{2}\b",
    PiiKind.IBAN: r"\bPL\s?\d{2}(?:[\s-]?\d{4}){6}\b",
    PiiKind.PHONE: (
        r"(?:\+48|(?<![\d+])48)[\s-]?\d{3}[\s-]?\d{3}[\s-]?\d{3}\b"
        r"|\b[5-8]\d{2}[\s-]?\d{3}[\s-]?\d{3}\b"
    ),
    PiiKind.EMAIL: r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b",
    PiiKind.POSTAL_CODE: r"\b\d{2}-\d{3}\b",
    PiiKind.CASE_SIGNATURE: r"\b(?:[IVX]{1,4}\s+)?[A-Z][A-Za-z]{0,4}\s+\d{1,6}/\d{2,4}\b",
    PiiKind.ID_DOCUMENT: r"\b(?:[A-Z]{3}\s?\d{6}|[A-Z]{2}\s?\d{7})\b",
    PiiKind.REGON: r"\b(?:\d{14}|\d{9})\b",
}

ROLE_NAME_PATTERN = (
    rf"(?:{'|'.join(LEGAL_ROLES)})\s*:\s*"
    rf"(?P<name>{_NAME_TOKEN}(?:[ \t]+{_NAME_TOKEN}){{1,3}})"
)

ADDRESS_PATTERN = (
    r"(?<![\w.])(?:ul\.|ulica|al\.|aleja|pl\.|plac|os\.|osiedle)\s*"
    rf"[{UPPER}0-9][\w.-]*(?:[ \t]+[{UPPER}][\w.-]*){{0,3}}"
    r"[ \t]+\d{1,4}[A-Za-z]?(?:\s*/\s*\d{1,4}[A-Za-z]?)?"
)

COMPANY_PATTERN = (
    rf"\b[{UPPER}0-9][\w&-]*(?:[ \t]+[{UPPER}0-9][\w&-]*){{0,3}}[ \t]+"
    r"(?i:sp\.\s?z\s?o\.\s?o\.|s\.a\.|sp\.\s?j\.|sp\.\s?k\.|sp\.\s?p\."
    r"|spółka z ograniczoną odpowiedzialnością|spółka akcyjna)"
)

_DIGIT_RES = {kind: re.compile(pattern, re.ASCII) for kind, pattern in DIGIT_PATTERNS.items()}
_ROLE_NAME_RE = re.compile(ROLE_NAME_PATTERN)
_ADDRESS_RE = re.compile(ADDRESS_PATTERN)
_COMPANY_RE = re.compile(COMPANY_PATTERN)
_SEPARATORS_RE = re.compile(r"[-\s]")

RULE_ORDER = (
    PiiKind.PESEL,
    PiiKind.NIP,
    PiiKind.IBAN,
    PiiKind.PHONE,
    PiiKind.EMAIL,
    PiiKind.POSTAL_CODE,
    PiiKind.ADDRESS,
    PiiKind.COMPANY_NAME,
    PiiKind.CASE_SIGNATURE,
    PiiKind.ID_DOCUMENT,
    PiiKind.PERSON_NAME,
    PiiKind.REGON,
)
_RULE_RANK = {kind: index for index, kind in enumerate(RULE_ORDER)}


def pesel_check_digit(first_ten: str) -> int:
    """Compute the PESEL check digit for the first ten digits."""
    total = sum(int(d) * w for d, w in zip(first_ten, PESEL_WEIGHTS))
    return (10 - total % 10) % 10


def is_valid_pesel(digits: str) -> bool:
    """Return True when ``digits`` is 11 ASCII digits with a valid checksum."""
    if len(digits) != 11 or not digits.isascii() or not digits.isdigit():
        return False
    return pesel_check_digit(digits[:10]) == int(digits[10])


def _merge_spans(first: PiiSpan, second: PiiSpan) -> PiiSpan:
    """Return one span covering both, labelled with the higher-ranked kind."""
    kind = min(first.kind, second.kind, key=_RULE_RANK.__getitem__)
    tail = second.raw_value[first.end - second.start :]
    return PiiSpan(kind=kind, raw_value=first.raw_value + tail, start=first.start)


def resolve_overlaps(spans: Iterable[PiiSpan]) -> list[PiiSpan]:
    """Return non-overlapping spans ordered by offset.

    Spans sharing a start keep the longest, then rule order. A span that
    starts inside a kept span and runs past its end is merged into it, so
    every detected character stays covered.
    """
    ordered = sorted(spans, key=lambda s: (s.start, -len(s.raw_value), _RULE_RANK[s.kind]))
    kept: list[PiiSpan] = []
    for span in ordered:
        if kept and span.start < kept[-1].end:
            if span.end > kept[-1].end:
                kept[-1] = _merge_spans(kept[-1], span)
            continue
        kept.append(span)
    return kept


class PolishPIIRegexAdapter:
    """Regex-based PII detector for Polish legal text implementing DetectorPort.

    Detects:
    - PESEL (checksum validated), NIP, REGON, IBAN
    - PHONE: +48 prefixed or domestic mobile numbers
    - EMAIL, POSTAL_CODE (XX-XXX), CASE_SIGNATURE (e.g. "II K 45/25")
    - PERSON_NAME: after legal role labels ("Pozwany: ...") and from the
      first name / surname dictionaries
    - ADDRESS, COMPANY_NAME, ID_DOCUMENT (identity card and passport)
    - Sensitivity keywords ("dane osobowe", "tajemnica adwokacka", ...)

    Always offline (requires_online() -> False). Instances hold no mutable
    state and are safe to share between threads.
    """

    def __init__(self, profile: dict[str, Any] | None = None):
        """Initialize PII detector with optional profile.

        Args:
            profile: Profile dict with keys:
                - enabled_kinds: list of kind values to enable (default: all)
                - keywords: replacement list of sensitivity keywords
        """
        self.profile = profile or {}
        self.enabled_kinds = frozenset(
            PiiKind(kind) for kind in self.profile.get("enabled_kinds", list(PiiKind))
        )
        self.keywords = tuple(
            kw.lower() for kw in self.profile.get("keywords", SENSITIVE_KEYWORDS)
        )

    def detect(self, text: str) -> DetectionResult:
        """Scan ``text`` for PII spans and sensitivity keywords.

        Returns:
            DetectionResult with spans in input order and keywords in list order
        """
        return DetectionResult(
            spans=self.analyze_text(text),
            matched_keywords=self.match_keywords(text),
        )

    def analyze_text(self, text: str) -> list[PiiSpan]:
        """Return the PII spans found in ``text``, ordered by offset."""
        seen: set[tuple[PiiKind, int, str]] = set()
        unique: list[PiiSpan] = []
        for span in self._iter_spans(text):
            key = (span.kind, span.start, span.raw_value)
            if key in seen:
                continue
            seen.add(key)
            unique.append(span)
        return sorted(unique, key=lambda s: (s.start, _RULE_RANK[s.kind]))

    def contains_sensitive_data(self, text: str) -> bool:
        """Return True at the first keyword or span found."""
        if self.match_keywords(text):
            return True
        return next(self._iter_spans(text), None) is not None

    def match_keywords(self, text: str) -> list[str]:
        lower = text.lower()
        return [kw for kw in self.keywords if kw in lower]

    def redact_text(self, text: str) -> str:
        """Replace each detected span with its kind label, e.g. ``[PESEL]``."""
        spans = resolve_overlaps(self.analyze_text(text))
        out = text
        for span in reversed(spans):
            out = out[: span.start] + f"[{span.kind.value.upper()}]" + out[span.end :]
        return out

    def get_supported_kinds(self) -> list[PiiKind]:
        return [kind for kind in PiiKind if kind in self.enabled_kinds]

    def requires_online(self) -> bool:
        """Return True when adapter needs network access.

        Always returns False for regex-based detection.
        """
        return False

    def _iter_spans(self, text: str) -> Iterator[PiiSpan]:
        """Yield spans rule by rule (unsorted, possibly repeated)."""
        enabled = self.enabled_kinds
        pesel_positions: set[int] = set()

        for kind, pattern in _DIGIT_RES.items():
            # PESEL is always evaluated so REGON never double-counts its digits
            if kind not in enabled and kind is not PiiKind.PESEL:
                continue
            for match in pattern.finditer(text):
                value = match.group(0)
                if kind is PiiKind.PESEL:
                    if not is_valid_pesel(value):
                        continue
                    pesel_positions.add(match.start())
                    if kind not in enabled:
                        continue
                elif kind is PiiKind.NIP:
                    if len(_SEPARATORS_RE.sub("", value)) != 10:
                        continue
                elif kind is PiiKind.REGON:
                    if match.start() in pesel_positions:
                        continue
                yield PiiSpan(kind=kind, raw_value=value, start=match.start())

        if PiiKind.ADDRESS in enabled:
            for match in _ADDRESS_RE.finditer(text):
                yield PiiSpan(kind=PiiKind.ADDRESS, raw_value=match.group(0), start=match.start())

        if PiiKind.COMPANY_NAME in enabled:
            for match in _COMPANY_RE.finditer(text):
                yield PiiSpan(
                    kind=PiiKind.COMPANY_NAME, raw_value=match.group(0), start=match.start()
                )

        if PiiKind.PERSON_NAME in enabled:
            for match in _ROLE_NAME_RE.finditer(text):
                yield PiiSpan(
                    kind=PiiKind.PERSON_NAME,
                    raw_value=match.group("name"),
                    start=match.start("name"),
                )
            for name in find_polish_names(text):
                yield PiiSpan(kind=PiiKind.PERSON_NAME, raw_value=name.name, start=name.start)


_default_detector = PolishPIIRegexAdapter()


def detect(text: str) -> DetectionResult:
    """Scan ``text`` with the default Polish detector."""
    return _default_detector.detect(text)


def contains_sensitive_data(text: str) -> bool:
    """Quick check: does ``text`` contain any PII or sensitivity keyword?"""
    return _default_detector.contains_sensitive_data(text)


def redact_text(text: str) -> str:
    """Replace detected PII in ``text`` with kind labels such as ``[PESEL]``."""
    return _default_detector.redact_text(text)
