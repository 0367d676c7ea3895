"""Polish first name and surname dictionaries with a conservative name matcher.

Only runs of capitalized tokens where every token is a known name part are
reported, so ordinary capitalized words ("Sąd Rejonowy") are left alone.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

FIRST_NAMES_MALE = frozenset(
    {
        "Adam", "Adrian", "Aleksander", "Andrzej", "Antoni", "Arkadiusz", "Artur",
        "Bartłomiej", "Bartosz", "Bogdan", "Bogusław", "Cezary", "Damian", "Daniel",
        "Dariusz", "Dawid", "Dominik", "Edward", "Ernest", "Filip", "Franciszek",
        "Gabriel", "Grzegorz", "Henryk", "Hubert", "Igor", "Ireneusz", "Jacek",
        "Jakub", "Jan", "Janusz", "Jarosław", "Jerzy", "Józef", "Kamil", "Karol",
        "Kazimierz", "Konrad", "Krystian", "Krzysztof", "Lech", "Leszek", "Łukasz",
        "Maciej", "Marcin", "Marek", "Mariusz", "Mateusz", "Michał", "Mieczysław",
        "Mirosław", "Norbert", "Olaf", "Oskar", "Paweł", "Patryk", "Piotr",
        "Przemysław", "Radosław", "Rafał", "Robert", "Roman", "Ryszard", "Sebastian",
        "Sławomir", "Stanisław", "Stefan", "Szymon", "Tadeusz", "Tomasz", "Waldemar",
        "Wiesław", "Wiktor", "Witold", "Władysław", "Wojciech", "Zbigniew", "Zenon",
        "Zygmunt",
    }
)

FIRST_NAMES_FEMALE = frozenset(
    {
        "Agata", "Agnieszka", "Aleksandra", "Alicja", "Amelia", "Anna", "Barbara",
        "Beata", "Bożena", "Celina", "Dagmara", "Danuta", "Dorota", "Edyta",
        "Elżbieta", "Emilia", "Ewa", "Gabriela", "Grażyna", "Halina", "Hanna",
        "Helena", "Irena", "Iwona", "Izabela", "Jadwiga", "Janina", "Joanna",
        "Jolanta", "Julia", "Justyna", "Kamila", "Karolina", "Katarzyna", "Kinga",
        "Klaudia", "Krystyna", "Laura", "Lena", "Lidia", "Liliana", "Lucyna",
        "Magdalena", "Maja", "Małgorzata", "Maria", "Marlena", "Marta", "Martyna",
        "Milena", "Monika", "Nadia", "Natalia", "Nicole", "Nina", "Oliwia",
        "Patrycja", "Paulina", "Renata", "Roma", "Sandra", "Sara", "Stanisława",
        "Sylwia", "Teresa", "Urszula", "Wanda", "Weronika", "Wiktoria", "Zofia",
        "Zuzanna",
    }
)

SURNAMES = frozenset(
    {
        "Nowak", "Kowalski", "Wiśniewski", "Wójcik", "Kowalczyk", "Kamiński",
        "Lewandowski", "Zieliński", "Szymański", "Woźniak", "Dąbrowski", "Kozłowski",
        "Jankowski", "Mazur", "Kwiatkowski", "Krawczyk", "Piotrowski", "Grabowski",
        "Nowakowski", "Pawłowski", "Michalski", "Nowicki", "Adamczyk", "Dudek",
        "Zając", "Wieczorek", "Jabłoński", "Król", "Majewski", "Olszewski",
        "Jaworski", "Wróbel", "Malinowski", "Pawlak", "Witkowski", "Walczak",
        "Stępień", "Górski", "Rutkowski", "Michalak", "Sikora", "Ostrowski",
        "Baran", "Duda", "Szewczyk", "Tomaszewski", "Pietrzak", "Marciniak",
        "Wróblewski", "Zalewski", "Jakubowski", "Jasiński", "Zawadzki", "Sadowski",
        "Bąk", "Chmielewski", "Włodarczyk", "Borkowski", "Czarnecki", "Sawicki",
        "Sokołowski", "Urbański", "Kubiak", "Maciejewski", "Szczepański", "Kucharski",
        "Wilk", "Kalinowski", "Lis", "Mazurek", "Wysocki", "Adamski", "Kaźmierczak",
        "Wasilewski", "Sobczak", "Czerwiński", "Andrzejewski", "Cieślak", "Głowacki",
        "Zakrzewski", "Kołodziej", "Sikorski", "Krajewski", "Gajewski", "Szymczak",
        "Kozak", "Pawlik", "Sobczyk", "Mróz", "Laskowski", "Ziółkowski",
        # feminine forms
        "Kowalska", "Wiśniewska", "Kamińska", "Lewandowska", "Zielińska", "Szymańska",
        "Dąbrowska", "Kozłowska", "Jankowska", "Kwiatkowska", "Piotrowska",
        "Grabowska", "Nowakowska", "Pawłowska", "Michalska", "Nowicka", "Jabłońska",
        "Majewska", "Olszewska", "Jaworska", "Malinowska", "Witkowska", "Górska",
        "Rutkowska", "Ostrowska", "Tomaszewska", "Wróblewska", "Zalewska",
        "Jakubowska", "Jasińska", "Zawadzka", "Sadowska", "Chmielewska", "Borkowska",
        "Czarnecka", "Sawicka", "Sokołowska", "Urbańska", "Maciejewska",
        "Szczepańska", "Kucharska", "Kalinowska", "Wysocka", "Adamska",
        "Wasilewska", "Czerwińska", "Andrzejewska", "Głowacka", "Zakrzewska",
        "Sikorska", "Krajewska", "Gajewska", "Laskowska", "Ziółkowska",
    }
)

FIRST_NAMES = FIRST_NAMES_MALE | FIRST_NAMES_FEMALE
NAME_PARTS = FIRST_NAMES | SURNAMES

UPPER = "A-ZĄĆĘŁŃÓŚŹŻ"
LOWER = "a-ząćęłńóśźż"

_TOKEN_RE = re.compile(rf"\b[{UPPER}][{LOWER}]+\b")
_GAP_RE = re.compile(r"[ \t]+")


@dataclass(frozen=True, slots=True)
class NameMatch:
    """A personal name found in text."""

    name: str
    start: int
    end: int


def _token_runs(text: str) -> list[list[re.Match[str]]]:
    """Group capitalized tokens separated only by spaces or tabs."""
    runs: list[list[re.Match[str]]] = []
    current: list[re.Match[str]] = []
    for match in _TOKEN_RE.finditer(text):
        if current and _GAP_RE.fullmatch(text, current[-1].end(), match.start()):
            current.append(match)
        else:
            if current:
                runs.append(current)
            current = [match]
    if current:
        runs.append(current)
    return runs


def _is_triple(first: str, second: str, third: str) -> bool:
    if first in NAME_PARTS and second in NAME_PARTS and third in SURNAMES:
        return True
    return first in FIRST_NAMES and second in SURNAMES and third in SURNAMES


def _is_pair(first: str, second: str) -> bool:
    return first in FIRST_NAMES and second in SURNAMES


def find_polish_names(text: str) -> list[NameMatch]:
    """Find personal names, preferring three-token names over two-token ones.

    Returns:
        Matches ordered by start offset. Matches never overlap.
    """
    runs = _token_runs(text)
    accepted: list[NameMatch] = []

    def _claimed(start: int, end: int) -> bool:
        return any(start < m.end and m.start < end for m in accepted)

    for run in runs:
        for i in range(len(run) - 2):
            a, b, c = run[i], run[i + 1], run[i + 2]
            if _claimed(a.start(), c.end()):
                continue
            if _is_triple(a.group(), b.group(), c.group()):
                accepted.append(NameMatch(text[a.start() : c.end()], a.start(), c.end()))

    for run in runs:
        for i in range(len(run) - 1):
            a, b = run[i], run[i + 1]
            if _claimed(a.start(), b.end()):
                continue
            if _is_pair(a.group(), b.group()):
                accepted.append(NameMatch(text[a.start() : b.end()], a.start(), b.end()))

    return sorted(accepted, key=lambda m: m.start)


def match_polish_name(text: str) -> str | None:
    """Return the first personal name in ``text``, if any."""
    matches = find_polish_names(text)
    return matches[0].name if matches else None


def contains_polish_name(text: str) -> bool:
    return match_polish_name(text) is not None
