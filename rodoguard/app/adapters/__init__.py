"""Adapters implementing RodoGuard port interfaces."""

from rodoguard.app.adapters.names import (
    contains_polish_name,
    find_polish_names,
    match_polish_name,
)
from rodoguard.app.adapters.pii_regex import PolishPIIRegexAdapter

__all__ = [
    "PolishPIIRegexAdapter",
    "contains_polish_name",
    "find_polish_names",
    "match_polish_name",
]
