"""Free-text filtering: every query term must appear in the searchable text."""

import re
from typing import Iterable, List

_WHITESPACE = re.compile(r"\s+")


def split_terms(query: str | None) -> List[str]:
    """Split a query on runs of whitespace, dropping empty tokens."""
    if not query:
        return []
    return [term for term in _WHITESPACE.split(query) if term]


def includes_all(searchable_text: str | None, terms: Iterable[str]) -> bool:
    """
    Check that the text contains every term, case-insensitively.

    Terms may appear in any order and anywhere in the text (AND semantics,
    substring matching). An empty term sequence matches everything.

    Args:
        searchable_text: Concatenated searchable fields of a record
        terms: Query terms (already tokenized)

    Returns:
        True if every term is a substring of the case-folded text
    """
    haystack = (searchable_text or "").casefold()
    return all(term.casefold() in haystack for term in terms)


def matches_query(searchable_text: str | None, query: str | None) -> bool:
    """Tokenize ``query`` and apply :func:`includes_all`."""
    return includes_all(searchable_text, split_terms(query))
