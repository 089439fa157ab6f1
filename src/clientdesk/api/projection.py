"""List projection: filter -> sort -> paginate over an in-memory collection.

The projection never mutates its input. Callers recompute the whole projection
whenever the collection, the query, the field filters or the sort change.
"""

from __future__ import annotations

import locale
import math
import unicodedata
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from .filters import includes_all, split_terms

Record = Mapping[str, Any]

ASC = "asc"
DESC = "desc"
DIRECTIONS = (ASC, DESC)


@dataclass(frozen=True)
class SortState:
    key: str
    direction: str = ASC

    def __post_init__(self) -> None:
        if self.direction not in DIRECTIONS:
            raise ValueError(f"Unknown sort direction: {self.direction!r}")

    @property
    def descending(self) -> bool:
        return self.direction == DESC


@dataclass(frozen=True)
class FieldFilter:
    """Exact string-equality predicate on one field; inactive when value is empty."""

    field: str
    value: Optional[str] = None

    @property
    def active(self) -> bool:
        return self.value not in (None, "")

    def accepts(self, record: Record) -> bool:
        if not self.active:
            return True
        if self.field not in record or record[self.field] is None:
            return False
        return str(record[self.field]) == self.value


@dataclass(frozen=True)
class PageState:
    current_page: int
    page_size: int
    total_count: int

    @property
    def total_pages(self) -> int:
        return total_pages(self.total_count, self.page_size)

    @property
    def has_previous(self) -> bool:
        return self.current_page > 1

    @property
    def has_next(self) -> bool:
        return self.current_page < self.total_pages


@dataclass(frozen=True)
class Projection:
    items: List[Record] = field(default_factory=list)
    page_state: PageState = field(default_factory=lambda: PageState(1, 10, 0))


def total_pages(total_count: int, page_size: int) -> int:
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    return max(1, math.ceil(total_count / page_size))


def clamp_page(page: int, total_count: int, page_size: int) -> int:
    """Clamp a 1-based page number into [1, total_pages]."""
    return min(max(1, page), total_pages(total_count, page_size))


def toggle_sort(current: Optional[SortState], key: str) -> SortState:
    """Same key flips direction; a new key starts ascending."""
    if current is not None and current.key == key:
        return SortState(key, DESC if current.direction == ASC else ASC)
    return SortState(key, ASC)


def default_searchable_text(record: Record) -> str:
    return " ".join(str(value) for value in record.values() if value is not None)


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def locale_sort_key(value: Any) -> Tuple[str, str, str]:
    """
    Collation key following the process locale (None sorts as empty).

    The first component ignores case and accents so the ordering stays
    alphabetical under the "C" locale too. Later components break ties by
    accent, then by case.
    """
    text = "" if value is None else str(value)
    folded = text.casefold()
    return (
        locale.strxfrm(_strip_accents(folded)),
        locale.strxfrm(folded),
        locale.strxfrm(text),
    )


def filter_records(
    records: Iterable[Record],
    query: str | None = None,
    filters: Sequence[FieldFilter] = (),
    searchable: Callable[[Record], str] = default_searchable_text,
) -> List[Record]:
    """Apply the free-text query, then every active field filter."""
    result = list(records)
    terms = split_terms(query)
    if terms:
        result = [r for r in result if includes_all(searchable(r), terms)]
    for field_filter in filters:
        if field_filter.active:
            result = [r for r in result if field_filter.accepts(r)]
    return result


def sort_records(
    records: Iterable[Record],
    sort: Optional[SortState],
    collate: Callable[[Any], Any] = locale_sort_key,
) -> List[Record]:
    """Stable sort by ``sort.key``; ties keep their input order in both directions."""
    if sort is None:
        return list(records)
    return sorted(
        records,
        key=lambda r: collate(r.get(sort.key)),
        reverse=sort.descending,
    )


def paginate(records: Sequence[Record], page: int, page_size: int) -> List[Record]:
    if page_size <= 0:
        raise ValueError(f"page_size must be positive, got {page_size}")
    start = (page - 1) * page_size
    if start < 0:
        return []
    return list(records[start:start + page_size])


def filter_and_sort(
    records: Iterable[Record],
    query: str | None = None,
    filters: Sequence[FieldFilter] = (),
    sort: Optional[SortState] = None,
    searchable: Callable[[Record], str] = default_searchable_text,
    collate: Callable[[Any], Any] = locale_sort_key,
) -> List[Record]:
    """Steps 1-3 of the projection: the full filtered, sorted sequence (used by export)."""
    return sort_records(filter_records(records, query, filters, searchable), sort, collate)


def project(
    records: Iterable[Record],
    query: str | None = None,
    filters: Sequence[FieldFilter] = (),
    sort: Optional[SortState] = None,
    page: int = 1,
    page_size: int = 10,
    searchable: Callable[[Record], str] = default_searchable_text,
    collate: Callable[[Any], Any] = locale_sort_key,
) -> Projection:
    """
    Compute one page of the filtered, sorted collection.

    Args:
        records: Full unfiltered collection
        query: Free-text query (empty matches everything)
        filters: Field-equality filters, ANDed with the query
        sort: Active sort; None keeps input order
        page: 1-based page number. Out-of-range pages yield an empty slice.
        page_size: Positive page size
        searchable: Builds the searchable text of a record
        collate: Sort key function for field values

    Returns:
        Projection with the page slice and a PageState whose total_count is
        the number of records left after filtering.
    """
    ordered = filter_and_sort(records, query, filters, sort, searchable, collate)
    return Projection(
        items=paginate(ordered, page, page_size),
        page_state=PageState(current_page=page, page_size=page_size, total_count=len(ordered)),
    )


def distinct_values(records: Iterable[Record], field_name: str) -> List[str]:
    """Sorted unique non-empty values of one field (dropdown options)."""
    values = {str(r.get(field_name)) for r in records if r.get(field_name) not in (None, "")}
    return sorted(values, key=locale_sort_key)
