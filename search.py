"""Catalog query pipeline: text search, category filter, sort and pagination."""

from __future__ import annotations

import logging
import math
import unicodedata
from datetime import date
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field

from catalog import (
    CategoryCount,
    CatalogStore,
    ToolRecord,
    get_store,
    parse_review_count,
    popularity,
)

logger = logging.getLogger(__name__)

ALL_CATEGORIES = "All"
SORT_KEYS = ("relevance", "newest", "popular", "rating", "name")
DEFAULT_SORT = "newest"
DEFAULT_PAGE_SIZE = 24
MAX_PAGE_SIZE = 100
MAX_VISIBLE_PAGES = 5


class QueryParams(BaseModel):
    """Immutable listing state, round-trippable through URL query arguments."""

    model_config = ConfigDict(frozen=True)

    q: str = ""
    category: Optional[str] = None
    sort: str = DEFAULT_SORT
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE)

    @classmethod
    def from_args(
        cls,
        args: Mapping[str, str],
        default_sort: str = DEFAULT_SORT,
        default_page_size: int = DEFAULT_PAGE_SIZE,
    ) -> "QueryParams":
        """Build params from request arguments, replacing bad values with defaults."""

        sort = (args.get("sort") or default_sort).strip().lower()
        if sort not in SORT_KEYS:
            logger.warning("Unknown sort key %r, using %s", sort, default_sort)
            sort = default_sort

        page_size = _coerce_int(args.get("page_size"), default_page_size)
        return cls(
            q=args.get("q") or "",
            category=(args.get("category") or "").strip() or None,
            sort=sort,
            page=max(1, _coerce_int(args.get("page"), 1)),
            page_size=min(MAX_PAGE_SIZE, max(1, page_size)),
        )

    def to_args(self, default_sort: str = DEFAULT_SORT) -> Dict[str, str]:
        """Serialize the non-default parts of the state as URL arguments."""

        args: Dict[str, str] = {}
        if self.q.strip():
            args["q"] = self.q
        if self.category and self.category != ALL_CATEGORIES:
            args["category"] = self.category
        if self.sort != default_sort:
            args["sort"] = self.sort
        if self.page > 1:
            args["page"] = str(self.page)
        if self.page_size != DEFAULT_PAGE_SIZE:
            args["page_size"] = str(self.page_size)
        return args


class QueryResult(BaseModel):
    items: List[ToolRecord]
    total: int
    total_pages: int
    page: int
    page_size: int

    def to_dict(self) -> Dict[str, object]:
        return {
            "items": [item.to_dict() for item in self.items],
            "total": self.total,
            "total_pages": self.total_pages,
            "page": self.page,
            "page_size": self.page_size,
        }


def _coerce_int(value: Optional[str], default: int) -> int:
    try:
        return int(value) if value not in (None, "") else default
    except (TypeError, ValueError):
        return default


def _contains(needle: str, haystack: Optional[str]) -> bool:
    return bool(haystack) and needle in haystack.lower()


def matches_query(record: ToolRecord, query: str) -> bool:
    """Return True if *query* appears in the record's name, description,
    categories or features. *query* must already be lower-cased."""

    if _contains(query, record.name) or _contains(query, record.description):
        return True
    if any(_contains(query, category) for category in record.categories):
        return True
    return any(_contains(query, feature) for feature in record.features)


def search_records(records: Sequence[ToolRecord], query: Optional[str]) -> List[ToolRecord]:
    """Case-insensitive substring search. A blank query keeps every record."""

    if not (query or "").strip():
        return list(records)
    needle = query.lower()
    return [record for record in records if matches_query(record, needle)]


def filter_by_category(records: Sequence[ToolRecord], category: Optional[str]) -> List[ToolRecord]:
    if not category or category == ALL_CATEGORIES:
        return list(records)
    return [record for record in records if category in record.categories]


def _launch_ordinal(record: ToolRecord) -> Optional[int]:
    if not record.launch_date:
        return None
    try:
        return date.fromisoformat(record.launch_date[:10]).toordinal()
    except ValueError:
        logger.warning("Tool %s has an unparsable launch date %r", record.id, record.launch_date)
        return None


def _newest_key(record: ToolRecord) -> Tuple[int, int]:
    ordinal = _launch_ordinal(record)
    if ordinal is None:
        return 1, 0
    return 0, -ordinal


def collation_key(text: str) -> str:
    """Accent- and case-insensitive key, so "Éclair" sorts with the e's."""

    decomposed = unicodedata.normalize("NFKD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch)).casefold()


def _name_key(record: ToolRecord) -> Tuple[int, str, str]:
    if not record.name:
        return 1, "", ""
    return 0, collation_key(record.name), record.name


def _popular_key(record: ToolRecord) -> float:
    return -popularity(record)


SORT_FUNCTIONS: Dict[str, Callable[[ToolRecord], object]] = {
    "name": _name_key,
    "newest": _newest_key,
    "popular": _popular_key,
    "rating": _popular_key,
}


def sort_records(records: Sequence[ToolRecord], key: Optional[str]) -> List[ToolRecord]:
    """Return a new list ordered by *key*. Sorting is stable for every key;
    ``relevance`` keeps the incoming order."""

    if not key or key == "relevance":
        return list(records)

    sort_key = SORT_FUNCTIONS.get(key)
    if sort_key is None:
        logger.warning("Unknown sort key %r, keeping relevance order", key)
        return list(records)

    return sorted(records, key=sort_key)


def paginate(records: Sequence[ToolRecord], page: int, page_size: int) -> QueryResult:
    """Slice one 1-based page out of *records*. Out-of-range pages are empty."""

    page = max(1, page)
    page_size = max(1, page_size)
    total = len(records)
    start = (page - 1) * page_size

    return QueryResult(
        items=list(records[start:start + page_size]),
        total=total,
        total_pages=max(1, math.ceil(total / page_size)),
        page=page,
        page_size=page_size,
    )


def query(records: Sequence[ToolRecord], params: QueryParams) -> QueryResult:
    """Run search, category filter, sort and pagination in that order."""

    results = search_records(records, params.q)
    results = filter_by_category(results, params.category)
    results = sort_records(results, params.sort)
    return paginate(results, params.page, params.page_size)


def page_window(current: int, total_pages: int, max_visible: int = MAX_VISIBLE_PAGES) -> List[int]:
    """Page numbers to show in a pager, centred on *current* where possible."""

    total_pages = max(1, total_pages)
    half = max_visible // 2
    start = max(1, current - half)
    end = min(total_pages, start + max_visible - 1)
    if end - start < max_visible - 1:
        start = max(1, end - max_visible + 1)
    return list(range(start, end + 1))


def _store(store: Optional[CatalogStore]) -> CatalogStore:
    return store if store is not None else get_store()


def query_tools(params: QueryParams, store: Optional[CatalogStore] = None) -> QueryResult:
    return query(_store(store).get_all(), params)


def search_tools(query_text: str, store: Optional[CatalogStore] = None) -> List[ToolRecord]:
    """Return tools matching *query_text* in relevance order.

    An explicit search with a blank query returns no tools.
    """

    if not (query_text or "").strip():
        return []
    return search_records(_store(store).get_all(), query_text)


def get_tools_by_category(category: str, store: Optional[CatalogStore] = None) -> List[ToolRecord]:
    return filter_by_category(_store(store).get_all(), category)


def get_featured_tools(limit: int = 3, store: Optional[CatalogStore] = None) -> List[ToolRecord]:
    """Top *limit* tools by review count. Tools without reviews are never featured."""

    reviewed = [record for record in _store(store).get_all() if record.reviews]
    reviewed.sort(key=lambda record: -(parse_review_count(record.reviews) or 0.0))
    return reviewed[:max(0, limit)]


def get_tool_by_slug(slug_or_id: Optional[str], store: Optional[CatalogStore] = None) -> Optional[ToolRecord]:
    return _store(store).get_by_slug_or_id(slug_or_id)


def get_top_categories(limit: int = 5, store: Optional[CatalogStore] = None) -> List[CategoryCount]:
    return _store(store).get_category_counts()[:max(0, limit)]
