"""Skip/limit windowing, sort specification and page metadata."""
import math
from typing import Any, Dict, List, Optional, Tuple

from .query import ASCENDING, QuerySpec

SortSpec = List[Tuple[str, int]]


def build_sort(spec: QuerySpec) -> SortSpec:
    """Primary sort key plus an ``_id`` tiebreaker so pages stay stable."""
    sort = [(spec.sort_field, spec.sort_direction)]
    if spec.sort_field != "_id":
        sort.append(("_id", ASCENDING))
    return sort


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)


def page_metadata(spec: QuerySpec, total: int) -> Dict[str, Any]:
    pages = total_pages(total, spec.limit)
    has_next = spec.page < pages
    has_prev = spec.page > 1
    return {
        "currentPage": spec.page,
        "totalPages": pages,
        "totalProducts": total,
        "productsPerPage": spec.limit,
        "hasNext": has_next,
        "hasPrev": has_prev,
        "nextPage": spec.page + 1 if has_next else None,
        "prevPage": spec.page - 1 if has_prev else None,
    }


def search_metadata(spec: QuerySpec, total: int) -> Dict[str, Any]:
    pages = total_pages(total, spec.limit)
    return {
        "query": spec.search_term,
        "totalResults": total,
        "currentPage": spec.page,
        "totalPages": pages,
        "hasNext": spec.page < pages,
        "hasPrev": spec.page > 1,
    }


async def fetch_page(
    collection,
    query: Dict[str, Any],
    spec: QuerySpec,
    projection: Optional[Dict[str, int]] = None,
) -> Tuple[List[dict], int]:
    """Run filter -> sort -> skip -> limit, then count the whole match set.

    The count is a separate store call and may see a different snapshot
    than the page under concurrent writes.
    """
    cursor = (
        collection.find(query, projection)
        .sort(build_sort(spec))
        .skip(spec.skip)
        .limit(spec.limit)
    )
    documents = await cursor.to_list(length=spec.limit)
    total = await collection.count_documents(query)
    return documents, total
