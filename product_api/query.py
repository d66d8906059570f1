"""
Query construction for the product listing and search endpoints.

Raw query-string values are parsed into a typed ``QuerySpec`` first; the
MongoDB filter, sort and projection documents are then built only from the
typed values, so client input never turns into query operators.
"""
import math
import re
import sys
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from .errors import SearchQueryRequired
from .logger import get_logger

logger = get_logger("query")

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100
# Keeps skip = (page - 1) * limit inside a BSON int64
MAX_PAGE = sys.maxsize // MAX_LIMIT
DEFAULT_SORT_FIELD = "name"

ASCENDING = 1
DESCENDING = -1

SEARCH_FIELDS = ("name", "description", "category")
SEARCH_EXAMPLE = "/api/products/search?q=phone&page=1&limit=5"


@dataclass
class QuerySpec:
    page: int = DEFAULT_PAGE
    limit: int = DEFAULT_LIMIT
    sort_field: str = DEFAULT_SORT_FIELD
    sort_direction: int = ASCENDING
    category: Optional[str] = None
    in_stock: Optional[bool] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    projected_fields: Optional[List[str]] = None
    search_term: Optional[str] = None
    # Raw values echoed back in the listing response
    sort: str = DEFAULT_SORT_FIELD
    fields: Optional[str] = None

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit


# ── Parsing helpers ────────────────────────────────────────────

def _parse_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    try:
        return int(value.strip())
    except ValueError:
        return None


def parse_page(value: Optional[str]) -> int:
    page = _parse_int(value)
    if page is None or page < 1:
        return DEFAULT_PAGE
    return min(page, MAX_PAGE)


def parse_limit(value: Optional[str]) -> int:
    limit = _parse_int(value)
    if limit is None:
        return DEFAULT_LIMIT
    return max(1, min(limit, MAX_LIMIT))


def parse_price(value: Optional[str]) -> Optional[float]:
    """Parse a price bound; unparsable or non-finite values are dropped."""
    if value is None or not value.strip():
        return None
    try:
        price = float(value)
    except ValueError:
        return None
    return price if math.isfinite(price) else None


def _store_field(field: str) -> str:
    # Clients see the identity as "id"; the store keeps it as "_id"
    return "_id" if field == "id" else field


def parse_sort(value: Optional[str]):
    """Split ``-price`` style sort input into (field, direction)."""
    raw = (value or "").strip()
    direction = ASCENDING
    if raw.startswith("-"):
        direction = DESCENDING
        raw = raw[1:].strip()
    # Operator-like names are not field paths; keep the direction, use the default field
    field = raw if raw and not raw.startswith("$") else DEFAULT_SORT_FIELD
    return _store_field(field), direction


def parse_fields(value: Optional[str]) -> Optional[List[str]]:
    if value is None:
        return None
    fields = [field.strip() for field in value.split(",")]
    fields = [field for field in fields if field]
    return fields or None


def parse_in_stock(value: Optional[str]) -> Optional[bool]:
    if value is None:
        return None
    return value == "true"


def parse_category(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return value.strip() or None


# ── Query Normalizer ───────────────────────────────────────────

def normalize_listing_query(params: Mapping[str, str]) -> QuerySpec:
    """Build the listing QuerySpec; malformed values fall back to defaults."""
    sort_field, sort_direction = parse_sort(params.get("sort"))
    return QuerySpec(
        page=parse_page(params.get("page")),
        limit=parse_limit(params.get("limit")),
        sort_field=sort_field,
        sort_direction=sort_direction,
        category=parse_category(params.get("category")),
        in_stock=parse_in_stock(params.get("inStock")),
        min_price=parse_price(params.get("minPrice")),
        max_price=parse_price(params.get("maxPrice")),
        projected_fields=parse_fields(params.get("fields")),
        sort=params.get("sort") or DEFAULT_SORT_FIELD,
        fields=params.get("fields") or None,
    )


def normalize_search_query(params: Mapping[str, str]) -> QuerySpec:
    """Build the search QuerySpec. A blank or missing ``q`` is an input error."""
    term = (params.get("q") or "").strip()
    if not term:
        raise SearchQueryRequired(example=SEARCH_EXAMPLE)
    return QuerySpec(
        page=parse_page(params.get("page")),
        limit=parse_limit(params.get("limit")),
        search_term=term,
    )


# ── Filter Builder ─────────────────────────────────────────────

def build_filter(spec: QuerySpec) -> Dict[str, Any]:
    """AND-combine the category, stock and price filters present in spec."""
    query: Dict[str, Any] = {}
    if spec.category is not None:
        query["category"] = {"$regex": f"^{re.escape(spec.category)}$", "$options": "i"}
    if spec.in_stock is not None:
        query["inStock"] = spec.in_stock
    price: Dict[str, float] = {}
    if spec.min_price is not None:
        price["$gte"] = spec.min_price
    if spec.max_price is not None:
        price["$lte"] = spec.max_price
    if price:
        query["price"] = price
    logger.debug("Listing filter: %s", query)
    return query


def build_search_filter(spec: QuerySpec) -> Dict[str, Any]:
    """Case-insensitive substring match on any of the searchable fields."""
    if not spec.search_term:
        raise SearchQueryRequired(example=SEARCH_EXAMPLE)
    pattern = re.escape(spec.search_term)
    return {
        "$or": [
            {field: {"$regex": pattern, "$options": "i"}}
            for field in SEARCH_FIELDS
        ]
    }


# ── Projection Engine ──────────────────────────────────────────

def build_projection(spec: QuerySpec) -> Optional[Dict[str, int]]:
    """Inclusion projection for the requested fields, or None for full documents."""
    if not spec.projected_fields:
        return None
    projection = {
        _store_field(field): 1
        for field in spec.projected_fields
        if not field.startswith("$")
    }
    return projection or None
