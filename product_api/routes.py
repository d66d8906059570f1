# ============================================
# product_api/routes.py: Product Endpoints
# ============================================
# Specific routes (/search, /stats) are declared before /{product_id}
# so they are not captured as ids.

from datetime import datetime, timezone

from bson import ObjectId
from fastapi import APIRouter, Depends, Request
from pymongo import ReturnDocument

from .auth import require_api_key
from .database import get_products_collection
from .errors import EmptyUpdate, InvalidProductId, ProductNotFound
from .logger import get_logger
from .models import ProductCreate, ProductUpdate, serialise_product
from .pagination import fetch_page, page_metadata, search_metadata
from .query import (
    build_filter,
    build_projection,
    build_search_filter,
    normalize_listing_query,
    normalize_search_query,
)
from .stats import product_statistics

logger = get_logger("routes")

router = APIRouter(prefix="/api/products", tags=["products"])


def _object_id(product_id: str) -> ObjectId:
    if not ObjectId.is_valid(product_id):
        raise InvalidProductId()
    return ObjectId(product_id)


def _now() -> datetime:
    return datetime.now(timezone.utc)


# ── Search & Statistics ───────────────────────────────────────

@router.get("/search")
async def search_products(request: Request, collection=Depends(get_products_collection)):
    """Case-insensitive search over name, description and category.

    Query parameters: ``q`` (required), ``page``, ``limit``.
    """
    spec = normalize_search_query(request.query_params)
    query = build_search_filter(spec)
    logger.info("Searching for %r, page %d, limit %d", spec.search_term, spec.page, spec.limit)

    documents, total = await fetch_page(collection, query, spec)
    products = [serialise_product(doc) for doc in documents]
    logger.info("Search found %d total results, showing %d", total, len(products))
    return {
        "search": search_metadata(spec, total),
        "results": len(products),
        "products": products,
    }


@router.get("/stats")
async def get_statistics(collection=Depends(get_products_collection)):
    """Stock summary, overall price figures and per-category breakdown."""
    return await product_statistics(collection)


# ── Listing ───────────────────────────────────────────────────

@router.get("")
@router.get("/", include_in_schema=False)
async def list_products(request: Request, collection=Depends(get_products_collection)):
    """List products with filtering, sorting, pagination and field selection.

    Query parameters: ``category``, ``inStock``, ``minPrice``, ``maxPrice``,
    ``page`` (default 1), ``limit`` (default 10, max 100), ``sort``
    (prefix ``-`` for descending, default ``name``) and ``fields``
    (comma-separated).
    """
    spec = normalize_listing_query(request.query_params)
    query = build_filter(spec)
    projection = build_projection(spec)

    documents, total = await fetch_page(collection, query, spec, projection)
    products = [serialise_product(doc) for doc in documents]
    logger.info("Found %d products (%d total)", len(products), total)
    return {
        "pagination": page_metadata(spec, total),
        "filters": {
            "category": spec.category,
            "inStock": spec.in_stock,
            "minPrice": spec.min_price,
            "maxPrice": spec.max_price,
            "sort": spec.sort,
            "fields": spec.fields,
        },
        "count": len(products),
        "products": products,
    }


# ── Single Product CRUD ───────────────────────────────────────

@router.get("/{product_id}")
async def get_product(product_id: str, collection=Depends(get_products_collection)):
    doc = await collection.find_one({"_id": _object_id(product_id)})
    if not doc:
        raise ProductNotFound()
    return serialise_product(doc)


@router.post("", status_code=201, dependencies=[Depends(require_api_key)])
@router.post("/", status_code=201, dependencies=[Depends(require_api_key)], include_in_schema=False)
async def create_product(payload: ProductCreate, collection=Depends(get_products_collection)):
    doc = payload.model_dump()
    doc["createdAt"] = doc["updatedAt"] = _now()

    result = await collection.insert_one(doc)
    created = await collection.find_one({"_id": result.inserted_id})
    logger.info("Created product %s", result.inserted_id)
    return {"message": "Product created successfully", "product": serialise_product(created)}


@router.put("/{product_id}", dependencies=[Depends(require_api_key)])
@router.patch("/{product_id}", dependencies=[Depends(require_api_key)], include_in_schema=False)
async def update_product(
    product_id: str,
    payload: ProductUpdate,
    collection=Depends(get_products_collection),
):
    """Partial update: only the supplied fields change."""
    object_id = _object_id(product_id)
    updates = payload.model_dump(exclude_none=True)
    if not updates:
        raise EmptyUpdate()

    updates["updatedAt"] = _now()
    updated = await collection.find_one_and_update(
        {"_id": object_id},
        {"$set": updates},
        return_document=ReturnDocument.AFTER,
    )
    if updated is None:
        raise ProductNotFound()

    logger.info("Updated product %s: %s", product_id, sorted(updates))
    return {"message": "Product updated successfully", "product": serialise_product(updated)}


@router.delete("/{product_id}", dependencies=[Depends(require_api_key)])
async def delete_product(product_id: str, collection=Depends(get_products_collection)):
    object_id = _object_id(product_id)
    doc = await collection.find_one_and_delete({"_id": object_id})
    if doc is None:
        raise ProductNotFound()
    logger.info("Deleted product %s", product_id)
    return {"message": "Product deleted successfully", "deletedProduct": serialise_product(doc)}
