"""
Catalogue statistics computed with MongoDB aggregation pipelines.

Nothing is cached: every call re-reads the collection, so the numbers
always reflect the store at request time.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Union

from .logger import get_logger
from .models import CategoryStat

logger = get_logger("stats")


def category_stats_pipeline() -> List[Dict[str, Any]]:
    """Group by category, most populous first."""
    return [
        {
            "$group": {
                "_id": "$category",
                "count": {"$sum": 1},
                "averagePrice": {"$avg": "$price"},
                "totalValue": {"$sum": "$price"},
                "minPrice": {"$min": "$price"},
                "maxPrice": {"$max": "$price"},
                "inStockCount": {
                    "$sum": {"$cond": [{"$eq": ["$inStock", True]}, 1, 0]}
                },
                "outOfStockCount": {
                    "$sum": {"$cond": [{"$eq": ["$inStock", False]}, 1, 0]}
                },
            }
        },
        {"$sort": {"count": -1, "_id": 1}},
        {
            "$project": {
                "_id": 0,
                "category": "$_id",
                "count": 1,
                "averagePrice": 1,
                "totalValue": 1,
                "minPrice": 1,
                "maxPrice": 1,
                "inStockCount": 1,
                "outOfStockCount": 1,
                # groups always hold at least one document
                "inStockPercentage": {
                    "$multiply": [{"$divide": ["$inStockCount", "$count"]}, 100]
                },
            }
        },
    ]


def price_stats_pipeline() -> List[Dict[str, Any]]:
    """Single group over the whole collection."""
    return [
        {
            "$group": {
                "_id": None,
                "averagePrice": {"$avg": "$price"},
                "minPrice": {"$min": "$price"},
                "maxPrice": {"$max": "$price"},
                "totalInventoryValue": {"$sum": "$price"},
            }
        }
    ]


def _category_stat(row: Dict[str, Any]) -> CategoryStat:
    return CategoryStat(
        category=row.get("category"),
        count=row["count"],
        averagePrice=round(row["averagePrice"], 2),
        totalValue=round(row["totalValue"], 2),
        minPrice=row["minPrice"],
        maxPrice=row["maxPrice"],
        inStockCount=row["inStockCount"],
        outOfStockCount=row["outOfStockCount"],
        inStockPercentage=round(row["inStockPercentage"], 2),
    )


async def category_stats(collection) -> List[CategoryStat]:
    rows = await collection.aggregate(category_stats_pipeline()).to_list(length=None)
    return [_category_stat(row) for row in rows]


async def price_stats(collection) -> Dict[str, Any]:
    """Overall price figures; an empty collection yields ``{}``."""
    rows = await collection.aggregate(price_stats_pipeline()).to_list(length=None)
    if not rows:
        return {}
    row = rows[0]
    return {
        "averagePrice": round(row["averagePrice"], 2),
        "minPrice": row["minPrice"],
        "maxPrice": row["maxPrice"],
        "totalInventoryValue": round(row["totalInventoryValue"], 2),
    }


def in_stock_percentage(in_stock: int, total: int) -> Union[str, int]:
    """Two-decimal percentage string, or 0 when there are no products."""
    if total == 0:
        return 0
    return f"{in_stock / total * 100:.2f}"


async def stock_summary(collection) -> Dict[str, Any]:
    total = await collection.count_documents({})
    in_stock = await collection.count_documents({"inStock": True})
    out_of_stock = await collection.count_documents({"inStock": False})
    return {
        "totalProducts": total,
        "inStock": in_stock,
        "outOfStock": out_of_stock,
        "inStockPercentage": in_stock_percentage(in_stock, total),
    }


async def product_statistics(collection) -> Dict[str, Any]:
    summary = await stock_summary(collection)
    prices = await price_stats(collection)
    categories = await category_stats(collection)
    logger.info("Statistics generated for %d products", summary["totalProducts"])
    return {
        "summary": summary,
        "priceStatistics": prices,
        "categories": [stat.model_dump() for stat in categories],
        "lastUpdated": datetime.now(timezone.utc).isoformat(),
    }
