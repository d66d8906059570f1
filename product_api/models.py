# ============================================
# product_api/models.py: Pydantic Models
# ============================================
# MongoDB documents don't have a fixed schema, so the product shape is
# enforced here before anything reaches the store.

from typing import Optional

from pydantic import BaseModel, Field


# ── Request Models ─────────────────────────────────────────────
class ProductCreate(BaseModel):
    name: str = Field(..., min_length=1, strict=True)
    description: str = Field(..., min_length=1, strict=True)
    price: float = Field(..., ge=0, strict=True, description="Price must be a non-negative number")
    category: str = Field(..., min_length=1, strict=True)
    inStock: bool = Field(True, strict=True)

    class Config:
        # Trimming happens before the min_length check
        str_strip_whitespace = True


class ProductUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, strict=True)
    description: Optional[str] = Field(None, min_length=1, strict=True)
    price: Optional[float] = Field(None, ge=0, strict=True)
    category: Optional[str] = Field(None, min_length=1, strict=True)
    inStock: Optional[bool] = Field(None, strict=True)

    class Config:
        str_strip_whitespace = True


# ── Derived Models ─────────────────────────────────────────────
class CategoryStat(BaseModel):
    category: Optional[str]
    count: int
    averagePrice: float
    totalValue: float
    minPrice: float
    maxPrice: float
    inStockCount: int
    outOfStockCount: int
    inStockPercentage: float


# ── Helper: serialise MongoDB document ────────────────────────
def serialise_product(doc: dict) -> dict:
    """Convert MongoDB _id (ObjectId) to a string 'id' field."""
    if "_id" in doc:
        doc["id"] = str(doc.pop("_id"))
    return doc
