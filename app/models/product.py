from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field
from typing import Optional, Annotated
from datetime import datetime
from enum import Enum


class ProductStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    DISCONTINUED = "discontinued"


class Product(Document):
    business_id: Annotated[PydanticObjectId, Indexed()]

    # --- Identification ---
    name: str = Field(...)
    description: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None

    # --- Financials ---
    cost_price: float = Field(..., gt=0)      # Buying Price
    selling_price: float = Field(..., gt=0)   # Selling Price

    # --- Stock ---
    # Only the stock engine writes this field; see app/services/stock_engine.py
    stock: float = Field(default=0, ge=0)
    min_stock: float = 0   # Low-stock trigger level
    max_stock: float = 0

    status: ProductStatus = ProductStatus.ACTIVE

    created_by: PydanticObjectId
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "products"
        indexes = [
            [("business_id", 1), ("status", 1)],
        ]
