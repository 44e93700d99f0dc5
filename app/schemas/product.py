from pydantic import AliasChoices, BaseModel, Field, field_validator
from typing import Optional
from beanie import PydanticObjectId
from datetime import datetime
from app.models.product import ProductStatus


class ProductBase(BaseModel):
    name: str
    description: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    cost_price: float = Field(..., gt=0)
    selling_price: float = Field(..., gt=0)
    min_stock: float = Field(default=0, ge=0)
    max_stock: float = Field(default=0, ge=0)


class ProductCreate(ProductBase):
    # Opening balance; recorded as a "purchase" movement
    stock: float = Field(default=0, ge=0)


class ProductUpdate(BaseModel):
    """Metadata only. Stock changes go through /adjust."""
    name: Optional[str] = None
    description: Optional[str] = None
    sku: Optional[str] = None
    barcode: Optional[str] = None
    category: Optional[str] = None
    unit: Optional[str] = None
    cost_price: Optional[float] = Field(default=None, gt=0)
    selling_price: Optional[float] = Field(default=None, gt=0)
    min_stock: Optional[float] = Field(default=None, ge=0)
    max_stock: Optional[float] = Field(default=None, ge=0)
    status: Optional[ProductStatus] = None

    @field_validator("status")
    @classmethod
    def status_not_discontinued(cls, value):
        # Discontinuing is DELETE, which checks the shelf is empty
        if value == ProductStatus.DISCONTINUED:
            raise ValueError("Use DELETE to discontinue a product")
        return value


class ProductFilters(BaseModel):
    category: Optional[str] = None
    status: Optional[ProductStatus] = None
    low_stock: bool = False
    search: Optional[str] = None
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class ProductResponse(ProductBase):
    id: PydanticObjectId = Field(validation_alias=AliasChoices("id", "_id"))
    business_id: PydanticObjectId
    stock: float
    status: ProductStatus
    created_by: PydanticObjectId
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
