from pydantic import AliasChoices, BaseModel, Field
from typing import Optional
from beanie import PydanticObjectId
from datetime import datetime
from app.models.sale import PaymentMethod, PaymentStatus, SaleStatus, InventorySync


# ==========================================
# REQUEST SCHEMAS (What users send)
# ==========================================

class SaleCreate(BaseModel):
    """Record a sale; linking a product deducts stock"""
    product_id: Optional[PydanticObjectId] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    quantity: float = Field(..., gt=0, description="Must be greater than 0")
    unit_price: float = Field(..., gt=0)
    discount: float = Field(default=0.0, ge=0, description="Discount amount (cannot be negative)")
    tax: float = Field(default=0.0, ge=0)
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PAID
    notes: Optional[str] = None


class SaleUpdate(BaseModel):
    """Edits that never touch stock or totals"""
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    payment_status: Optional[PaymentStatus] = None
    notes: Optional[str] = None


class SaleFilters(BaseModel):
    status: Optional[SaleStatus] = None
    payment_method: Optional[PaymentMethod] = None
    inventory_sync: Optional[InventorySync] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


# ==========================================
# RESPONSE SCHEMAS (What API returns)
# ==========================================

class SaleResponse(BaseModel):
    id: PydanticObjectId = Field(validation_alias=AliasChoices("id", "_id"))
    business_id: PydanticObjectId
    product_id: Optional[PydanticObjectId] = None
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    quantity: float
    unit_price: float
    total_amount: float
    discount: float
    tax: float
    final_amount: float
    payment_method: PaymentMethod
    payment_status: PaymentStatus
    notes: Optional[str] = None
    status: SaleStatus
    inventory_sync: InventorySync
    created_by: PydanticObjectId
    created_at: datetime
    updated_at: datetime
    voided_by: Optional[PydanticObjectId] = None
    voided_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ReconcileReportResponse(BaseModel):
    examined: int
    synced: int
    still_pending: int
    skipped: int = 0
