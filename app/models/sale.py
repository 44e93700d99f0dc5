from beanie import Document, PydanticObjectId
from pydantic import Field
from typing import Optional
from datetime import datetime
from enum import Enum


class PaymentMethod(str, Enum):
    CASH = "cash"
    CARD = "card"
    MOBILE = "mobile"
    BANK = "bank"
    CREDIT = "credit"
    OTHER = "other"


class PaymentStatus(str, Enum):
    PAID = "paid"
    PENDING = "pending"
    FAILED = "failed"


class SaleStatus(str, Enum):
    COMPLETED = "completed"
    VOIDED = "voided"


class InventorySync(str, Enum):
    """Whether the ledger reflects this sale yet."""
    NOT_APPLICABLE = "not_applicable"  # no product linked
    PENDING = "pending"                # movement not recorded yet; reconcile will retry
    SYNCING = "syncing"                # claimed by one writer; see sync_claimed_at
    SYNCED = "synced"


class Sale(Document):
    """
    A single-line sales transaction.
    Lifecycle: completed -> voided. Voided is terminal.
    """

    business_id: PydanticObjectId
    product_id: Optional[PydanticObjectId] = None

    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None

    # Financial Details
    quantity: float
    unit_price: float
    total_amount: float        # quantity × unit_price, 2dp
    discount: float = 0.0
    tax: float = 0.0
    final_amount: float        # total_amount - discount + tax

    # Payment
    payment_method: PaymentMethod
    payment_status: PaymentStatus = PaymentStatus.PAID

    notes: Optional[str] = None

    # Status & Tracking
    status: SaleStatus = SaleStatus.COMPLETED
    inventory_sync: InventorySync = InventorySync.NOT_APPLICABLE
    sync_claimed_at: Optional[datetime] = None

    created_by: PydanticObjectId
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    voided_by: Optional[PydanticObjectId] = None
    voided_at: Optional[datetime] = None

    class Settings:
        name = "sales"
        indexes = [
            "business_id",
            "created_at",
            "status",
            "inventory_sync",
        ]
