from typing import Optional
from datetime import datetime
from enum import Enum
from beanie import Document, PydanticObjectId
from pydantic import Field
import pymongo


class MovementKind(str, Enum):
    PURCHASE = "purchase"
    SALE = "sale"
    ADJUST = "adjust"
    DAMAGE = "damage"
    THEFT = "theft"
    RETURN = "return"


class ReferenceType(str, Enum):
    SALE = "sale"
    EXPENSE = "expense"


class StockMovement(Document):
    """
    One immutable ledger entry describing a single change to a product's stock.

    `quantity` is signed: positive increases stock, negative decreases it.
    For ADJUST it holds the delta that was applied, not the target value.
    `new == previous + quantity` holds for every row. Rows are never edited;
    corrections are new rows.
    """

    product_id: PydanticObjectId
    business_id: PydanticObjectId

    kind: MovementKind
    quantity: float
    previous: float
    new: float
    reason: str

    # Back-link to the sale/expense that caused this movement
    reference_id: Optional[PydanticObjectId] = None
    reference_type: Optional[ReferenceType] = None

    created_by: PydanticObjectId
    created_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "stock_movements"
        indexes = [
            [("product_id", pymongo.ASCENDING), ("created_at", pymongo.DESCENDING)],
            "reference_id",
            "business_id",
        ]
