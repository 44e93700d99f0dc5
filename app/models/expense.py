from beanie import Document, PydanticObjectId
from pydantic import Field
from typing import Optional
from datetime import datetime
from enum import Enum


class ExpenseCategory(str, Enum):
    RENT = "rent"
    UTILITIES = "utilities"
    STOCK_PURCHASE = "stock_purchase"
    TRANSPORT = "transport"
    SALARIES = "salaries"
    MARKETING = "marketing"
    MAINTENANCE = "maintenance"
    OTHER = "other"


class ExpenseStatus(str, Enum):
    ACTIVE = "active"
    VOIDED = "voided"


class Expense(Document):
    business_id: PydanticObjectId

    category: ExpenseCategory
    amount: float = Field(..., gt=0)
    description: Optional[str] = None
    date: datetime = Field(default_factory=datetime.utcnow)

    status: ExpenseStatus = ExpenseStatus.ACTIVE

    created_by: PydanticObjectId
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    voided_by: Optional[PydanticObjectId] = None
    voided_at: Optional[datetime] = None

    class Settings:
        name = "expenses"
        indexes = [
            "business_id",
            "date",
            "status",
        ]
