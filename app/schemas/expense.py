from pydantic import AliasChoices, BaseModel, Field
from typing import Optional
from beanie import PydanticObjectId
from datetime import datetime
from app.models.expense import ExpenseCategory, ExpenseStatus


class ExpenseCreate(BaseModel):
    category: ExpenseCategory
    amount: float = Field(..., gt=0)
    description: Optional[str] = None
    date: Optional[datetime] = None


class ExpenseUpdate(BaseModel):
    category: Optional[ExpenseCategory] = None
    amount: Optional[float] = Field(default=None, gt=0)
    description: Optional[str] = None
    date: Optional[datetime] = None


class ExpenseFilters(BaseModel):
    category: Optional[ExpenseCategory] = None
    status: Optional[ExpenseStatus] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    limit: int = Field(default=100, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


class ExpenseResponse(BaseModel):
    id: PydanticObjectId = Field(validation_alias=AliasChoices("id", "_id"))
    business_id: PydanticObjectId
    category: ExpenseCategory
    amount: float
    description: Optional[str] = None
    date: datetime
    status: ExpenseStatus
    created_by: PydanticObjectId
    created_at: datetime
    updated_at: datetime
    voided_at: Optional[datetime] = None

    class Config:
        from_attributes = True
