from pydantic import AliasChoices, BaseModel, Field
from typing import Optional
from beanie import PydanticObjectId
from datetime import datetime
from app.models.business import BusinessStatus


class BusinessBase(BaseModel):
    name: str
    description: Optional[str] = None
    business_type: str
    currency: str = "USD"
    timezone: str = "UTC"
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None


class BusinessCreate(BusinessBase):
    pass


class BusinessUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    business_type: Optional[str] = None
    currency: Optional[str] = None
    timezone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    country: Optional[str] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    status: Optional[BusinessStatus] = None


class BusinessResponse(BusinessBase):
    id: PydanticObjectId = Field(validation_alias=AliasChoices("id", "_id"))
    owner_id: PydanticObjectId
    status: BusinessStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
