from typing import Optional, Annotated
from datetime import datetime
from enum import Enum
from beanie import Document, Indexed, PydanticObjectId
from pydantic import Field


class BusinessStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    CLOSED = "closed"


class Business(Document):
    """A tenant. Every product, sale and expense hangs off one of these."""

    owner_id: Annotated[PydanticObjectId, Indexed()]

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

    status: BusinessStatus = BusinessStatus.ACTIVE

    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    class Settings:
        name = "businesses"
