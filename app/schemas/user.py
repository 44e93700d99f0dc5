from pydantic import AliasChoices, BaseModel, EmailStr, Field
from typing import Optional
from beanie import PydanticObjectId
from datetime import datetime


class Token(BaseModel):
    access_token: str
    token_type: str


class TokenData(BaseModel):
    user_id: Optional[str] = None


class UserBase(BaseModel):
    email: EmailStr
    first_name: str
    last_name: str
    phone: Optional[str] = None


class UserCreate(UserBase):
    password: str = Field(..., min_length=8)


class UserResponse(UserBase):
    id: PydanticObjectId = Field(validation_alias=AliasChoices("id", "_id"))
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True
