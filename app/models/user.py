from beanie import Document, Indexed
from pydantic import Field, EmailStr
from typing import Optional, Annotated
from datetime import datetime


class User(Document):
    email: Annotated[EmailStr, Indexed(unique=True)]

    first_name: str
    last_name: str
    phone: Optional[str] = None
    hashed_password: str

    is_active: bool = True

    created_at: datetime = Field(default_factory=datetime.utcnow)
    last_login: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Settings:
        name = "users"
