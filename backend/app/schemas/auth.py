"""
Auth schemas
"""
from pydantic import BaseModel, EmailStr
from pydantic.alias_generators import to_camel
from datetime import datetime
from typing import Optional


class UserCreate(BaseModel):
    """User registration"""
    email: EmailStr
    password: str
    name: Optional[str] = None


class UserResponse(BaseModel):
    """User as returned by the API and used as the request's current user"""
    id: str
    email: str
    name: Optional[str] = None
    role: str
    subscription_id: Optional[str] = None
    is_active: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        alias_generator = to_camel
        populate_by_name = True

    @property
    def is_admin(self) -> bool:
        return self.role == "ADMIN"


class Token(BaseModel):
    """Token response"""
    access_token: str
    token_type: str = "bearer"
