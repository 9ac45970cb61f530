"""
User schemas for request/response models
"""

import re
from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from datetime import datetime
from ..enums.user import UserRole

SPECIAL_CHARACTERS = r'[!@#$%^&*(),.?":{}|<>]'


class UserRegister(BaseModel):
    name: str = Field(..., min_length=20, max_length=60)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=16)
    address: Optional[str] = Field(None, max_length=400)

    @field_validator("name")
    @classmethod
    def name_letters_only(cls, value: str) -> str:
        if not re.fullmatch(r"[A-Za-z\s]+", value):
            raise ValueError("Name can only contain letters and spaces")
        return value

    @field_validator("password")
    @classmethod
    def password_strength(cls, value: str) -> str:
        if not re.search(r"[A-Z]", value) or not re.search(SPECIAL_CHARACTERS, value):
            raise ValueError("Password must contain at least one uppercase letter and one special character")
        return value


class UserCreate(UserRegister):
    """Admin-created account; any role may be assigned"""
    role: UserRole = UserRole.USER


class UserUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=20, max_length=60)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=400)
    role: Optional[UserRole] = None  # Only admins can update roles
    is_active: Optional[bool] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=20, max_length=60)
    address: Optional[str] = Field(None, max_length=400)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class UserResponse(BaseModel):
    id: int
    name: str
    email: str
    address: Optional[str]
    role: UserRole
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
