"""
Store schemas
"""

from decimal import Decimal
from pydantic import BaseModel, EmailStr, Field
from typing import Optional
from datetime import datetime


class StoreCreate(BaseModel):
    name: str = Field(..., min_length=20, max_length=60)
    email: EmailStr
    address: Optional[str] = Field(None, max_length=400)
    owner_id: int


class StoreUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=20, max_length=60)
    email: Optional[EmailStr] = None
    address: Optional[str] = Field(None, max_length=400)


class StoreResponse(BaseModel):
    id: int
    name: str
    email: str
    address: Optional[str]
    owner_id: int
    average_rating: Decimal
    total_ratings: int
    created_at: datetime
    my_rating: Optional[int] = None  # Viewer's own rating, when authenticated

    class Config:
        from_attributes = True


class StoreAggregateResponse(BaseModel):
    id: int
    average_rating: Decimal
    total_ratings: int
