"""
Rating schemas
"""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime

from ..services.rating_service import RatingOutcome
from .store import StoreAggregateResponse


class RatingCreate(BaseModel):
    store_id: int
    rating: int = Field(..., ge=1, le=5, description="Rating must be between 1 and 5")


class RatingResponse(BaseModel):
    id: int
    user_id: int
    store_id: int
    rating: int
    created_at: datetime
    updated_at: Optional[datetime]

    class Config:
        from_attributes = True


class RatingSubmitResponse(BaseModel):
    outcome: RatingOutcome
    message: str
    rating: RatingResponse
    store: StoreAggregateResponse


class StoreRatingsResponse(BaseModel):
    store: StoreAggregateResponse
    ratings: List[RatingResponse]
    total: int
