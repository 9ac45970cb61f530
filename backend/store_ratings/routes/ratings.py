"""
Rating routes. Mutations go through services.rating_service only.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from sqlalchemy import desc
from sqlalchemy.orm import Session
from typing import List

from ..database import get_db
from ..models.rating import Rating
from ..models.user import User
from ..auth.dependencies import get_current_active_user
from ..schemas.rating import (
    RatingCreate,
    RatingResponse,
    RatingSubmitResponse,
    StoreRatingsResponse,
)
from ..schemas.store import StoreAggregateResponse
from ..services import rating_service, rating_store
from ..services.access import CallerIdentity, DenyReason
from ..services.errors import (
    AggregateRecomputeError,
    Forbidden,
    InvalidRating,
    RatingConflict,
    RatingError,
    RatingNotFound,
    StoreNotFound,
)
from ..services.rating_service import RatingOutcome

router = APIRouter()

ERROR_STATUS = {
    InvalidRating: status.HTTP_400_BAD_REQUEST,
    StoreNotFound: status.HTTP_404_NOT_FOUND,
    RatingNotFound: status.HTTP_404_NOT_FOUND,
    Forbidden: status.HTTP_403_FORBIDDEN,
    RatingConflict: status.HTTP_409_CONFLICT,
    AggregateRecomputeError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}

OUTCOME_MESSAGES = {
    RatingOutcome.CREATED: "Rating submitted successfully.",
    RatingOutcome.UPDATED: "Rating updated successfully.",
}


def to_http_exception(error: RatingError) -> HTTPException:
    """Map a rating error to an HTTPException with a structured detail"""
    status_code = ERROR_STATUS.get(type(error), status.HTTP_500_INTERNAL_SERVER_ERROR)
    if isinstance(error, Forbidden) and error.reason == DenyReason.UNAUTHENTICATED.value:
        status_code = status.HTTP_401_UNAUTHORIZED
    return HTTPException(status_code=status_code, detail=error.to_dict())


@router.post("/", response_model=RatingSubmitResponse, status_code=status.HTTP_201_CREATED)
def submit_rating(
    rating_data: RatingCreate,
    response: Response,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Submit a rating, or update the caller's existing rating for the store"""
    try:
        result = rating_service.submit(
            db, CallerIdentity.from_user(current_user), rating_data.store_id, rating_data.rating
        )
    except RatingError as e:
        raise to_http_exception(e)

    if result.outcome == RatingOutcome.UPDATED:
        response.status_code = status.HTTP_200_OK

    return RatingSubmitResponse(
        outcome=result.outcome,
        message=OUTCOME_MESSAGES[result.outcome],
        rating=RatingResponse.model_validate(result.rating),
        store=StoreAggregateResponse(
            id=rating_data.store_id,
            average_rating=result.aggregate.average_rating,
            total_ratings=result.aggregate.total_ratings,
        ),
    )


@router.delete("/{rating_id}")
def delete_rating(
    rating_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Delete a rating (its author or an admin)"""
    try:
        rating_service.delete(db, CallerIdentity.from_user(current_user), rating_id)
    except RatingError as e:
        raise to_http_exception(e)

    return {"message": "Rating deleted successfully."}


@router.get("/store/{store_id}", response_model=StoreRatingsResponse)
def get_store_ratings(
    store_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db)
):
    """Ratings for a store, newest first (public endpoint)"""
    store = rating_service.get_store(db, store_id)
    if not store:
        raise to_http_exception(StoreNotFound(store_id))

    query = db.query(Rating).filter(Rating.store_id == store_id)
    total = query.count()
    ratings = query.order_by(desc(Rating.created_at), desc(Rating.id)).offset(skip).limit(limit).all()

    return StoreRatingsResponse(
        store=StoreAggregateResponse(
            id=store.id,
            average_rating=store.average_rating,
            total_ratings=store.total_ratings,
        ),
        ratings=[RatingResponse.model_validate(r) for r in ratings],
        total=total,
    )


@router.get("/my-ratings", response_model=List[RatingResponse])
def get_my_ratings(
    skip: int = Query(0, ge=0),
    limit: int = Query(10, ge=1, le=100),
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Ratings submitted by the current user"""
    return db.query(Rating).filter(
        Rating.user_id == current_user.id
    ).order_by(desc(Rating.created_at), desc(Rating.id)).offset(skip).limit(limit).all()


@router.get("/my-rating/store/{store_id}", response_model=RatingResponse)
def get_my_store_rating(
    store_id: int,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    rating = rating_store.find_by_user_and_store(db, current_user.id, store_id)
    if not rating:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="You have not rated this store yet."
        )
    return rating
