"""
Rating store: the only code that inserts, updates or deletes rating rows
"""

from datetime import datetime, timezone
from typing import List, Optional, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ..core.logging import get_logger
from ..models.rating import Rating
from .errors import RatingConflict, RatingNotFound

logger = get_logger(__name__)


def find_by_user_and_store(db: Session, user_id: int, store_id: int) -> Optional[Rating]:
    return db.query(Rating).filter(
        Rating.user_id == user_id,
        Rating.store_id == store_id
    ).first()


def get_rating(db: Session, rating_id: int) -> Optional[Rating]:
    return db.query(Rating).filter(Rating.id == rating_id).first()


def upsert(db: Session, user_id: int, store_id: int, value: int) -> Tuple[Rating, bool]:
    """
    Insert or update the rating for (user_id, store_id).

    Returns:
        (rating, created) where created is False when an existing row was updated

    Raises:
        RatingConflict: another transaction inserted the same pair first.
            The insert is contained in a SAVEPOINT, so the caller's
            transaction is still usable and may retry as an update.
    """
    existing = find_by_user_and_store(db, user_id, store_id)
    if existing is not None:
        existing.rating = value
        existing.updated_at = datetime.now(timezone.utc)
        db.flush()
        return existing, False

    rating = Rating(user_id=user_id, store_id=store_id, rating=value)
    try:
        with db.begin_nested():
            db.add(rating)
            db.flush()
    except IntegrityError as e:
        logger.warning(
            f"Concurrent insert detected for user_id={user_id}, store_id={store_id}",
            extra={"user_id": user_id, "store_id": store_id},
        )
        raise RatingConflict("A rating for this store was submitted concurrently") from e
    return rating, True


def delete(db: Session, rating_id: int) -> None:
    rating = get_rating(db, rating_id)
    if rating is None:
        raise RatingNotFound(rating_id)
    db.delete(rating)
    db.flush()


def delete_by_user(db: Session, user_id: int) -> List[int]:
    """Delete every rating written by a user; returns the affected store ids"""
    ratings = db.query(Rating).filter(Rating.user_id == user_id).all()
    store_ids = sorted({r.store_id for r in ratings})
    for rating in ratings:
        db.delete(rating)
    db.flush()
    return store_ids


def delete_by_store(db: Session, store_id: int) -> int:
    ratings = db.query(Rating).filter(Rating.store_id == store_id).all()
    for rating in ratings:
        db.delete(rating)
    db.flush()
    return len(ratings)


def list_by_store(db: Session, store_id: int) -> List[Rating]:
    """
    All ratings of a store, unordered; input for aggregate recomputation.
    Rows already in the session are refreshed so stale values are never counted.
    """
    return db.query(Rating).filter(Rating.store_id == store_id).populate_existing().all()
