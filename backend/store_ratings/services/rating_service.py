"""
Rating service: the single entry point for rating mutations.

Each operation is one transaction: validate, ask the access gate, mutate
the rating store, recompute the store aggregate, commit. Any failure rolls
the whole unit back, so a store's aggregate never disagrees with its rows.
"""

import enum
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy.orm import Session

from ..core.logging import get_logger
from ..models.rating import Rating
from ..models.store import Store
from ..models.user import User
from . import aggregates, rating_store
from .access import CallerIdentity, can_delete_rating, can_submit_rating
from .aggregates import StoreAggregate
from .errors import (
    AggregateRecomputeError,
    Forbidden,
    InvalidRating,
    RatingConflict,
    RatingNotFound,
    StoreNotFound,
)

logger = get_logger(__name__)

MIN_RATING = 1
MAX_RATING = 5


class RatingOutcome(str, enum.Enum):
    CREATED = "created"
    UPDATED = "updated"


@dataclass
class SubmitResult:
    outcome: RatingOutcome
    rating: Rating
    aggregate: StoreAggregate


def get_store(db: Session, store_id: int) -> Optional[Store]:
    return db.query(Store).filter(Store.id == store_id).first()


def validate_rating_value(value) -> int:
    # bool is an int subclass; True must not count as a 1
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRating("Rating must be a whole number")
    if value < MIN_RATING or value > MAX_RATING:
        raise InvalidRating(f"Rating must be between {MIN_RATING} and {MAX_RATING}")
    return value


def _check(decision) -> None:
    if not decision.allowed:
        raise Forbidden(decision.reason.value, decision.message)


def _upsert_with_retry(db: Session, user_id: int, store_id: int, value: int):
    try:
        return rating_store.upsert(db, user_id, store_id, value)
    except RatingConflict:
        logger.warning(
            f"Retrying rating for user_id={user_id}, store_id={store_id} as an update",
            extra={"user_id": user_id, "store_id": store_id},
        )
    # The competing row is committed now; a second conflict is surfaced as transient
    return rating_store.upsert(db, user_id, store_id, value)


def submit(db: Session, caller: Optional[CallerIdentity], store_id: int, value) -> SubmitResult:
    """
    Create or update the caller's rating for a store.

    Raises:
        InvalidRating, StoreNotFound, Forbidden, RatingConflict,
        AggregateRecomputeError
    """
    value = validate_rating_value(value)
    try:
        store = get_store(db, store_id)
        if store is None:
            raise StoreNotFound(store_id)
        _check(can_submit_rating(caller, store))

        rating, created = _upsert_with_retry(db, caller.id, store_id, value)
        aggregate = aggregates.recompute(db, store_id)
        db.commit()
    except AggregateRecomputeError:
        db.rollback()
        logger.error(
            f"Rolled back rating by user_id={caller.id} for store_id={store_id}",
            exc_info=True,
            extra={"user_id": caller.id, "store_id": store_id},
        )
        raise
    except Exception:
        db.rollback()
        raise

    db.refresh(rating)
    outcome = RatingOutcome.CREATED if created else RatingOutcome.UPDATED
    logger.info(
        f"Rating {outcome.value}: user_id={caller.id}, store_id={store_id}, rating={value}, "
        f"average={aggregate.average_rating}, total={aggregate.total_ratings}",
        extra={
            "event": f"rating_{outcome.value}",
            "user_id": caller.id,
            "store_id": store_id,
            "rating_id": rating.id,
        },
    )
    return SubmitResult(outcome=outcome, rating=rating, aggregate=aggregate)


def delete(db: Session, caller: Optional[CallerIdentity], rating_id: int) -> StoreAggregate:
    """
    Delete a rating and refresh its former store's aggregate.

    Raises:
        RatingNotFound, Forbidden, AggregateRecomputeError
    """
    try:
        rating = rating_store.get_rating(db, rating_id)
        if rating is None:
            raise RatingNotFound(rating_id)
        _check(can_delete_rating(caller, rating))

        store_id = rating.store_id
        rating_store.delete(db, rating_id)
        aggregate = aggregates.recompute(db, store_id)
        db.commit()
    except AggregateRecomputeError:
        db.rollback()
        logger.error(f"Rolled back deletion of rating {rating_id}", exc_info=True, extra={"rating_id": rating_id})
        raise
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Rating {rating_id} deleted by user_id={caller.id}; store_id={store_id} "
        f"average={aggregate.average_rating}, total={aggregate.total_ratings}",
        extra={"event": "rating_deleted", "rating_id": rating_id, "store_id": store_id},
    )
    return aggregate


def _caller(caller_id: Optional[int], caller_role) -> Optional[CallerIdentity]:
    if caller_id is None or caller_role is None:
        return None
    return CallerIdentity(id=caller_id, role=caller_role)


def submit_rating(db: Session, caller_id: Optional[int], caller_role, store_id: int, value) -> SubmitResult:
    """Boundary form of submit() taking an already-resolved id and role"""
    return submit(db, _caller(caller_id, caller_role), store_id, value)


def delete_rating(db: Session, caller_id: Optional[int], caller_role, rating_id: int) -> StoreAggregate:
    """Boundary form of delete() taking an already-resolved id and role"""
    return delete(db, _caller(caller_id, caller_role), rating_id)


def remove_store(db: Session, store: Store) -> None:
    """
    Delete a store together with its ratings in one transaction.
    No aggregate survives to recompute.
    """
    store_id = store.id
    try:
        removed = rating_store.delete_by_store(db, store_id)
        db.delete(store)
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"Store {store_id} deleted with {removed} rating(s)",
        extra={"event": "store_deleted", "store_id": store_id},
    )


def remove_user(db: Session, user: User) -> List[int]:
    """
    Delete a user, the stores they own and the ratings they wrote.

    Every surviving store the user had rated is recomputed before the
    commit, so foreign-key cascades never leave a stale aggregate.

    Returns:
        Ids of the stores whose aggregate was recomputed
    """
    user_id = user.id
    try:
        owned_ids = set()
        for store in db.query(Store).filter(Store.owner_id == user_id).all():
            owned_ids.add(store.id)
            rating_store.delete_by_store(db, store.id)
            db.delete(store)
        db.flush()

        rated_ids = [sid for sid in rating_store.delete_by_user(db, user_id) if sid not in owned_ids]
        for store_id in rated_ids:
            aggregates.recompute(db, store_id)

        db.delete(user)
        db.commit()
    except AggregateRecomputeError:
        db.rollback()
        logger.error(f"Rolled back deletion of user {user_id}", exc_info=True, extra={"user_id": user_id})
        raise
    except Exception:
        db.rollback()
        raise

    logger.info(
        f"User {user_id} deleted; recomputed stores {rated_ids}",
        extra={"event": "user_deleted", "user_id": user_id},
    )
    return rated_ids
