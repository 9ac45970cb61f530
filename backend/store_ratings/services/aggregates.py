"""
Store aggregate recomputation.

average_rating and total_ratings are always rebuilt from the full set of
rating rows, never adjusted by deltas. Callers run recompute() inside the
same transaction as the rating mutation it follows.
"""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterable, List

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..core.logging import get_logger
from ..models.store import Store
from . import rating_store
from .errors import AggregateRecomputeError

logger = get_logger(__name__)

TWO_PLACES = Decimal("0.01")
ZERO_AVERAGE = Decimal("0.00")


@dataclass(frozen=True)
class StoreAggregate:
    average_rating: Decimal
    total_ratings: int


def compute_aggregate(values: Iterable[int]) -> StoreAggregate:
    """Mean rounded half-up to two places, and count; 0.00/0 when empty"""
    values = list(values)
    if not values:
        return StoreAggregate(average_rating=ZERO_AVERAGE, total_ratings=0)
    average = (Decimal(sum(values)) / Decimal(len(values))).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)
    return StoreAggregate(average_rating=average, total_ratings=len(values))


def locked_store_query(db: Session, store_id: int):
    """
    Store row read with FOR NO KEY UPDATE.

    Inserting a rating takes FOR KEY SHARE on the parent store through the
    foreign key; a plain FOR UPDATE here would conflict with that lock and
    deadlock two raters of the same store.
    """
    return db.query(Store).filter(Store.id == store_id).with_for_update(key_share=True).populate_existing()


def recompute(db: Session, store_id: int) -> StoreAggregate:
    """
    Rebuild and write back the aggregate for one store.

    The store row stays locked until the transaction ends, so the
    aggregate write-backs of one store serialize. Does not commit.

    Raises:
        AggregateRecomputeError: the store is gone or the database failed;
            the caller must roll back the enclosing transaction.
    """
    try:
        store = locked_store_query(db, store_id).first()
        if store is None:
            raise AggregateRecomputeError(f"Store {store_id} disappeared during recomputation")

        aggregate = compute_aggregate(r.rating for r in rating_store.list_by_store(db, store_id))
        store.average_rating = aggregate.average_rating
        store.total_ratings = aggregate.total_ratings
        db.flush()
    except SQLAlchemyError as e:
        raise AggregateRecomputeError(f"Failed to recompute rating statistics for store {store_id}") from e

    logger.debug(
        f"Recomputed store {store_id}: average={aggregate.average_rating}, total={aggregate.total_ratings}"
    )
    return aggregate


def reconcile_all(db: Session) -> List[int]:
    """
    Recompute every store and commit.

    Returns:
        Ids of stores whose stored aggregate did not match their ratings
    """
    drifted = []
    try:
        for store in db.query(Store).order_by(Store.id).all():
            before = StoreAggregate(
                average_rating=Decimal(store.average_rating or 0).quantize(TWO_PLACES),
                total_ratings=store.total_ratings or 0,
            )
            after = recompute(db, store.id)
            if after != before:
                drifted.append(store.id)
                logger.warning(
                    f"Store {store.id} aggregate drifted: {before} -> {after}",
                    extra={"store_id": store.id},
                )
        db.commit()
    except Exception:
        db.rollback()
        raise

    logger.info(f"Reconciled rating statistics, {len(drifted)} store(s) corrected")
    return drifted
