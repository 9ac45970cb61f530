from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from store_ratings.enums.user import UserRole
from store_ratings.models.rating import Rating
from store_ratings.models.store import Store
from store_ratings.services import aggregates, rating_service, rating_store
from store_ratings.services.access import CallerIdentity
from store_ratings.services.errors import (
    AggregateRecomputeError,
    Forbidden,
    InvalidRating,
    RatingConflict,
    RatingNotFound,
    StoreNotFound,
)
from store_ratings.services.rating_service import RatingOutcome


def as_caller(user) -> CallerIdentity:
    return CallerIdentity.from_user(user)


def assert_consistent(db, store_id):
    db.expire_all()
    store = db.get(Store, store_id)
    values = [r.rating for r in db.query(Rating).filter(Rating.store_id == store_id)]
    expected = aggregates.compute_aggregate(values)
    assert store.total_ratings == expected.total_ratings
    assert Decimal(store.average_rating) == expected.average_rating


def test_rating_lifecycle_keeps_aggregate_exact(db, store, alice, bob, admin):
    assert store.total_ratings == 0
    assert Decimal(store.average_rating) == Decimal("0.00")

    result = rating_service.submit(db, as_caller(alice), store.id, 5)
    assert result.outcome == RatingOutcome.CREATED
    assert result.aggregate.average_rating == Decimal("5.00")
    assert result.aggregate.total_ratings == 1

    result = rating_service.submit(db, as_caller(bob), store.id, 3)
    assert result.outcome == RatingOutcome.CREATED
    assert result.aggregate.average_rating == Decimal("4.00")
    assert result.aggregate.total_ratings == 2
    bob_rating_id = result.rating.id

    result = rating_service.submit(db, as_caller(alice), store.id, 1)
    assert result.outcome == RatingOutcome.UPDATED
    assert result.aggregate.average_rating == Decimal("2.00")
    assert result.aggregate.total_ratings == 2

    aggregate = rating_service.delete(db, as_caller(admin), bob_rating_id)
    assert aggregate.average_rating == Decimal("1.00")
    assert aggregate.total_ratings == 1
    assert_consistent(db, store.id)


def test_same_submission_twice_updates_single_row(db, store, alice):
    first = rating_service.submit(db, as_caller(alice), store.id, 4)
    second = rating_service.submit(db, as_caller(alice), store.id, 4)

    assert first.outcome == RatingOutcome.CREATED
    assert second.outcome == RatingOutcome.UPDATED
    assert second.rating.id == first.rating.id
    assert db.query(Rating).filter(Rating.user_id == alice.id, Rating.store_id == store.id).count() == 1
    assert_consistent(db, store.id)


def test_owner_cannot_rate_own_store(db, store, owner):
    with pytest.raises(Forbidden) as excinfo:
        rating_service.submit(db, as_caller(owner), store.id, 4)

    assert excinfo.value.reason == "self-rating-forbidden"
    db.expire_all()
    assert store.total_ratings == 0
    assert db.query(Rating).count() == 0


def test_unauthenticated_caller_is_forbidden(db, store):
    with pytest.raises(Forbidden) as excinfo:
        rating_service.submit(db, None, store.id, 4)
    assert excinfo.value.reason == "unauthenticated"


@pytest.mark.parametrize("value", [0, 6, 3.5, "4", True, None])
def test_invalid_values_are_rejected_without_changes(db, store, alice, value):
    with pytest.raises(InvalidRating):
        rating_service.submit(db, as_caller(alice), store.id, value)
    assert db.query(Rating).count() == 0
    assert_consistent(db, store.id)


def test_unknown_store(db, alice):
    with pytest.raises(StoreNotFound):
        rating_service.submit(db, as_caller(alice), 999, 3)


def test_stranger_cannot_delete_rating(db, store, alice, bob, owner):
    rating = rating_service.submit(db, as_caller(alice), store.id, 2).rating
    rating_id = rating.id

    for intruder in (bob, owner):
        with pytest.raises(Forbidden) as excinfo:
            rating_service.delete(db, as_caller(intruder), rating_id)
        assert excinfo.value.reason == "forbidden-not-owner"

    assert rating_store.get_rating(db, rating_id) is not None
    assert_consistent(db, store.id)


def test_author_deletes_own_rating(db, store, alice):
    rating_id = rating_service.submit(db, as_caller(alice), store.id, 2).rating.id
    aggregate = rating_service.delete(db, as_caller(alice), rating_id)
    assert aggregate.total_ratings == 0
    assert aggregate.average_rating == Decimal("0.00")
    assert_consistent(db, store.id)


def test_delete_unknown_rating(db, alice):
    with pytest.raises(RatingNotFound):
        rating_service.delete(db, as_caller(alice), 31337)


def test_lost_insert_race_is_retried_as_update(db, store, alice, monkeypatch):
    rating_service.submit(db, as_caller(alice), store.id, 2)

    real_find = rating_store.find_by_user_and_store
    calls = {"n": 0}

    def stale_then_real(*args):
        calls["n"] += 1
        # First read misses the row a competing transaction just committed
        return None if calls["n"] == 1 else real_find(*args)

    monkeypatch.setattr(rating_store, "find_by_user_and_store", stale_then_real)
    result = rating_service.submit(db, as_caller(alice), store.id, 4)

    assert result.outcome == RatingOutcome.UPDATED
    assert result.aggregate.average_rating == Decimal("4.00")
    assert result.aggregate.total_ratings == 1
    assert db.query(Rating).count() == 1
    assert_consistent(db, store.id)


def test_repeated_conflict_is_surfaced(db, store, alice, monkeypatch):
    rating_service.submit(db, as_caller(alice), store.id, 2)
    monkeypatch.setattr(rating_store, "find_by_user_and_store", lambda *args: None)

    with pytest.raises(RatingConflict):
        rating_service.submit(db, as_caller(alice), store.id, 4)

    monkeypatch.undo()
    assert rating_store.find_by_user_and_store(db, alice.id, store.id).rating == 2
    assert_consistent(db, store.id)


def _break_recompute(monkeypatch):
    def broken(*args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("disk I/O error"))

    monkeypatch.setattr(rating_store, "list_by_store", broken)


def test_failed_recompute_rolls_back_submission(db, store, alice, monkeypatch):
    _break_recompute(monkeypatch)

    with pytest.raises(AggregateRecomputeError):
        rating_service.submit(db, as_caller(alice), store.id, 5)

    monkeypatch.undo()
    assert db.query(Rating).count() == 0
    assert_consistent(db, store.id)


def test_failed_recompute_rolls_back_deletion(db, store, alice, monkeypatch):
    rating_id = rating_service.submit(db, as_caller(alice), store.id, 5).rating.id
    _break_recompute(monkeypatch)

    with pytest.raises(AggregateRecomputeError):
        rating_service.delete(db, as_caller(alice), rating_id)

    monkeypatch.undo()
    assert rating_store.get_rating(db, rating_id) is not None
    db.expire_all()
    assert store.total_ratings == 1
    assert_consistent(db, store.id)


def test_boundary_functions_take_id_and_role(db, store, alice):
    result = rating_service.submit_rating(db, alice.id, UserRole.USER.value, store.id, 3)
    assert result.outcome == RatingOutcome.CREATED

    with pytest.raises(Forbidden):
        rating_service.delete_rating(db, None, None, result.rating.id)

    aggregate = rating_service.delete_rating(db, alice.id, "user", result.rating.id)
    assert aggregate.total_ratings == 0


def test_removing_a_rater_recomputes_every_store_they_rated(db, make_store, owner, alice, bob):
    first = make_store(owner)
    second = make_store(owner)
    rating_service.submit(db, as_caller(alice), first.id, 5)
    rating_service.submit(db, as_caller(alice), second.id, 3)
    rating_service.submit(db, as_caller(bob), first.id, 1)
    alice_id = alice.id

    recomputed = rating_service.remove_user(db, alice)

    assert recomputed == sorted([first.id, second.id])
    assert db.query(Rating).filter(Rating.user_id == alice_id).count() == 0
    assert_consistent(db, first.id)
    assert_consistent(db, second.id)
    assert first.total_ratings == 1
    assert Decimal(first.average_rating) == Decimal("1.00")
    assert second.total_ratings == 0


def test_removing_an_owner_drops_their_stores_only(db, make_user, make_store, owner, alice):
    other_owner = make_user(UserRole.STORE_OWNER)
    doomed = make_store(owner)
    kept = make_store(other_owner)
    rating_service.submit(db, as_caller(alice), doomed.id, 2)
    rating_service.submit(db, as_caller(alice), kept.id, 4)
    doomed_id, kept_id = doomed.id, kept.id

    assert rating_service.remove_user(db, owner) == []

    assert db.get(Store, doomed_id) is None
    assert db.query(Rating).filter(Rating.store_id == doomed_id).count() == 0
    assert_consistent(db, kept_id)
    assert db.get(Store, kept_id).total_ratings == 1


def test_failed_recompute_keeps_user(db, store, alice, monkeypatch):
    rating_service.submit(db, as_caller(alice), store.id, 4)
    alice_id = alice.id
    _break_recompute(monkeypatch)

    with pytest.raises(AggregateRecomputeError):
        rating_service.remove_user(db, alice)

    monkeypatch.undo()
    assert db.query(Rating).filter(Rating.user_id == alice_id).count() == 1
    assert_consistent(db, store.id)


def test_remove_store_deletes_its_ratings(db, store, alice, bob):
    rating_service.submit(db, as_caller(alice), store.id, 4)
    rating_service.submit(db, as_caller(bob), store.id, 2)
    store_id = store.id

    rating_service.remove_store(db, store)

    assert db.get(Store, store_id) is None
    assert db.query(Rating).count() == 0
