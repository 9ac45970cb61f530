"""
Error taxonomy for rating operations
"""

from typing import Optional


class RatingError(Exception):
    """Base error carrying a machine-readable kind and a human message"""

    kind = "rating_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"kind": self.kind, "message": self.message}


class InvalidRating(RatingError):
    kind = "invalid_rating"


class StoreNotFound(RatingError):
    kind = "store_not_found"

    def __init__(self, store_id: int):
        super().__init__("Store not found")
        self.store_id = store_id


class RatingNotFound(RatingError):
    kind = "rating_not_found"

    def __init__(self, rating_id: int):
        super().__init__("Rating not found")
        self.rating_id = rating_id


class Forbidden(RatingError):
    kind = "forbidden"

    def __init__(self, reason: str, message: Optional[str] = None):
        super().__init__(message or reason)
        self.reason = reason

    def to_dict(self) -> dict:
        data = super().to_dict()
        data["reason"] = self.reason
        return data


class RatingConflict(RatingError):
    """Lost a race on the (user_id, store_id) unique index"""

    kind = "conflict"


class AggregateRecomputeError(RatingError):
    kind = "aggregate_recompute_failure"
