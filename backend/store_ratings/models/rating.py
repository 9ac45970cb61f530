"""
Rating model: one 1-5 score per user per store
"""

from sqlalchemy import Column, Integer, ForeignKey, UniqueConstraint, CheckConstraint
from sqlalchemy.orm import relationship, backref
from .base import BaseModel


class Rating(BaseModel):
    __tablename__ = "ratings"
    __table_args__ = (
        UniqueConstraint("user_id", "store_id", name="unique_user_store_rating"),
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_rating_range"),
    )

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    store_id = Column(Integer, ForeignKey("stores.id", ondelete="CASCADE"), nullable=False, index=True)

    # Rating (1-5 stars)
    rating = Column(Integer, nullable=False, index=True)

    # Relationships
    user = relationship("User", backref=backref("ratings", passive_deletes=True))
    store = relationship("Store", backref=backref("ratings", passive_deletes=True))
