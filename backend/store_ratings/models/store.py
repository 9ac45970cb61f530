"""
Store model; average_rating and total_ratings are derived from ratings
"""

from sqlalchemy import Column, Integer, ForeignKey, String, Numeric, CheckConstraint
from sqlalchemy.orm import relationship, backref
from .base import BaseModel


class Store(BaseModel):
    __tablename__ = "stores"
    __table_args__ = (
        CheckConstraint("average_rating >= 0 AND average_rating <= 5", name="ck_store_average_rating_range"),
        CheckConstraint("total_ratings >= 0", name="ck_store_total_ratings_non_negative"),
    )

    name = Column(String(60), nullable=False, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    address = Column(String(400), nullable=True)
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    # Written only by services.aggregates
    average_rating = Column(Numeric(3, 2), nullable=False, default=0, server_default="0.00", index=True)
    total_ratings = Column(Integer, nullable=False, default=0, server_default="0")

    # Relationships
    owner = relationship("User", backref=backref("owned_stores", passive_deletes=True))
