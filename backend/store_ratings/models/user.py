"""
User model for admins, store owners and regular users
"""

from sqlalchemy import Column, String, Boolean, Enum
from .base import BaseModel
from ..enums.user import UserRole


class User(BaseModel):
    __tablename__ = "users"

    name = Column(String(60), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    password_hash = Column(String(255), nullable=False)
    address = Column(String(400), nullable=True)
    role = Column(
        Enum(UserRole, values_callable=lambda roles: [r.value for r in roles], name="user_role"),
        nullable=False,
        default=UserRole.USER,
        index=True,
    )
    is_active = Column(Boolean, default=True, nullable=False)
