"""
User enums
"""

import enum


class UserRole(str, enum.Enum):
    ADMIN = "admin"
    USER = "user"
    STORE_OWNER = "store_owner"
