"""
Access gate for rating mutations.

Pure decision functions: given who is calling and what they want to touch,
return an AccessDecision. Nothing here reads or writes the database; the
rating service turns a denial into a Forbidden error.
"""

import enum
from dataclasses import dataclass
from typing import Optional

from ..enums.user import UserRole


class DenyReason(str, enum.Enum):
    UNAUTHENTICATED = "unauthenticated"
    SELF_RATING_FORBIDDEN = "self-rating-forbidden"
    FORBIDDEN_NOT_OWNER = "forbidden-not-owner"


DENY_MESSAGES = {
    DenyReason.UNAUTHENTICATED: "Authentication required.",
    DenyReason.SELF_RATING_FORBIDDEN: "You cannot rate your own store.",
    DenyReason.FORBIDDEN_NOT_OWNER: "You can only delete your own ratings.",
}

RATING_ROLES = frozenset({UserRole.USER, UserRole.STORE_OWNER, UserRole.ADMIN})


@dataclass(frozen=True)
class CallerIdentity:
    id: int
    role: UserRole

    @classmethod
    def from_user(cls, user) -> "CallerIdentity":
        return cls(id=user.id, role=UserRole(user.role))


@dataclass(frozen=True)
class AccessDecision:
    allowed: bool
    reason: Optional[DenyReason] = None

    @property
    def message(self) -> Optional[str]:
        return DENY_MESSAGES.get(self.reason) if self.reason else None


ALLOW = AccessDecision(allowed=True)


def deny(reason: DenyReason) -> AccessDecision:
    return AccessDecision(allowed=False, reason=reason)


def _is_authenticated(caller: Optional[CallerIdentity]) -> bool:
    return caller is not None and caller.role in RATING_ROLES


def can_submit_rating(caller: Optional[CallerIdentity], store) -> AccessDecision:
    """Any authenticated role may rate a store it does not own"""
    if not _is_authenticated(caller):
        return deny(DenyReason.UNAUTHENTICATED)
    if store.owner_id == caller.id:
        return deny(DenyReason.SELF_RATING_FORBIDDEN)
    return ALLOW


def can_delete_rating(caller: Optional[CallerIdentity], rating) -> AccessDecision:
    """Admins may delete any rating, everyone else only their own"""
    if not _is_authenticated(caller):
        return deny(DenyReason.UNAUTHENTICATED)
    if caller.role == UserRole.ADMIN or rating.user_id == caller.id:
        return ALLOW
    return deny(DenyReason.FORBIDDEN_NOT_OWNER)
