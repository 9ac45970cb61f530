"""
JWT creation and verification
"""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt
from pydantic import BaseModel

from ..config import settings
from ..enums.user import UserRole


class TokenData(BaseModel):
    user_id: int
    role: UserRole


class InvalidTokenError(Exception):
    pass


def create_access_token(user_id: int, role: UserRole, expires_delta: Optional[timedelta] = None) -> str:
    """Create a signed access token for a user"""
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.access_token_expire_minutes)
    )
    to_encode = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "exp": expire,
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    return jwt.encode(to_encode, settings.secret_key, algorithm=settings.algorithm)


def verify_token(token: str) -> TokenData:
    """
    Decode and validate an access token

    Raises:
        InvalidTokenError: signature, expiry, issuer or audience check failed
    """
    try:
        payload = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
        return TokenData(user_id=int(payload["sub"]), role=payload["role"])
    except (JWTError, KeyError, ValueError) as e:
        raise InvalidTokenError("Invalid or expired token") from e
