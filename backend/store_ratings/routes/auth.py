"""
Authentication routes: register, login, profile
"""

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..models.user import User
from ..enums.user import UserRole
from ..schemas.user import UserRegister, UserLogin, UserResponse, TokenResponse, ProfileUpdate
from ..auth.dependencies import get_current_active_user
from ..auth.jwt_handler import create_access_token
from ..core.security import hash_password, verify_password
from ..core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
def register(user_data: UserRegister, db: Session = Depends(get_db)):
    """Register a regular user account"""
    if db.query(User).filter(User.email == user_data.email.lower()).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Email address already in use"
        )

    try:
        user = User(
            name=user_data.name,
            email=user_data.email.lower(),
            address=user_data.address,
            password_hash=hash_password(user_data.password),
            role=UserRole.USER,
            created_by=user_data.email.lower(),
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to register {user_data.email}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to register user"
        )

    logger.info(f"Registered user {user.id}")
    token = create_access_token(user.id, user.role)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    user = db.query(User).filter(User.email == credentials.email.lower()).first()
    if not user or not verify_password(credentials.password, user.password_hash):
        logger.warning(f"Failed login attempt for {credentials.email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password"
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    token = create_access_token(user.id, user.role)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.get("/me", response_model=UserResponse)
def me(current_user: User = Depends(get_current_active_user)):
    return current_user


@router.put("/profile", response_model=UserResponse)
def update_profile(
    profile_update: ProfileUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Update the caller's own name and address"""
    changes = profile_update.dict(exclude_unset=True)
    if changes.get("name"):
        current_user.name = changes["name"]
    if "address" in changes:
        current_user.address = changes["address"]
    current_user.updated_by = current_user.email
    db.commit()
    db.refresh(current_user)
    return current_user
