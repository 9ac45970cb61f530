"""
Admin user management routes
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ..database import get_db
from ..models.user import User
from ..enums.user import UserRole
from ..schemas.user import UserCreate, UserUpdate, UserResponse
from ..auth.dependencies import require_admin
from ..core.security import hash_password
from ..services import rating_service
from ..services.errors import RatingError
from ..core.logging import get_logger
from .ratings import to_http_exception

logger = get_logger(__name__)
router = APIRouter()


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.get("/", response_model=List[UserResponse])
def get_users(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    role: Optional[UserRole] = None,
    search: Optional[str] = None,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """List users with optional role filter and name/email/address search"""
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            (User.name.ilike(search_term)) |
            (User.email.ilike(search_term)) |
            (User.address.ilike(search_term))
        )
    return query.order_by(User.name, User.id).offset(skip).limit(limit).all()


@router.get("/role/{role}", response_model=List[UserResponse])
def get_users_by_role(
    role: UserRole,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return db.query(User).filter(User.role == role).order_by(User.name, User.id).all()


@router.get("/{user_id}", response_model=UserResponse)
def get_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    return _get_user_or_404(db, user_id)


@router.post("/", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_data: UserCreate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Create an account with any role (admin only)"""
    email = user_data.email.lower()
    if db.query(User).filter(User.email == email).first():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email address already in use")

    try:
        user = User(
            name=user_data.name,
            email=email,
            address=user_data.address,
            password_hash=hash_password(user_data.password),
            role=user_data.role,
            created_by=current_user.email,
        )
        db.add(user)
        db.commit()
        db.refresh(user)
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to create user {email}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create user"
        )

    logger.info(f"User {user.id} created with role {user.role.value} by admin {current_user.id}")
    return user


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: int,
    user_update: UserUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    user = _get_user_or_404(db, user_id)
    changes = user_update.dict(exclude_unset=True)

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        taken = db.query(User).filter(User.email == changes["email"], User.id != user_id).first()
        if taken:
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Email address already in use")

    for field, value in changes.items():
        if value is None and field != "address":
            continue
        setattr(user, field, value)
    user.updated_by = current_user.email
    db.commit()
    db.refresh(user)
    return user


@router.delete("/{user_id}")
def delete_user(
    user_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a user, their stores and their ratings (admin only)"""
    if user_id == current_user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You cannot delete your own account."
        )
    user = _get_user_or_404(db, user_id)

    try:
        rating_service.remove_user(db, user)
    except RatingError as e:
        raise to_http_exception(e)

    return {"message": "User deleted successfully."}
