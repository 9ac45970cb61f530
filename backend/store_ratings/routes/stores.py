"""
Store routes. Aggregate fields are read-only here; only the rating
service writes them.
"""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from ..database import get_db
from ..models.store import Store
from ..models.user import User
from ..models.rating import Rating
from ..enums.user import UserRole
from ..schemas.store import StoreCreate, StoreUpdate, StoreResponse
from ..auth.dependencies import get_current_active_user, get_optional_user, require_admin, require_roles
from ..services import rating_service
from ..core.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


def _with_viewer_rating(stores: List[Store], viewer: Optional[User], db: Session) -> List[StoreResponse]:
    my_ratings = {}
    if viewer is not None and stores:
        rows = db.query(Rating.store_id, Rating.rating).filter(
            Rating.user_id == viewer.id,
            Rating.store_id.in_([s.id for s in stores])
        ).all()
        my_ratings = {store_id: value for store_id, value in rows}

    responses = []
    for store in stores:
        response = StoreResponse.model_validate(store)
        response.my_rating = my_ratings.get(store.id)
        responses.append(response)
    return responses


@router.post("/", response_model=StoreResponse, status_code=status.HTTP_201_CREATED)
def create_store(
    store_data: StoreCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_admin)
):
    """Create a store (admin only); the owner must be a store owner"""
    owner = db.query(User).filter(User.id == store_data.owner_id).first()
    if not owner or owner.role != UserRole.STORE_OWNER:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="owner_id must reference a store owner"
        )
    if db.query(Store).filter(Store.email == store_data.email.lower()).first():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Store email address already in use"
        )

    try:
        store = Store(
            name=store_data.name,
            email=store_data.email.lower(),
            address=store_data.address,
            owner_id=store_data.owner_id,
            created_by=current_user.email,
        )
        db.add(store)
        db.commit()
        db.refresh(store)
    except Exception as e:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to create store: {str(e)}"
        )

    logger.info(f"Store {store.id} created for owner {owner.id}")
    return store


@router.get("/", response_model=List[StoreResponse])
def get_stores(
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    search: Optional[str] = None,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    """List stores (public); includes the viewer's own rating when logged in"""
    query = db.query(Store)
    if search:
        search_term = f"%{search}%"
        query = query.filter(
            (Store.name.ilike(search_term)) |
            (Store.address.ilike(search_term))
        )
    stores = query.order_by(Store.name).offset(skip).limit(limit).all()
    return _with_viewer_rating(stores, current_user, db)


@router.get("/owner/my-stores", response_model=List[StoreResponse])
def get_my_stores(
    current_user: User = Depends(require_roles(UserRole.STORE_OWNER)),
    db: Session = Depends(get_db)
):
    """Stores owned by the current store owner"""
    return db.query(Store).filter(Store.owner_id == current_user.id).order_by(Store.name).all()


@router.get("/{store_id}", response_model=StoreResponse)
def get_store(
    store_id: int,
    current_user: Optional[User] = Depends(get_optional_user),
    db: Session = Depends(get_db)
):
    store = rating_service.get_store(db, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")
    return _with_viewer_rating([store], current_user, db)[0]


@router.put("/{store_id}", response_model=StoreResponse)
def update_store(
    store_id: int,
    store_update: StoreUpdate,
    current_user: User = Depends(get_current_active_user),
    db: Session = Depends(get_db)
):
    """Update store details (its owner or an admin); rating fields are not editable"""
    store = rating_service.get_store(db, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")

    if store.owner_id != current_user.id and current_user.role != UserRole.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to update this store"
        )

    changes = store_update.dict(exclude_unset=True)
    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        taken = db.query(Store).filter(Store.email == changes["email"], Store.id != store_id).first()
        if taken:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Store email address already in use"
            )

    for field, value in changes.items():
        if value is None and field != "address":
            continue
        setattr(store, field, value)
    store.updated_by = current_user.email
    db.commit()
    db.refresh(store)
    return _with_viewer_rating([store], current_user, db)[0]


@router.delete("/{store_id}")
def delete_store(
    store_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a store and its ratings (admin only)"""
    store = rating_service.get_store(db, store_id)
    if not store:
        raise HTTPException(status_code=404, detail="Store not found")

    rating_service.remove_store(db, store)
    logger.info(f"Store {store_id} deleted by admin {current_user.id}")
    return {"message": "Store deleted successfully."}
