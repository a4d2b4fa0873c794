"""User endpoints."""
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from crowdfund.db import get_db
from crowdfund.models.user import User, UserRole
from crowdfund.schemas.user import UserCreate, UserDeleted, UserRead, UserUpdate
from crowdfund.security import get_current_user, require_roles
from crowdfund.services import users as users_service
from crowdfund.utils.audit import actor_for_user, log_audit
from crowdfund.utils.errors import error_response

router = APIRouter(prefix="/users", tags=["users"])


@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
)
def create_user(
    payload: UserCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles({UserRole.ADMIN})),
) -> User:
    """Create a new user with the requested role (admin only)."""

    user = User(**payload.model_dump())
    db.add(user)
    try:
        db.flush()
    except IntegrityError as exc:
        db.rollback()
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=error_response("USER_CREATE_FAILED", "Username or email already in use."),
        ) from exc

    log_audit(
        db,
        actor=actor_for_user(admin),
        action="CREATE_USER",
        entity="User",
        entity_id=user.id,
        data={"username": user.username, "email": user.email, "role": user.role.value},
    )
    db.commit()
    db.refresh(user)
    return user


@router.get("/me", response_model=UserRead)
def read_me(user: User = Depends(get_current_user)) -> User:
    return user


@router.put("/me", response_model=UserRead)
def update_me(
    payload: UserUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> User:
    """Update the caller's own profile."""

    return users_service.update_profile(db, user, payload)


@router.delete("/me", response_model=UserDeleted)
def delete_me(
    db: Session = Depends(get_db),
    user: User = Depends(get_current_user),
) -> UserDeleted:
    user_id = user.id
    mode = users_service.delete_account(db, user)
    return UserDeleted(user_id=user_id, mode=mode)


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(require_roles({UserRole.ADMIN})),
) -> User:
    """Retrieve a user by identifier."""

    user = db.get(User, user_id)
    if not user:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=error_response("USER_NOT_FOUND", "User not found."),
        )
    return user
