"""
User Endpoints Module

Profile endpoints for the authenticated user.
"""
from typing import Any
from fastapi import APIRouter, Depends, HTTPException
from sqlmodel import Session, select
from simplifly.api import deps
from simplifly.db.session import get_db
from simplifly.models.user import User
from simplifly.schemas.user import UserRead, UserUpdate
from simplifly.core.security import get_password_hash

router = APIRouter()


@router.get("/me", response_model=UserRead)
def read_user_me(
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """
    Get the current authenticated user's profile.
    """
    return current_user


@router.put("/me", response_model=UserRead)
def update_user_me(
    *,
    db: Session = Depends(get_db),
    user_in: UserUpdate,
    current_user: User = Depends(deps.get_current_active_user),
) -> Any:
    """
    Update the current user's own profile.

    Only provided fields are updated. A new password is hashed before storage.

    Raises:
        HTTPException 400: If the new email is already used by another account
    """
    update_data = user_in.model_dump(exclude_unset=True)

    if update_data.get("email"):
        update_data["email"] = update_data["email"].lower()
        existing = db.exec(select(User).where(User.email == update_data["email"])).first()
        if existing and existing.id != current_user.id:
            raise HTTPException(status_code=400, detail="User with this email already exists.")

    if update_data.get("password"):
        update_data["password"] = get_password_hash(update_data["password"])

    for field, value in update_data.items():
        # Required columns are never cleared
        if value is None and field in ("email", "name", "password"):
            continue
        setattr(current_user, field, value)

    db.add(current_user)
    db.commit()
    db.refresh(current_user)
    return current_user
