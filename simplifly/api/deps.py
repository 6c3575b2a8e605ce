"""
API Dependencies Module

This module provides FastAPI dependency functions for authentication and authorization,
plus the workspace access checks shared by the resource endpoints.
It implements a dual authentication strategy supporting both bearer tokens (for API clients)
and HTTP-only cookies (for browser clients).
"""
from typing import Optional, Set
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError
from pydantic import ValidationError
from sqlmodel import Session, select

from simplifly.core.config import Settings, settings as default_settings
from simplifly.core.security import decode_access_token
from simplifly.db.session import get_db
from simplifly.models.ticket import Ticket
from simplifly.models.user import User
from simplifly.models.workspace import Workspace, WorkspaceMember
from simplifly.schemas.auth import TokenData

# Configure OAuth2 scheme to use the login endpoint
# auto_error=False allows us to check cookies as a fallback
reusable_oauth2 = OAuth2PasswordBearer(
    tokenUrl=f"{default_settings.API_V1_STR}/auth/login",
    auto_error=False  # Don't raise error immediately if Authorization header is missing
)


def get_settings(request: Request) -> Settings:
    """Settings the running application was built with."""
    return request.app.state.settings


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
    token: Optional[str] = Depends(reusable_oauth2),
    settings: Settings = Depends(get_settings),
) -> User:
    """
    Dependency that retrieves and validates the current authenticated user.

    Supports dual authentication methods:
    1. Bearer token in Authorization header (for API clients)
    2. HTTP-only cookie (for browser clients)

    Raises:
        HTTPException 401: If no token is provided, or it is invalid or expired
        HTTPException 404: If the user referenced in the token doesn't exist
    """
    # Try Authorization header first, then fall back to cookie
    if not token:
        token = request.cookies.get("access_token")
        # Cookie format is "Bearer <token>", so we need to extract the token
        if token and token.startswith("Bearer "):
            token = token.replace("Bearer ", "")

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        payload = decode_access_token(token, settings)
        token_data = TokenData(sub=payload.get("sub"))
    except (JWTError, ValidationError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not token_data.sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user = db.get(User, token_data.sub)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def get_current_active_user(
    current_user: User = Depends(get_current_user),
) -> User:
    """
    Dependency that requires any authenticated user.

    Kept separate from get_current_user so account-state checks
    (suspension, email verification) have a single place to live.
    """
    return current_user


def get_current_superadmin(
    current_user: User = Depends(get_current_active_user),
) -> User:
    """
    Dependency that requires the current user to be a superadmin.
    """
    if not current_user.is_superadmin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Superadmin access required"
        )
    return current_user


# === Workspace access helpers ===

def get_member_ids(db: Session, workspace: Workspace) -> Set[str]:
    """Ids of every workspace member; the owner is always included."""
    member_ids = set(
        db.exec(
            select(WorkspaceMember.user_id).where(WorkspaceMember.workspace_id == workspace.id)
        ).all()
    )
    member_ids.add(workspace.owner_id)
    return member_ids


def has_workspace_access(db: Session, workspace: Workspace, user: User) -> bool:
    return user.id in get_member_ids(db, workspace)


def get_member_workspace(db: Session, workspace_id: int, user: User) -> Workspace:
    """
    Load a workspace the user owns or belongs to.

    Raises:
        HTTPException 404: If it does not exist or the user has no access
    """
    workspace = db.get(Workspace, workspace_id)
    if not workspace or not has_workspace_access(db, workspace, user):
        raise HTTPException(status_code=404, detail="Workspace not found or access denied")
    return workspace


def get_owned_workspace(db: Session, workspace_id: int, user: User) -> Workspace:
    """
    Load a workspace owned by the user.

    Raises:
        HTTPException 404: If it does not exist or the user is not the owner
    """
    workspace = db.get(Workspace, workspace_id)
    if not workspace or workspace.owner_id != user.id:
        raise HTTPException(status_code=404, detail="Workspace not found or you are not the owner")
    return workspace


def get_accessible_ticket(db: Session, ticket_id: int, user: User) -> Ticket:
    """
    Load a ticket whose workspace the user owns or belongs to.

    Raises:
        HTTPException 404: If the ticket doesn't exist
        HTTPException 403: If the user has no access to its workspace
    """
    ticket = db.get(Ticket, ticket_id)
    if not ticket:
        raise HTTPException(status_code=404, detail="Ticket not found")

    workspace = db.get(Workspace, ticket.workspace_id)
    if not workspace or not has_workspace_access(db, workspace, user):
        raise HTTPException(status_code=403, detail="Access denied")
    return ticket
