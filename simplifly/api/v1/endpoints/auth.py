"""
Authentication Endpoints Module

This module provides authentication endpoints for user registration, login, and logout.
The system supports both JWT bearer token authentication and HTTP-only cookie-based
authentication for browser clients.
"""
from fastapi import APIRouter, Depends, HTTPException, status, Response
from fastapi.security import OAuth2PasswordRequestForm
from sqlmodel import Session, select
from simplifly.api import deps
from simplifly.core.config import Settings
from simplifly.core.logger import get_logger
from simplifly.core.security import verify_password, get_password_hash, create_access_token
from simplifly.db.session import get_db
from simplifly.models.user import User, UserRole
from simplifly.schemas.auth import Token, UserRegister
from simplifly.schemas.user import UserRead

router = APIRouter()
logger = get_logger("simplifly.auth")


@router.post("/register", response_model=UserRead, status_code=status.HTTP_201_CREATED)
def register_user(user_in: UserRegister, db: Session = Depends(get_db)):
    """
    Register a new local user account.

    The password is hashed before storage. New users get the USER role.

    Raises:
        HTTPException 400: If a user with this email already exists
    """
    email = user_in.email.lower()
    user = db.exec(select(User).where(User.email == email)).first()
    if user:
        raise HTTPException(
            status_code=400,
            detail="User with this email already exists."
        )

    db_user = User(
        email=email,
        password=get_password_hash(user_in.password),
        name=user_in.name.strip(),
        username=user_in.username,
        role=UserRole.USER,
    )
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    logger.info("user_registered", user_id=db_user.id)
    return db_user


@router.post("/login", response_model=Token)
def login(
    response: Response,
    db: Session = Depends(get_db),
    form_data: OAuth2PasswordRequestForm = Depends(),
    settings: Settings = Depends(deps.get_settings),
):
    """
    Authenticate a user and issue an access token.

    The token is returned in the body and also set as an HTTP-only cookie for
    browser clients.

    Note: OAuth2PasswordRequestForm uses 'username' field, but we treat it as email.

    Raises:
        HTTPException 401: If credentials are invalid
    """
    user = db.exec(select(User).where(User.email == form_data.username.lower())).first()

    if not user or not verify_password(form_data.password, user.password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    access_token = create_access_token(subject=user.id, settings=settings)

    # httponly keeps the cookie away from JavaScript; samesite="lax" blocks CSRF on POSTs
    response.set_cookie(
        key="access_token",
        value=f"Bearer {access_token}",
        httponly=True,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        samesite="lax"
    )

    return {"access_token": access_token, "token_type": "bearer"}


@router.post("/logout")
def logout(response: Response):
    """
    Clear the authentication cookie. API clients can simply discard their token.
    """
    response.delete_cookie("access_token")
    return {"message": "Logged out"}


@router.get("/me", response_model=UserRead)
def read_me(current_user: User = Depends(deps.get_current_active_user)):
    """Return the authenticated user's profile."""
    return current_user
