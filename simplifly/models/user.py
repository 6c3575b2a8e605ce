"""
User Model Module

This module defines the User model and UserRole enumeration for authentication
and authorization throughout the application.
"""
from enum import Enum
from typing import Optional
from sqlmodel import SQLModel, Field
import uuid

from simplifly.models.base import enum_column, utcnow_iso


class UserRole(str, Enum):
    """
    Enumeration of user roles.

    - USER: Regular account; access to workspaces comes from ownership/membership
    - SUPERADMIN: Can read platform-wide statistics and every workspace
    """
    USER = "user"
    SUPERADMIN = "superadmin"


class User(SQLModel, table=True):
    """
    User model representing authenticated users in the system.

    Users are identified by UUID. Local accounts authenticate with email/password;
    accounts linked to an external identity carry a google_id and may have no password.

    Attributes:
        id: Unique identifier (UUID) automatically generated for each user
        email: Lower-cased email address, used for authentication (unique, indexed)
        username: Optional short handle shown in the UI
        name: Display name (required)
        password: Hashed password (bcrypt), None for external identities
        google_id: External identity subject, None for local accounts
        picture: URL of the user's avatar
        role: UserRole value (default: USER)
        created_at: ISO timestamp when the user account was created
    """
    __tablename__ = "users"

    # Primary key - auto-generated UUID for global uniqueness
    id: str = Field(default_factory=lambda: str(uuid.uuid4()), primary_key=True)

    # Authentication fields
    email: str = Field(unique=True, index=True, nullable=False)
    password: Optional[str] = None  # Hashed password (bcrypt)
    google_id: Optional[str] = Field(default=None, unique=True)

    # Profile information
    username: Optional[str] = None
    name: str = Field(nullable=False)
    picture: Optional[str] = None

    # Authorization
    role: UserRole = Field(default=UserRole.USER, sa_type=enum_column(UserRole))

    # Audit timestamp
    created_at: Optional[str] = Field(default_factory=utcnow_iso)

    @property
    def is_superadmin(self) -> bool:
        return self.role == UserRole.SUPERADMIN
