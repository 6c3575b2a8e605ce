from pydantic import BaseModel, ConfigDict, EmailStr, Field
from typing import Optional
from simplifly.models.user import UserRole


# Shared properties
class UserBase(BaseModel):
    email: Optional[EmailStr] = None
    name: Optional[str] = None
    username: Optional[str] = None
    picture: Optional[str] = None


# Properties to receive via API on update
class UserUpdate(UserBase):
    password: Optional[str] = Field(default=None, min_length=6)


# Properties to return to client
class UserRead(UserBase):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: EmailStr
    name: str
    role: UserRole
    created_at: Optional[str] = None
