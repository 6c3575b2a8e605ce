from typing import Optional

from pydantic import BaseModel

from simplifly.models.workspace import InviteStatus


class InviteWorkspace(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    owner_id: Optional[str] = None


class InviteLink(BaseModel):
    # Both None when the workspace has no active link
    invite_token: Optional[str] = None
    invite_link: Optional[str] = None
    workspace: Optional[InviteWorkspace] = None


class InviteInfo(BaseModel):
    invite_token: str
    workspace: InviteWorkspace


class RequestUser(BaseModel):
    id: str
    name: str
    username: Optional[str] = None
    email: Optional[str] = None


class JoinRequestRead(BaseModel):
    id: int
    workspace: InviteWorkspace
    requested_by: Optional[RequestUser] = None
    status: InviteStatus
    created_at: Optional[str] = None


class JoinRequestResult(BaseModel):
    message: str
    request: JoinRequestRead
