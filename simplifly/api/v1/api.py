from fastapi import APIRouter
from simplifly.api.v1.endpoints import (
    auth, health, users, superadmin,
    workspaces, tickets, comments, checklist, billing, invites
)

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(superadmin.router, prefix="/superadmin", tags=["superadmin"])

# Resource endpoints
api_router.include_router(workspaces.router, prefix="/workspaces", tags=["workspaces"])
api_router.include_router(tickets.router, prefix="/tickets", tags=["tickets"])
api_router.include_router(comments.router, prefix="/comments", tags=["comments"])
api_router.include_router(checklist.router, prefix="/checklist", tags=["checklist"])
api_router.include_router(billing.router, prefix="/billing", tags=["billing"])
api_router.include_router(invites.router, prefix="/invites", tags=["invites"])
