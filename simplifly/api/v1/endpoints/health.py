from typing import Any
from fastapi import APIRouter, Depends
from simplifly.api import deps
from simplifly.core.config import Settings

router = APIRouter()


@router.get("", response_model=dict[str, Any])
def health_check(settings: Settings = Depends(deps.get_settings)) -> Any:
    """
    Liveness probe; reports the running API version.
    """
    return {"status": "ok", "service": settings.PROJECT_NAME, "version": settings.VERSION}
