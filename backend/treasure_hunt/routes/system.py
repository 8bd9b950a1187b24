from __future__ import annotations
from fastapi import APIRouter, Request
from datetime import datetime, timezone
from treasure_hunt.config import settings
from treasure_hunt.services.catalog import get_catalog

router = APIRouter(tags=["system"])

@router.get("/health")
async def health(request: Request):
    return {
        "status": "ok",
        "env": settings.environment,
        "time": datetime.now(timezone.utc).isoformat(),
        "backend_configured": settings.backend_configured,
        "request_id": request.headers.get("x-request-id") or request.state.request_id,
    }

@router.get("/version")
async def version():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "git_sha": settings.git_sha,
        "quests": [q.id for q in get_catalog()],
    }
