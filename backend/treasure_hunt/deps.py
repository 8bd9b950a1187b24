from __future__ import annotations
from typing import AsyncGenerator
import httpx
from fastapi import Depends, HTTPException
from treasure_hunt.config import settings
from treasure_hunt.services.catalog import get_catalog
from treasure_hunt.services.supabase import SupabaseClient, auth_headers
from treasure_hunt.services.tracker import HuntTracker


async def get_backend() -> AsyncGenerator[SupabaseClient, None]:
    if not settings.backend_configured:
        raise HTTPException(status_code=503, detail="Backend not configured")
    async with httpx.AsyncClient(
        base_url=settings.supabase_url,
        headers=auth_headers(settings.supabase_anon_key),
        timeout=settings.http_timeout_seconds,
    ) as http:
        yield SupabaseClient(http, bucket=settings.storage_bucket, cleanup_orphans=settings.cleanup_orphaned_uploads)


async def get_tracker(backend: SupabaseClient = Depends(get_backend)) -> HuntTracker:
    return HuntTracker(backend, get_catalog())
