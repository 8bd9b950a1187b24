from __future__ import annotations
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from treasure_hunt.config import settings
from treasure_hunt.logging_setup import configure_logging
from treasure_hunt.services.catalog import get_catalog
from treasure_hunt.routes.system import router as system_router
from treasure_hunt.routes.quests import router as quests_router
from treasure_hunt.routes.board import router as board_router
from treasure_hunt.routes.participants import router as participants_router
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: a broken catalog should stop the process here, not on first request
    catalog = get_catalog()
    log.info(
        "startup",
        env=settings.environment,
        version=settings.app_version,
        git_sha=settings.git_sha,
        quests=[q.id for q in catalog],
        bucket=settings.storage_bucket,
    )
    if not settings.backend_configured:
        log.warning("backend_not_configured", hint="set SUPABASE_URL and SUPABASE_ANON_KEY")
    yield
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API: register participants, upload task evidence, track quest progress",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(system_router)
app.include_router(quests_router)
app.include_router(board_router)
app.include_router(participants_router)

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    response: Response = await call_next(request)
    response.headers["X-Request-ID"] = rid
    structlog.contextvars.clear_contextvars()
    return response
