import logging
import time

import app.models  # noqa: F401
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.core.config import settings
from app.core.error_handlers import register_error_handlers
from app.core.logging_config import configure_logging
from app.routers import announcements as announcements_router
from app.routers import auth as auth_router
from app.routers import cells as cells_router
from app.routers import contributions as contributions_router
from app.routers import events as events_router
from app.routers import members as members_router
from app.routers import ministries as ministries_router
from app.services.user_accounts import now_utc

API_VERSION = "0.1.0"

configure_logging(settings.LOG_LEVEL, settings.LOG_FORMAT)

app = FastAPI(title="Church Admin API", version=API_VERSION)

logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_error_handlers(app)

app.include_router(auth_router.router)
app.include_router(members_router.router)
app.include_router(cells_router.router)
app.include_router(ministries_router.router)
app.include_router(events_router.router)
app.include_router(contributions_router.router)
app.include_router(announcements_router.router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "request_completed",
        extra={
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "duration_ms": round((time.perf_counter() - started) * 1000, 2),
        },
    )
    return response


@app.get("/health", tags=["health"])
def health() -> dict[str, str]:
    return {"status": "healthy", "version": API_VERSION, "timestamp": now_utc().isoformat()}
