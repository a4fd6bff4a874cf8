import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from smarttherapy.config import settings
from smarttherapy.middleware.exceptions import register_exception_handlers
from smarttherapy.routers import health, onboarding, sessions
from smarttherapy.utils.cache import close_redis

logger = logging.getLogger("smarttherapy")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("SmartTherapy API starting (%s)", settings.environment)
    yield
    await close_redis()
    logger.info("SmartTherapy API stopped")


app = FastAPI(
    title="SmartTherapy",
    description="Clinic & Therapy Practice Management",
    version="0.1.0",
    lifespan=lifespan,
)

# ── Exception Handlers ───────────────────────────────────────
register_exception_handlers(app)

# ── Middleware ───────────────────────────────────────────────
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins.split(","),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ── Routers ──────────────────────────────────────────────────
app.include_router(health.router)
app.include_router(onboarding.router, prefix="/api/onboarding", tags=["onboarding"])
app.include_router(sessions.router, prefix="/api/sessions", tags=["sessions"])
