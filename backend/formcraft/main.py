import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from formcraft.api.v1.router import api_v1_router
from formcraft.core.config import settings
from formcraft.core.database import SessionLocal
from formcraft.services.tracking import SqlLivenessStore, TrackerRegistry

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    trackers = TrackerRegistry(
        SqlLivenessStore(SessionLocal),
        heartbeat_interval=settings.SESSION_HEARTBEAT_SECONDS,
        inactivity_timeout=settings.SESSION_INACTIVITY_SECONDS,
    )
    app.state.trackers = trackers

    logger.info(
        "Session tracking initialized (heartbeat=%ss, inactivity=%ss)",
        settings.SESSION_HEARTBEAT_SECONDS,
        settings.SESSION_INACTIVITY_SECONDS,
    )

    yield

    # Shutdown: stop every liveness tracker still mounted
    logger.info("Shutting down session tracking...")
    await trackers.teardown_all()


app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_PREFIX}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)


@app.get("/health")
def health_check():
    return {"status": "healthy"}
