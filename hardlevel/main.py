import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from hardlevel.api import router
from hardlevel.core.config import settings
from hardlevel.core.database import async_session_maker, init_db
from hardlevel.services.achievement_seeder import seed_achievements

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables and the default achievement catalog on startup."""
    await init_db()
    async with async_session_maker() as session:
        await seed_achievements(session)
        await session.commit()
    logger.info("%s %s ready", settings.app_name, settings.version)
    yield


app = FastAPI(
    lifespan=lifespan,
    title=settings.app_name,
    description="Progress analytics and gamification for 90-day habit challenges",
    version=settings.version,
    docs_url="/docs",
    redoc_url="/redoc",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,  # Must be False when using allow_origins=["*"]
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(router, prefix="/api/v1")


@app.get("/")
async def root():
    """Root endpoint with API info."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "docs": "/docs",
        "status": "/api/v1/status",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("hardlevel.main:app", host=settings.host, port=settings.port, reload=settings.debug)
