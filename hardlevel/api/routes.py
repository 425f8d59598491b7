from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession

from hardlevel.api.analytics import router as analytics_router
from hardlevel.api.gamification import router as gamification_router
from hardlevel.api.health import router as health_router
from hardlevel.api.tracking import router as tracking_router
from hardlevel.core.config import settings
from hardlevel.core.database import get_db

router = APIRouter()


class StatusResponse(BaseModel):
    """Service health."""
    status: str
    version: str
    database: str


@router.get("/status", response_model=StatusResponse)
async def status_check(db: AsyncSession = Depends(get_db)):
    """Check API health and database connectivity."""
    await db.execute(text("SELECT 1"))
    return StatusResponse(status="healthy", version=settings.version, database="ok")


router.include_router(tracking_router)
router.include_router(analytics_router)
router.include_router(gamification_router)
router.include_router(health_router)
