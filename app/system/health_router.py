import logging

from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from app.core.database import get_db

logger = logging.getLogger(__name__)

APP_NAME = "DevAcademy API"
APP_VERSION = "1.0.0"

router = APIRouter(tags=["System"])


@router.get("/")
async def root():
    """Root endpoint"""
    return {"name": APP_NAME, "version": APP_VERSION, "status": "running"}


@router.get("/health")
async def health_check(db: AsyncIOMotorDatabase = Depends(get_db)):
    """Pings MongoDB"""
    try:
        await db.command("ping")
        database = "UP"
    except PyMongoError as e:
        logger.warning("Health check: MongoDB ping failed: %s", e)
        database = "DOWN"

    return {"status": "healthy" if database == "UP" else "degraded", "database": database}
