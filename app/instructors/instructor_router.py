from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth import CurrentUser, require_instructor
from app.core.database import get_db
from app.courses.database import ensure_course_owner
from app.instructors.instructor_analytics import course_analytics, instructor_dashboard

router = APIRouter(tags=["Instructor Analytics"])


@router.get("/instructor/dashboard")
async def dashboard(
    range: Optional[str] = Query(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: CurrentUser = Depends(require_instructor)
):
    """Totals and cumulative trend over the instructor's own courses"""
    return await instructor_dashboard(db, instructor.user_id, range)


@router.get("/{course_id}/analytics")
async def get_course_analytics(
    course_id: str,
    year: Optional[int] = Query(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: CurrentUser = Depends(require_instructor)
):
    await ensure_course_owner(db, instructor.user_id, course_id=course_id)
    return await course_analytics(db, course_id, year)
