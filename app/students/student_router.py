from typing import Optional

from fastapi import APIRouter, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth import CurrentUser, get_current_user
from app.core.database import get_db
from app.students import student_service as service
from app.students.student_models import NotificationPreferencesUpdate

router = APIRouter(tags=["Student Portal"])

# ==================== DASHBOARD ====================

@router.get("/student")
async def dashboard(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """
    Enrolled and completed courses with lecture-based progress
    """
    return {"success": True, "data": await service.student_dashboard(db, user.user_id)}

@router.get("/student/analytics")
async def analytics(
    range: Optional[str] = Query(None),
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    return {"success": True, "data": await service.student_analytics(db, user.user_id, range)}

@router.get("/student/get-completed-courses")
async def get_completed_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    return {"success": True, "data": await service.completed_courses(db, user.user_id)}

# ==================== INSTRUCTORS ====================

@router.get("/student/instructors")
async def all_instructors(
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    return {"success": True, "instructors": await service.list_instructors(db, user.user_id)}

@router.post("/student/follow/{instructor_id}")
async def toggle_follow_instructor(
    instructor_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    following = await service.toggle_follow_instructor(db, user.user_id, instructor_id)
    return {
        "success": True,
        "following": following,
        "message": "Instructor followed" if following else "Instructor unfollowed"
    }

# ==================== SETTINGS ====================

@router.post("/setting/update-notify-preference")
async def update_notification_preferences(
    body: NotificationPreferencesUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    prefs = await service.update_notification_preferences(db, user.user_id, body.dict(exclude_none=True))
    return {"success": True, "notification_preferences": prefs}
