"""
Admin API Router
Dashboard analytics, course overview and instructor approval
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.admin.analytics import (
    admin_dashboard,
    manage_courses,
    top_courses,
    top_instructors,
)
from app.admin.user_management import manage_users, set_instructor_approval
from app.core.auth import CurrentUser, require_admin
from app.core.database import get_db
from app.notifications.mailer import Mailer, get_mailer
from app.notifications.service import notify_instructor_decision

router = APIRouter(prefix="/admin", tags=["Admin"])


# ============================================================================
# ANALYTICS
# ============================================================================

@router.get("/dashboard")
async def dashboard(
    range: str = Query(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: CurrentUser = Depends(require_admin)
):
    """Platform totals, growth and chart series for week/month/year"""
    data = await admin_dashboard(db, range)
    return {
        "message": "Admin Dashboard Data Fetched Successfully",
        "success": True,
        "data": data
    }


@router.get("/top-courses")
async def get_top_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: CurrentUser = Depends(require_admin)
):
    return {"success": True, "message": "Top courses fetched", "top_courses": await top_courses(db)}


@router.get("/top-instructors")
async def get_top_instructors(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: CurrentUser = Depends(require_admin)
):
    return {
        "message": "Top instructors data fetched successfully",
        "top_instructors": await top_instructors(db)
    }


@router.get("/manageCourses")
async def get_manage_courses(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: CurrentUser = Depends(require_admin)
):
    return {"success": True, "courses": await manage_courses(db)}


# ============================================================================
# USERS
# ============================================================================

@router.get("/manageUser")
async def get_manage_users(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: CurrentUser = Depends(require_admin)
):
    return {"success": True, "message": "User data fetched successfully", **await manage_users(db)}


@router.put("/approve/{instructor_id}")
async def approve_instructor(
    instructor_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncIOMotorDatabase = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: CurrentUser = Depends(require_admin)
):
    user = await set_instructor_approval(db, instructor_id, approved=True)
    background_tasks.add_task(notify_instructor_decision, mailer, user, True)
    return {"success": True, "message": "Instructor approved successfully"}


@router.put("/reject/{instructor_id}")
async def reject_instructor(
    instructor_id: str,
    background_tasks: BackgroundTasks,
    db: AsyncIOMotorDatabase = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: CurrentUser = Depends(require_admin)
):
    user = await set_instructor_approval(db, instructor_id, approved=False)
    background_tasks.add_task(notify_instructor_decision, mailer, user, False)
    return {"success": True, "message": "Instructor rejected successfully", "user": user}
