"""
Course publishing and lecture management (instructor only)
"""

from fastapi import APIRouter, BackgroundTasks, Depends, Query
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth import CurrentUser, require_instructor
from app.core.database import get_db
from app.courses.database import (
    create_lecture, ensure_course_owner, remove_lecture, serialize_mongo, toggle_publish
)
from app.courses.models import LectureCreate, LectureOut
from app.notifications.mailer import Mailer, get_mailer
from app.notifications.service import notify_course_published

router = APIRouter(tags=["Courses"])


# ==================== PUBLISH / UNPUBLISH ====================

@router.patch("/{course_id}")
async def toggle_publish_endpoint(
    course_id: str,
    background_tasks: BackgroundTasks,
    publish: bool = Query(...),
    db: AsyncIOMotorDatabase = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    instructor: CurrentUser = Depends(require_instructor)
):
    """
    Publish (gated by the course checklist) or unpublish a course
    """
    await ensure_course_owner(db, instructor.user_id, course_id=course_id)
    course = await toggle_publish(db, course_id, publish)

    if publish:
        background_tasks.add_task(notify_course_published, db, mailer, course)

    return {
        "message": f"Course is {'Published' if course['is_published'] else 'Unpublished'}",
        "course": serialize_mongo(course)
    }


# ==================== LECTURES ====================

@router.post("/{course_id}/lecture", status_code=201)
async def create_lecture_endpoint(
    course_id: str,
    body: LectureCreate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: CurrentUser = Depends(require_instructor)
):
    await ensure_course_owner(db, instructor.user_id, course_id=course_id)
    lecture = await create_lecture(db, course_id, body.title)
    return {
        "lecture": LectureOut(**lecture),
        "message": "Lecture created successfully."
    }


@router.delete("/lecture/{lecture_id}")
async def remove_lecture_endpoint(
    lecture_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: CurrentUser = Depends(require_instructor)
):
    await ensure_course_owner(db, instructor.user_id, lecture_id=lecture_id)
    await remove_lecture(db, lecture_id)
    return {"success": True, "message": "Lecture removed successfully"}
