from fastapi import APIRouter, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth import CurrentUser, get_current_user, require_instructor
from app.core.database import get_db
from app.progress import progress_service as service
from app.progress.models import (
    CourseProgressOut, LectureProgressResult, LectureProgressUpdate
)

router = APIRouter(tags=["Course Progress"])


@router.get("/{course_id}", response_model=CourseProgressOut)
async def get_course_progress(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """Course details plus the caller's per-lecture progress"""
    return await service.get_course_progress(db, user.user_id, course_id)


@router.post("/{course_id}/lecture/{lecture_id}/view", response_model=LectureProgressResult)
async def update_lecture_progress(
    course_id: str,
    lecture_id: str,
    body: LectureProgressUpdate,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    """
    Report watch progress for a lecture
    Marks it viewed at 90% and completes the course when all lectures are viewed
    """
    result = await service.record_lecture_progress(
        db,
        user.user_id,
        course_id,
        lecture_id,
        watched_time=body.watched_time,
        drop_off_time=body.drop_off_time,
        video_length=body.video_length
    )
    return {"message": "Lecture progress updated successfully", **result}


@router.post("/{course_id}/complete")
async def mark_as_completed(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    await service.mark_completed(db, user.user_id, course_id)
    return {"message": "Course marked as completed successfully"}


@router.post("/{course_id}/incomplete")
async def mark_as_incomplete(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    await service.mark_incomplete(db, user.user_id, course_id)
    return {"message": "Course marked as Incompleted successfully"}


@router.get("/{course_id}/completed-count")
async def course_completed_count(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    instructor: CurrentUser = Depends(require_instructor)
):
    return {"course_id": course_id, "completed_count": await service.completed_count(db, course_id)}
