import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

logger = logging.getLogger(__name__)

# Fields that must be filled before lectures can be added or the course published
REQUIRED_COURSE_FIELDS = [
    "title",
    "subtitle",
    "description",
    "price",
    "level",
    "category",
    "thumbnail_url",
]


def serialize_mongo(doc: dict) -> dict:
    if doc and "_id" in doc:
        doc["_id"] = str(doc["_id"])
    return doc


def is_empty(value) -> bool:
    """None or whitespace-only once stringified (0 is a value)"""
    return value is None or str(value).strip() == ""


def missing_course_fields(course: dict) -> List[str]:
    return [field for field in REQUIRED_COURSE_FIELDS if is_empty(course.get(field))]


def publish_checklist(course: dict, lectures: List[dict]) -> Tuple[List[str], List[str]]:
    """
    Everything blocking publication

    Returns:
        (missing course fields, titles of lectures without a video)
    """
    lectures_missing_video = [
        lecture.get("title") or lecture.get("lecture_id")
        for lecture in lectures
        if is_empty(lecture.get("video_url"))
    ]
    return missing_course_fields(course), lectures_missing_video


# ==================== COURSE / LECTURE LOOKUPS ====================

async def get_course(db: AsyncIOMotorDatabase, course_id: str) -> Optional[dict]:
    """Get course by ID"""
    return await db.courses.find_one({"course_id": course_id})

async def get_course_or_404(db: AsyncIOMotorDatabase, course_id: str) -> dict:
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")
    return course

async def ensure_course_owner(
    db: AsyncIOMotorDatabase,
    instructor_id: str,
    course_id: Optional[str] = None,
    lecture_id: Optional[str] = None
):
    """403 when the course (or the course holding the lecture) belongs to another instructor"""
    query = {"course_id": course_id} if course_id else {"lectures": lecture_id}
    course = await db.courses.find_one(query, {"creator_id": 1})
    if course and course.get("creator_id") != instructor_id:
        raise HTTPException(status_code=403, detail="Not the instructor of this course")

async def get_course_lectures(db: AsyncIOMotorDatabase, course: dict) -> List[dict]:
    """Lectures of a course, in course order"""
    lecture_ids = course.get("lectures", [])
    if not lecture_ids:
        return []
    lectures = await db.lectures.find({"lecture_id": {"$in": lecture_ids}}).to_list(length=None)
    by_id = {lec["lecture_id"]: lec for lec in lectures}
    return [by_id[lid] for lid in lecture_ids if lid in by_id]


# ==================== PUBLISH ====================

async def toggle_publish(db: AsyncIOMotorDatabase, course_id: str, publish: bool) -> dict:
    """
    Publish or unpublish a course
    Publishing is gated by the course checklist; unpublishing never is
    """
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found!")

    if publish:
        lectures = await get_course_lectures(db, course)
        missing_fields, lectures_missing_video = publish_checklist(course, lectures)
        if missing_fields or lectures_missing_video:
            raise HTTPException(
                status_code=400,
                detail={
                    "message": "Cannot publish course. Required fields or lecture videos missing.",
                    "missing_course_fields": missing_fields,
                    "lectures_missing_video": lectures_missing_video,
                }
            )
        updates = {"is_published": True, "published_at": datetime.utcnow()}
    else:
        updates = {"is_published": False, "published_at": None}

    await db.courses.update_one({"course_id": course_id}, {"$set": updates})
    course.update(updates)

    logger.info("Course %s %s", course_id, "published" if publish else "unpublished")
    return course


# ==================== LECTURES ====================

async def create_lecture(db: AsyncIOMotorDatabase, course_id: str, title: str) -> dict:
    """
    Add a lecture to a course
    Requires the course details to be filled in first
    """
    title = (title or "").strip()
    if len(title) < 3:
        raise HTTPException(status_code=400, detail="Lecture title must be at least 3 characters long")

    course = await get_course_or_404(db, course_id)

    missing = missing_course_fields(course)
    if missing:
        raise HTTPException(
            status_code=400,
            detail={
                "message": "Cannot add lecture. Required course fields missing.",
                "missing_fields": missing,
            }
        )

    lecture = {
        "lecture_id": f"LEC_{uuid.uuid4().hex[:12].upper()}",
        "course_id": course_id,
        "title": title,
        "video_url": None,
        "public_id": None,
        "is_preview_free": False,
        "views": [],
        "drop_off": [],
        "avg_time": [],
        "created_at": datetime.utcnow(),
        "updated_at": datetime.utcnow(),
    }
    await db.lectures.insert_one(lecture)
    await db.courses.update_one(
        {"course_id": course_id},
        {"$push": {"lectures": lecture["lecture_id"]}}
    )
    return serialize_mongo(lecture)


async def remove_lecture(db: AsyncIOMotorDatabase, lecture_id: str) -> None:
    """
    Delete a lecture
    🔒 A published course keeps at least one lecture
    """
    lecture = await db.lectures.find_one({"lecture_id": lecture_id})
    if not lecture:
        raise HTTPException(status_code=404, detail="Lecture not found!")

    course = await db.courses.find_one({"lectures": lecture_id})
    if not course:
        raise HTTPException(status_code=404, detail="Course not found for this lecture!")

    existing = await db.lectures.count_documents({"lecture_id": {"$in": course.get("lectures", [])}})
    if course.get("is_published") and existing == 1:
        raise HTTPException(status_code=400, detail="Cannot remove the only lecture of a published course.")

    await db.lectures.delete_one({"lecture_id": lecture_id})
    await db.courses.update_one(
        {"course_id": course["course_id"]},
        {"$pull": {"lectures": lecture_id}}
    )
    logger.info("Lecture %s removed from course %s", lecture_id, course["course_id"])
