"""
Lecture progress and course completion bookkeeping

A lecture counts as viewed once 90% of it has been watched; a course is
complete when every one of its lectures is viewed.
"""

import logging
import math
from datetime import datetime
from typing import List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.courses.database import get_course, serialize_mongo

logger = logging.getLogger(__name__)

VIEWED_THRESHOLD_PERCENT = 90


def coerce_seconds(value) -> float:
    """Client-reported times; anything non-numeric counts as 0"""
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return 0
    if not math.isfinite(seconds):
        return 0
    return seconds


def percent_watched(drop_off_time: float, video_length: float) -> float:
    if video_length <= 0:
        return 0
    return drop_off_time / video_length * 100


def apply_lecture_update(
    lecture_progress: List[dict],
    lecture_id: str,
    watched_time: float,
    video_length: float,
    drop_off_time: float
) -> dict:
    """
    Merge one progress report into the lecture list (in place)

    Times only grow, and `viewed` is never cleared here.
    Returns the affected entry.
    """
    viewed_now = percent_watched(drop_off_time, video_length) >= VIEWED_THRESHOLD_PERCENT

    for entry in lecture_progress:
        if str(entry.get("lecture_id")) == str(lecture_id):
            if watched_time > (entry.get("watched_time") or 0):
                entry["watched_time"] = watched_time
            if video_length > (entry.get("video_length") or 0):
                entry["video_length"] = video_length
            if viewed_now:
                entry["viewed"] = True
            return entry

    entry = {
        "lecture_id": lecture_id,
        "watched_time": watched_time,
        "video_length": video_length,
        "viewed": viewed_now,
    }
    lecture_progress.append(entry)
    return entry


def viewed_count(lecture_progress: List[dict], lecture_ids: Optional[List[str]] = None) -> int:
    """Viewed entries, restricted to `lecture_ids` when given"""
    if lecture_ids is None:
        return sum(1 for lp in lecture_progress if lp.get("viewed"))
    wanted = {str(lid) for lid in lecture_ids}
    return sum(1 for lp in lecture_progress if lp.get("viewed") and str(lp.get("lecture_id")) in wanted)


def has_completion(course: dict, user_id: str) -> bool:
    return any(str(c.get("user_id")) == str(user_id) for c in course.get("completions", []))


async def _add_completion(db: AsyncIOMotorDatabase, course: dict, user_id: str) -> bool:
    """Record completion on the course once per student"""
    if has_completion(course, user_id):
        return False
    completion = {"user_id": user_id, "completed_at": datetime.utcnow()}
    await db.courses.update_one(
        {"course_id": course["course_id"], "completions.user_id": {"$ne": user_id}},
        {"$push": {"completions": completion}}
    )
    course.setdefault("completions", []).append(completion)
    logger.info("User %s completed course %s", user_id, course["course_id"])
    return True


async def _record_lecture_analytics(
    db: AsyncIOMotorDatabase,
    lecture_id: str,
    watched_time: float,
    drop_off_time: float,
    video_length: float
):
    now = datetime.utcnow()
    push = {"views": {"count": 1, "created_at": now}}
    if watched_time:
        push["avg_time"] = {"time": watched_time, "created_at": now}
    if drop_off_time and video_length:
        push["drop_off"] = {
            "percent": round(drop_off_time / video_length * 100, 2),
            "created_at": now
        }
    await db.lectures.update_one({"lecture_id": lecture_id}, {"$push": push})


# ==================== PROGRESS ====================

async def get_course_progress(db: AsyncIOMotorDatabase, user_id: str, course_id: str) -> dict:
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    lectures = await db.lectures.find(
        {"lecture_id": {"$in": course.get("lectures", [])}},
        {"_id": 0, "views": 0, "drop_off": 0, "avg_time": 0}
    ).to_list(length=None)
    course_details = serialize_mongo(course)
    course_details["lecture_details"] = lectures

    progress = await db.course_progress.find_one({"course_id": course_id, "user_id": user_id})
    if not progress:
        return {"course_details": course_details, "progress": [], "completed": False}

    return {
        "course_details": course_details,
        "progress": progress.get("lecture_progress", []),
        "completed": bool(progress.get("completed")),
    }


async def record_lecture_progress(
    db: AsyncIOMotorDatabase,
    user_id: str,
    course_id: str,
    lecture_id: str,
    watched_time=0,
    drop_off_time=0,
    video_length=0
) -> dict:
    """
    Store a watch report for one lecture and derive course completion
    """
    watched_time = coerce_seconds(watched_time)
    drop_off_time = coerce_seconds(drop_off_time)
    video_length = coerce_seconds(video_length)

    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    progress = await db.course_progress.find_one({"course_id": course_id, "user_id": user_id})
    if not progress:
        progress = {
            "user_id": user_id,
            "course_id": course_id,
            "completed": False,
            "lecture_progress": [],
        }

    entry = apply_lecture_update(
        progress["lecture_progress"], lecture_id, watched_time, video_length, drop_off_time
    )

    course_lectures = course.get("lectures", [])
    if lecture_id in course_lectures:
        await _record_lecture_analytics(db, lecture_id, watched_time, drop_off_time, video_length)

    if course_lectures and viewed_count(progress["lecture_progress"], course_lectures) == len(course_lectures):
        progress["completed"] = True
        await _add_completion(db, course, user_id)

    await db.course_progress.update_one(
        {"course_id": course_id, "user_id": user_id},
        {"$set": {
            "completed": progress["completed"],
            "lecture_progress": progress["lecture_progress"],
        }},
        upsert=True
    )

    return {
        "lecture": entry,
        "completed": progress["completed"],
    }


async def mark_completed(db: AsyncIOMotorDatabase, user_id: str, course_id: str):
    progress = await db.course_progress.find_one({"course_id": course_id, "user_id": user_id})
    if not progress:
        raise HTTPException(status_code=404, detail="You have to complete the course")

    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    course_lectures = course.get("lectures", [])
    if not course_lectures or viewed_count(progress.get("lecture_progress", []), course_lectures) < len(course_lectures):
        raise HTTPException(
            status_code=400,
            detail="You must complete all lectures before marking the course as completed."
        )

    await db.course_progress.update_one(
        {"course_id": course_id, "user_id": user_id},
        {"$set": {"completed": True}}
    )
    await _add_completion(db, course, user_id)


async def mark_incomplete(db: AsyncIOMotorDatabase, user_id: str, course_id: str):
    progress = await db.course_progress.find_one({"course_id": course_id, "user_id": user_id})
    if not progress:
        raise HTTPException(status_code=404, detail="Course progress not found")

    lecture_progress = progress.get("lecture_progress", [])
    for lp in lecture_progress:
        lp["viewed"] = False

    await db.course_progress.update_one(
        {"course_id": course_id, "user_id": user_id},
        {"$set": {"completed": False, "lecture_progress": lecture_progress}}
    )
    await db.courses.update_one(
        {"course_id": course_id},
        {"$pull": {"completions": {"user_id": user_id}}}
    )
    logger.info("User %s reset progress on course %s", user_id, course_id)


async def completed_count(db: AsyncIOMotorDatabase, course_id: str) -> int:
    return await db.course_progress.count_documents({"course_id": course_id, "completed": True})
