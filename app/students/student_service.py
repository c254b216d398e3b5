import logging
from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.admin.analytics import shift_months
from app.courses.models import UserRole
from app.progress.progress_service import viewed_count

logger = logging.getLogger(__name__)

NOTIFICATION_FLAGS = ("new_course", "followed_instructor", "weekly_digest", "no_mails")


def analytics_since(range_: Optional[str], now: datetime) -> datetime:
    if range_ == "week":
        return now - timedelta(days=7)
    if range_ == "month":
        return shift_months(now, -1)
    if range_ == "year":
        return shift_months(now, -12)
    return shift_months(now, -60)


def lecture_progress_percent(viewed: int, total: int) -> int:
    if total <= 0:
        return 0
    return min(100, round(viewed / total * 100))


async def _get_user_or_404(db: AsyncIOMotorDatabase, user_id: str) -> dict:
    user = await db.users.find_one({"user_id": user_id})
    if not user:
        raise HTTPException(status_code=404, detail="User not found!")
    return user


async def _progress_map(db: AsyncIOMotorDatabase, user_id: str, courses: List[dict]) -> Dict[str, Dict]:
    """course_id -> {viewed, completed}; only lectures still in the course count as viewed"""
    lectures_by_course = {c["course_id"]: c.get("lectures") or [] for c in courses}
    progress_list = await db.course_progress.find({"user_id": user_id}).to_list(length=None)
    return {
        str(cp["course_id"]): {
            "viewed": viewed_count(cp.get("lecture_progress", []), lectures_by_course.get(cp["course_id"], [])),
            "completed": cp.get("completed") is True,
        }
        for cp in progress_list
    }


async def _enrolled_courses(db: AsyncIOMotorDatabase, user: dict) -> List[dict]:
    course_ids = user.get("enrolled_courses", [])
    if not course_ids:
        return []
    courses = await db.courses.find({"course_id": {"$in": course_ids}}).to_list(length=None)

    creator_ids = list({c.get("creator_id") for c in courses if c.get("creator_id")})
    creators = await db.users.find(
        {"user_id": {"$in": creator_ids}}, {"_id": 0, "user_id": 1, "name": 1}
    ).to_list(length=None)
    names = {u["user_id"]: u.get("name") for u in creators}

    for course in courses:
        course["creator_name"] = names.get(course.get("creator_id")) or "Instructor"
    return courses


async def _certificates(db: AsyncIOMotorDatabase, user: dict) -> List[dict]:
    certificate_ids = user.get("certificates", [])
    if not certificate_ids:
        return []
    return await db.certificates.find(
        {"certificate_id": {"$in": certificate_ids}}, {"_id": 0}
    ).to_list(length=None)


# ==================== DASHBOARD ====================

async def student_dashboard(db: AsyncIOMotorDatabase, user_id: str) -> dict:
    """
    Enrolled vs completed courses with lecture-based progress
    """
    user = await _get_user_or_404(db, user_id)
    courses = await _enrolled_courses(db, user)
    progress_map = await _progress_map(db, user_id, courses)
    certificates = await _certificates(db, user)

    enrolled, completed = [], []
    total_lectures_all = 0
    viewed_all = 0

    for course in courses:
        total_lectures = len(course.get("lectures") or [])
        progress = progress_map.get(course["course_id"], {"viewed": 0, "completed": False})

        total_lectures_all += total_lectures
        viewed_all += progress["viewed"]

        course_data = {
            "course_id": course["course_id"],
            "title": course.get("title"),
            "subtitle": course.get("subtitle"),
            "category": course.get("category"),
            "level": course.get("level"),
            "price": course.get("price"),
            "thumbnail_url": course.get("thumbnail_url") or "",
            "total_lectures": total_lectures,
            "completed_lectures": progress["viewed"],
            "progress": lecture_progress_percent(progress["viewed"], total_lectures),
            "creator": {"name": course["creator_name"]},
        }
        (completed if progress["completed"] else enrolled).append(course_data)

    return {
        "name": user.get("name"),
        "email": user.get("email"),
        "photo_url": user.get("photo_url"),
        "enrolled_courses": enrolled,
        "completed_courses": completed,
        "certificates": certificates,
        "stats": {
            "total_enrolled": len(enrolled) + len(completed),
            "total_completed": len(completed),
            "total_certificates": len(certificates),
            "total_progress": round(viewed_all / total_lectures_all * 100) if total_lectures_all > 0 else 0,
        }
    }


async def student_analytics(
    db: AsyncIOMotorDatabase,
    user_id: str,
    range_: Optional[str],
    now: Optional[datetime] = None
) -> dict:
    """Completions and certificates inside the selected window"""
    now = now or datetime.utcnow()
    since = analytics_since(range_, now)

    user = await _get_user_or_404(db, user_id)

    courses = await db.courses.find({
        "completions": {"$elemMatch": {"user_id": user_id, "completed_at": {"$gte": since}}}
    }).to_list(length=None)

    creator_ids = list({c.get("creator_id") for c in courses if c.get("creator_id")})
    creators = await db.users.find(
        {"user_id": {"$in": creator_ids}}, {"_id": 0, "user_id": 1, "name": 1}
    ).to_list(length=None)
    names = {u["user_id"]: u.get("name") for u in creators}

    completed_courses = []
    for course in courses:
        completion = next(
            (c for c in course.get("completions", []) if c.get("user_id") == user_id),
            None
        )
        completed_courses.append({
            "course_id": course["course_id"],
            "title": course.get("title"),
            "category": course.get("category"),
            "completed_at": completion.get("completed_at") if completion else None,
            "creator": names.get(course.get("creator_id")) or "Unknown",
        })

    certificates = [
        cert for cert in await _certificates(db, user)
        if isinstance(cert.get("issued_at"), datetime) and cert["issued_at"] >= since
    ]
    titles = {
        c["course_id"]: c.get("title")
        for c in await db.courses.find(
            {"course_id": {"$in": [cert["course_id"] for cert in certificates]}},
            {"_id": 0, "course_id": 1, "title": 1}
        ).to_list(length=None)
    }

    return {
        "completed_courses": completed_courses,
        "certificates": [
            {
                "certificate_id": cert["certificate_id"],
                "course_title": titles.get(cert["course_id"], ""),
                "issued_at": cert["issued_at"],
            }
            for cert in certificates
        ]
    }


async def completed_courses(db: AsyncIOMotorDatabase, user_id: str) -> List[dict]:
    """Completed enrolled courses, each with its certificate if issued"""
    user = await _get_user_or_404(db, user_id)
    courses = await _enrolled_courses(db, user)
    progress_map = await _progress_map(db, user_id, courses)
    certificates = {cert["course_id"]: cert for cert in await _certificates(db, user)}

    result = []
    for course in courses:
        progress = progress_map.get(course["course_id"])
        if not progress or not progress["completed"]:
            continue

        cert = certificates.get(course["course_id"])
        issued_at = cert.get("issued_at") if cert else None
        result.append({
            "course_id": course["course_id"],
            "title": course.get("title"),
            "category": course.get("category"),
            "creator": course["creator_name"],
            "thumbnail_url": course.get("thumbnail_url") or "",
            "total_lectures": len(course.get("lectures") or []),
            "completed_lectures": progress["viewed"],
            "completed_at": issued_at,
            "formatted_completed_at": issued_at.strftime("%d/%m/%Y") if isinstance(issued_at, datetime) else None,
            "certificate": {
                "certificate_id": cert["certificate_id"],
                "issued_at": issued_at,
                "formatted_issued_at": issued_at.strftime("%d/%m/%Y") if isinstance(issued_at, datetime) else None,
                "url": cert.get("url"),
            } if cert else None,
        })
    return result


# ==================== INSTRUCTORS & PREFERENCES ====================

async def list_instructors(db: AsyncIOMotorDatabase, user_id: str) -> List[dict]:
    """Approved instructors with course counts and whether the user follows them"""
    user = await _get_user_or_404(db, user_id)
    following = set(user.get("following_instructors", []))

    instructors = await db.users.find(
        {"role": UserRole.INSTRUCTOR.value, "is_approved": True},
        {"_id": 0, "user_id": 1, "name": 1, "email": 1, "photo_url": 1}
    ).to_list(length=None)

    for instructor in instructors:
        instructor["total_courses"] = await db.courses.count_documents({
            "creator_id": instructor["user_id"], "is_published": True
        })
        instructor["is_following"] = instructor["user_id"] in following
    return instructors


async def toggle_follow_instructor(db: AsyncIOMotorDatabase, user_id: str, instructor_id: str) -> bool:
    """Returns True when the user now follows the instructor"""
    if user_id == instructor_id:
        raise HTTPException(status_code=400, detail="You cannot follow yourself")

    instructor = await db.users.find_one({"user_id": instructor_id, "role": UserRole.INSTRUCTOR.value})
    if not instructor:
        raise HTTPException(status_code=404, detail="Instructor not found")

    user = await _get_user_or_404(db, user_id)
    if instructor_id in user.get("following_instructors", []):
        await db.users.update_one({"user_id": user_id}, {"$pull": {"following_instructors": instructor_id}})
        return False

    await db.users.update_one({"user_id": user_id}, {"$addToSet": {"following_instructors": instructor_id}})
    return True


async def update_notification_preferences(db: AsyncIOMotorDatabase, user_id: str, prefs: Dict[str, bool]) -> dict:
    """
    Partial update; opting out of all mail switches every other flag off
    """
    user = await _get_user_or_404(db, user_id)
    current = {flag: True for flag in NOTIFICATION_FLAGS}
    current["no_mails"] = False
    current.update(user.get("notification_preferences") or {})

    current.update({k: bool(v) for k, v in prefs.items() if k in NOTIFICATION_FLAGS and v is not None})
    if current["no_mails"]:
        current.update({"new_course": False, "followed_instructor": False, "weekly_digest": False})

    await db.users.update_one({"user_id": user_id}, {"$set": {"notification_preferences": current}})
    return current
