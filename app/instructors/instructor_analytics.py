"""
Instructor dashboard and per-course analytics
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.admin.analytics import MONTHS, average_rating
from app.courses.database import get_course_lectures

RANGE_DAYS = {"week": 7, "month": 30}
DEFAULT_RANGE_DAYS = 365


# ==================== HELPERS ====================

def time_ago(dt: datetime, now: datetime) -> str:
    """Relative time in the style of "3 days ago" """
    seconds = (now - dt).total_seconds()
    if seconds < 0:
        return "in the future"

    minutes = seconds / 60
    hours = minutes / 60
    days = hours / 24

    if seconds < 45:
        return "a few seconds ago"
    if seconds < 90:
        return "a minute ago"
    if minutes < 45:
        return f"{round(minutes)} minutes ago"
    if minutes < 90:
        return "an hour ago"
    if hours < 22:
        return f"{round(hours)} hours ago"
    if hours < 36:
        return "a day ago"
    if days < 26:
        return f"{round(days)} days ago"
    if days < 46:
        return "a month ago"
    if days < 320:
        return f"{round(days / 30.4)} months ago"
    if days < 548:
        return "a year ago"
    return f"{round(days / 365)} years ago"


def aggregate_growth(first: float, last: float) -> float:
    if first <= 0:
        return 0
    return round((last - first) / first * 100, 2)


def _in_year(value, year: int) -> bool:
    return isinstance(value, datetime) and value.year == year


async def _names_by_id(db: AsyncIOMotorDatabase, user_ids: List[str]) -> Dict[str, str]:
    if not user_ids:
        return {}
    users = await db.users.find(
        {"user_id": {"$in": list(set(user_ids))}},
        {"_id": 0, "user_id": 1, "name": 1}
    ).to_list(length=None)
    return {u["user_id"]: u.get("name") for u in users}


# ==================== DASHBOARD ====================

async def instructor_dashboard(
    db: AsyncIOMotorDatabase,
    instructor_id: str,
    range_: Optional[str],
    now: Optional[datetime] = None
) -> Dict:
    now = now or datetime.utcnow()
    days = RANGE_DAYS.get(range_, DEFAULT_RANGE_DAYS)
    since = now - timedelta(days=days)

    courses = await db.courses.find({"creator_id": instructor_id}).to_list(length=None)

    total_students = 0
    total_revenue = 0
    monthly_students: Dict[tuple, int] = {}
    monthly_revenue: Dict[tuple, float] = {}
    daily: Dict[str, Dict] = {}

    for course in courses:
        price = course.get("price") or 0
        for enrollment in course.get("enrolled_students") or []:
            enrolled_at = enrollment.get("enrolled_at")
            if not isinstance(enrolled_at, datetime) or enrolled_at < since:
                continue

            total_students += 1
            total_revenue += price

            month_key = (enrolled_at.year, enrolled_at.month)
            monthly_students[month_key] = monthly_students.get(month_key, 0) + 1
            monthly_revenue[month_key] = monthly_revenue.get(month_key, 0) + price

            day = daily.setdefault(enrolled_at.date().isoformat(), {"enrollments": 0, "revenue": 0})
            day["enrollments"] += 1
            day["revenue"] += price

    # Cumulative trend, one point per day of the window
    trend_data = []
    cumulative_students = 0
    cumulative_revenue = 0
    for i in range(days, -1, -1):
        date = now - timedelta(days=i)
        day = daily.get(date.date().isoformat(), {"enrollments": 0, "revenue": 0})
        cumulative_students += day["enrollments"]
        cumulative_revenue += day["revenue"]
        trend_data.append({
            "date": f"{MONTHS[date.month - 1]} {date.day}",
            "revenue": cumulative_revenue,
            "students": cumulative_students,
            "enrollments": day["enrollments"],
        })

    reviews = [
        review
        for course in courses
        for review in course.get("reviews") or []
        if isinstance(review.get("created_at"), datetime) and review["created_at"] >= since
    ]

    months = sorted(monthly_revenue)
    revenue_growth = 0
    student_growth = 0
    if len(months) >= 2:
        revenue_growth = aggregate_growth(monthly_revenue[months[0]], monthly_revenue[months[-1]])
        student_growth = aggregate_growth(monthly_students[months[0]], monthly_students[months[-1]])

    return {
        "total_courses": len(courses),
        "total_students": total_students,
        "total_revenue": total_revenue,
        "average_rating": average_rating(reviews),
        "revenue_aggregate_growth": revenue_growth,
        "student_aggregate_growth": student_growth,
        "monthly": [
            {
                "month": f"{year}-{month}",
                "students": monthly_students[(year, month)],
                "revenue": monthly_revenue[(year, month)],
            }
            for year, month in months
        ],
        "trend_data": trend_data,
    }


# ==================== COURSE ANALYTICS ====================

def lecture_engagement(lectures: List[dict]) -> List[Dict]:
    result = []
    for lec in lectures:
        avg_time = lec.get("avg_time") or []
        drop_off = lec.get("drop_off") or []
        result.append({
            "lecture_id": lec.get("lecture_id"),
            "title": lec.get("title"),
            "views": len(lec.get("views") or []),
            # latest sample, not a mean
            "avg_time": avg_time[-1].get("time", 0) if avg_time else 0,
            "drop_off": round(sum(d.get("percent", 0) for d in drop_off) / len(drop_off), 2) if drop_off else 0,
        })
    return result


def monthly_breakdown(enrollments: List[dict], completions: List[dict], price: float) -> List[Dict]:
    enrollments_by_month = [0] * 12
    completions_by_month = [0] * 12
    for e in enrollments:
        enrollments_by_month[e["enrolled_at"].month - 1] += 1
    for c in completions:
        completions_by_month[c["completed_at"].month - 1] += 1

    return [
        {
            "month": month,
            "enrollments": enrollments_by_month[i],
            "completions": completions_by_month[i],
            "revenue": enrollments_by_month[i] * price,
        }
        for i, month in enumerate(MONTHS)
    ]


async def course_analytics(
    db: AsyncIOMotorDatabase,
    course_id: str,
    year: Optional[int] = None,
    now: Optional[datetime] = None
) -> Dict:
    now = now or datetime.utcnow()
    year = year or now.year

    course = await db.courses.find_one({"course_id": course_id})
    if not course:
        raise HTTPException(status_code=404, detail="Course not found")

    price = course.get("price") or 0
    enrollments = [e for e in course.get("enrolled_students") or [] if _in_year(e.get("enrolled_at"), year)]
    completions = [c for c in course.get("completions") or [] if _in_year(c.get("completed_at"), year)]
    reviews = [r for r in course.get("reviews") or [] if _in_year(r.get("created_at"), year)]
    lectures = [
        lec for lec in await get_course_lectures(db, course)
        if _in_year(lec.get("created_at"), year)
    ]

    total_students = len(enrollments)

    recent = enrollments[-3:], completions[-2:], reviews[-2:]
    names = await _names_by_id(db, [item.get("user_id") for group in recent for item in group])

    recent_activity = [
        {"type": "enrollment", "student": names.get(e.get("user_id")) or "Student", "time": time_ago(e["enrolled_at"], now)}
        for e in recent[0]
    ] + [
        {"type": "completion", "student": names.get(c.get("user_id")) or "Student", "time": time_ago(c["completed_at"], now)}
        for c in recent[1]
    ] + [
        {
            "type": "review",
            "student": names.get(r.get("user_id")) or "Student",
            "rating": r.get("rating"),
            "time": time_ago(r["created_at"], now),
        }
        for r in recent[2]
    ]

    return {
        "overview": {
            "total_revenue": total_students * price,
            "total_students": total_students,
            "average_rating": average_rating(reviews),
            "completion_rate": round(len(completions) / total_students * 100) if total_students > 0 else 0,
        },
        "monthly_data": monthly_breakdown(enrollments, completions, price),
        "lecture_engagement": lecture_engagement(lectures),
        "recent_activity": recent_activity,
        "reviews": reviews,
    }
