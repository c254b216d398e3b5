"""
Analytics & Dashboard Stats for Admin Panel
Aggregations over courses, users and certificates
"""

from datetime import datetime, timedelta
from typing import Dict, List, Optional

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.courses.models import AnalyticsRange

MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]
VALID_RANGES = tuple(r.value for r in AnalyticsRange)


# ============================================================================
# Date helpers
# ============================================================================

def shift_months(dt: datetime, months: int) -> datetime:
    """Calendar month shift, clamping the day to the target month"""
    month_index = dt.month - 1 + months
    year = dt.year + month_index // 12
    month = month_index % 12 + 1
    next_first = datetime(year + (month == 12), month % 12 + 1, 1)
    last_day = (next_first - timedelta(days=1)).day
    return dt.replace(year=year, month=month, day=min(dt.day, last_day))


def start_of_month(dt: datetime) -> datetime:
    return dt.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def day_label(dt: datetime) -> str:
    return f"{dt.day} {MONTHS[dt.month - 1]}"


def generate_date_labels(range_: str, today: datetime) -> List[str]:
    if range_ == "year":
        return list(MONTHS)

    days = 30 if range_ == "month" else 7
    return [day_label(today - timedelta(days=i)) for i in range(days - 1, -1, -1)]


def format_label(dt: datetime, range_: str) -> str:
    if range_ == "year":
        return MONTHS[dt.month - 1]
    return day_label(dt)


def generate_revenue_data(courses: List[dict], range_: str, today: datetime) -> List[Dict]:
    """Revenue per chart bucket; enrollments outside the buckets are ignored"""
    labels = generate_date_labels(range_, today)
    revenue_map = {label: 0 for label in labels}

    for course in courses:
        price = course.get("price") or 0
        for enrollment in course.get("enrolled_students") or []:
            enrolled_at = enrollment.get("enrolled_at")
            if not isinstance(enrolled_at, datetime):
                continue
            label = format_label(enrolled_at, range_)
            if label in revenue_map:
                revenue_map[label] += price

    return [{"date": label, "revenue": revenue_map[label]} for label in labels]


def calculate_growth(current: float, last: float) -> float:
    """Period-over-period growth in percent, clamped to 0-100"""
    if last == 0:
        return 100 if current > 0 else 0
    growth = (current - last) / last * 100
    growth = min(max(growth, 0), 100)
    return round(growth, 2)


def average_rating(reviews: List[dict]) -> float:
    if not reviews:
        return 0
    return round(sum(r.get("rating", 0) for r in reviews) / len(reviews), 1)


def completion_categories(courses: List[dict]) -> List[Dict]:
    """Completed vs uncompleted share of enrollments per course"""
    result = []
    for course in courses:
        enrolled = len(course.get("enrolled_students") or [])
        completed = len(course.get("completions") or [])
        uncompleted = enrolled - completed
        result.append({
            "category": course.get("title"),
            "completed": round(completed / enrolled * 100, 1) if enrolled > 0 else 0,
            "uncompleted": round(uncompleted / enrolled * 100, 1) if enrolled > 0 else 0,
        })
    return result


def last_iso_weeks(now: datetime, count: int = 4) -> List[Dict]:
    """The `count` most recent ISO weeks, oldest first"""
    weeks = []
    for i in range(count - 1, -1, -1):
        iso = (now - timedelta(days=7 * i)).isocalendar()
        weeks.append({"week": iso[1], "year": iso[0], "label": f"Week {count - i}"})
    return weeks


def fill_enrollment_trends(weeks: List[Dict], grouped: List[Dict]) -> List[Dict]:
    """Place `{_id: {role, week, year}, count}` rows into the week slots"""
    students = [0] * len(weeks)
    instructors = [0] * len(weeks)

    for row in grouped:
        key = row.get("_id") or {}
        for index, w in enumerate(weeks):
            if w["week"] == key.get("week") and w["year"] == key.get("year"):
                if key.get("role") == "student":
                    students[index] = row.get("count", 0)
                elif key.get("role") == "instructor":
                    instructors[index] = row.get("count", 0)
                break

    return [
        {"week": w["label"], "students": students[i], "instructors": instructors[i]}
        for i, w in enumerate(weeks)
    ]


# ============================================================================
# Pipelines
# ============================================================================

def revenue_window_pipeline(start: datetime, end: datetime) -> List[Dict]:
    return [
        {"$unwind": "$enrolled_students"},
        {"$match": {"enrolled_students.enrolled_at": {"$gte": start, "$lt": end}}},
        {"$group": {"_id": None, "total_revenue": {"$sum": {"$ifNull": ["$price", 0]}}}},
    ]


def signup_weeks_pipeline(since: datetime) -> List[Dict]:
    return [
        {"$match": {"created_at": {"$gte": since}}},
        {"$project": {
            "role": 1,
            "iso_week": {"$isoWeek": "$created_at"},
            "iso_year": {"$isoWeekYear": "$created_at"},
        }},
        {"$group": {
            "_id": {"role": "$role", "week": "$iso_week", "year": "$iso_year"},
            "count": {"$sum": 1},
        }},
        {"$sort": {"_id.year": 1, "_id.week": 1}},
    ]


def top_courses_pipeline(limit: int = 5) -> List[Dict]:
    return [
        {"$addFields": {
            "enrolled_count": {"$size": {"$ifNull": ["$enrolled_students", []]}},
        }},
        {"$sort": {"enrolled_count": -1}},
        {"$limit": limit},
        {"$project": {
            "_id": 0,
            "course_id": 1,
            "title": 1,
            "enrolled_count": 1,
            "revenue": {"$multiply": ["$enrolled_count", {"$ifNull": ["$price", 0]}]},
            "reviews": {"$ifNull": ["$reviews", []]},
            "completions": {"$ifNull": ["$completions", []]},
            "thumbnail_url": 1,
        }},
    ]


def top_instructors_pipeline() -> List[Dict]:
    return [
        {"$match": {"role": "instructor"}},
        {"$lookup": {
            "from": "courses",
            "localField": "user_id",
            "foreignField": "creator_id",
            "as": "courses",
        }},
        {"$project": {
            "_id": 0,
            "user_id": 1,
            "name": 1,
            "email": 1,
            "photo_url": 1,
            "courses": 1,
        }},
    ]


def instructor_totals(row: Dict) -> Dict:
    """Collapse the joined courses of one instructor into counts and revenue"""
    courses = row.pop("courses", None) or []
    enrolled = [len(c.get("enrolled_students") or []) for c in courses]
    row["total_courses"] = len(courses)
    row["total_enrolled_students"] = sum(enrolled)
    row["revenue"] = sum(n * (c.get("price") or 0) for n, c in zip(enrolled, courses))
    return row


# ============================================================================
# Dashboard
# ============================================================================

async def _window_revenue(db: AsyncIOMotorDatabase, start: datetime, end: datetime) -> float:
    rows = await db.courses.aggregate(revenue_window_pipeline(start, end)).to_list(length=1)
    return rows[0]["total_revenue"] if rows else 0


async def _signup_weeks(db: AsyncIOMotorDatabase, since: datetime) -> List[Dict]:
    return await db.users.aggregate(signup_weeks_pipeline(since)).to_list(length=None)


async def admin_dashboard(db: AsyncIOMotorDatabase, range_: str, now: Optional[datetime] = None) -> Dict:
    """
    Platform-wide numbers for the admin dashboard
    """
    if range_ not in VALID_RANGES:
        raise HTTPException(status_code=400, detail="Invalid range parameter")

    now = now or datetime.utcnow()

    courses = await db.courses.find({}).to_list(length=None)

    chart_data = generate_revenue_data(courses, range_, now)
    chart_revenue = sum(item["revenue"] for item in chart_data)

    total_courses = len(courses)
    total_students = await db.users.count_documents({"role": "student"})
    total_instructors = await db.users.count_documents({"role": "instructor"})

    total_enrollments = sum(len(c.get("enrolled_students") or []) for c in courses)
    total_completions = sum(len(c.get("completions") or []) for c in courses)
    total_revenue = sum(len(c.get("enrolled_students") or []) * (c.get("price") or 0) for c in courses)

    completion_rate = 0
    if total_courses > 0 and total_enrollments > 0:
        completion_rate = round(total_completions / total_enrollments * 100, 2)

    active_courses = await db.courses.count_documents({"is_published": True})
    inactive_courses = await db.courses.count_documents({"is_published": False})

    # Growth: last month vs. the window before it
    last_month = shift_months(now, -1)
    previous_start = start_of_month(shift_months(last_month, -1))

    revenue_this_month = await _window_revenue(db, last_month, now)
    revenue_last_month = await _window_revenue(db, previous_start, last_month)

    students_this_window = await db.users.count_documents({
        "role": "student",
        "created_at": {"$gte": last_month, "$lt": now}
    })
    students_last_window = await db.users.count_documents({
        "role": "student",
        "created_at": {"$gte": previous_start, "$lt": last_month}
    })

    # Top selling courses by enrollments
    top_selling = sorted(
        courses,
        key=lambda c: len(c.get("enrolled_students") or []),
        reverse=True
    )[:5]

    # Signups per ISO week, last 4 weeks
    weeks = last_iso_weeks(now)
    grouped = await _signup_weeks(db, now - timedelta(days=28))
    enrollment_data = fill_enrollment_trends(weeks, grouped)

    usage_data = {
        "active": round(active_courses / total_courses * 100, 1) if total_courses > 0 else 0,
        "inactive": round(inactive_courses / total_courses * 100, 1) if total_courses > 0 else 0,
    }

    month_start = start_of_month(now)
    next_month_start = shift_months(month_start, 1)

    students_this_month = await db.users.count_documents({
        "role": "student", "created_at": {"$gte": month_start}
    })
    instructors_this_month = await db.users.count_documents({
        "role": "instructor", "created_at": {"$gte": month_start}
    })

    total_certificates = await db.certificates.count_documents({})
    certificates_this_month = await db.certificates.count_documents({
        "issued_at": {"$gte": month_start, "$lt": next_month_start}
    })

    return {
        "total_courses": total_courses,
        "total_students": total_students,
        "total_instructors": total_instructors,
        "total_revenue": total_revenue,
        "active_courses": active_courses,
        "inactive_courses": inactive_courses,
        "revenue_growth": calculate_growth(revenue_this_month, revenue_last_month),
        "student_growth": calculate_growth(students_this_window, students_last_window),
        "chart_data": chart_data,
        "revenue": chart_revenue,
        "completion_categories": completion_categories(top_selling),
        "enrollment_data": enrollment_data,
        "completion_rate": completion_rate,
        "usage_data": usage_data,
        "students_this_month": students_this_month,
        "instructors_this_month": instructors_this_month,
        "total_certificates": total_certificates,
        "certificates_this_month": certificates_this_month,
    }


async def top_courses(db: AsyncIOMotorDatabase, limit: int = 5) -> List[Dict]:
    rows = await db.courses.aggregate(top_courses_pipeline(limit)).to_list(length=limit)
    for row in rows:
        row["rating"] = average_rating(row.pop("reviews", None) or [])
    return rows


async def top_instructors(db: AsyncIOMotorDatabase, limit: int = 5) -> List[Dict]:
    rows = await db.users.aggregate(top_instructors_pipeline()).to_list(length=None)
    ranked = sorted(
        (instructor_totals(row) for row in rows),
        key=lambda r: r["total_enrolled_students"],
        reverse=True
    )
    return ranked[:limit]


async def manage_courses(db: AsyncIOMotorDatabase) -> List[Dict]:
    """Every course with its creator and headline stats"""
    courses = await db.courses.find({}).sort("created_at", -1).to_list(length=None)

    creator_ids = list({c.get("creator_id") for c in courses if c.get("creator_id")})
    creators = await db.users.find(
        {"user_id": {"$in": creator_ids}},
        {"_id": 0, "user_id": 1, "name": 1, "email": 1}
    ).to_list(length=None)
    creators_by_id = {u["user_id"]: u for u in creators}

    return [
        {
            "course_id": c["course_id"],
            "title": c.get("title"),
            "subtitle": c.get("subtitle"),
            "category": c.get("category"),
            "level": c.get("level"),
            "price": c.get("price"),
            "thumbnail_url": c.get("thumbnail_url"),
            "creator": creators_by_id.get(c.get("creator_id")),
            "is_published": bool(c.get("is_published")),
            "created_at": c.get("created_at"),
            "stats": {
                "total_students": len(c.get("enrolled_students") or []),
                "total_lectures": len(c.get("lectures") or []),
                "total_reviews": len(c.get("reviews") or []),
                "average_rating": average_rating(c.get("reviews") or []),
            },
        }
        for c in courses
    ]
