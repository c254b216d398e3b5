from datetime import datetime

import pytest
from fastapi import HTTPException

from app.students.student_service import (
    analytics_since,
    completed_courses,
    lecture_progress_percent,
    list_instructors,
    student_analytics,
    student_dashboard,
    toggle_follow_instructor,
    update_notification_preferences,
)
from tests.factories import make_course, make_user

NOW = datetime(2025, 6, 30, 12, 0)


def test_analytics_since():
    assert analytics_since("week", NOW) == datetime(2025, 6, 23, 12, 0)
    assert analytics_since("month", NOW) == datetime(2025, 5, 30, 12, 0)
    assert analytics_since("year", NOW) == datetime(2024, 6, 30, 12, 0)
    assert analytics_since(None, NOW) == datetime(2020, 6, 30, 12, 0)


def test_lecture_progress_percent():
    assert lecture_progress_percent(1, 3) == 33
    assert lecture_progress_percent(5, 3) == 100
    assert lecture_progress_percent(2, 0) == 0


@pytest.fixture
async def enrolled_student(db):
    await db.users.insert_one(make_user("inst1", role="instructor", is_approved=True, name="Ada"))
    await db.users.insert_one(make_user(
        "stu1", enrolled_courses=["C1", "C2"], certificates=["cert-1"]
    ))
    await db.courses.insert_many([
        make_course("C1", title="Python", lectures=["L1", "L2"], is_published=True,
                    completions=[{"user_id": "stu1", "completed_at": datetime(2025, 6, 25)}]),
        make_course("C2", title="Go", lectures=["L3", "L4", "L5"], is_published=True),
    ])
    await db.course_progress.insert_many([
        {
            "user_id": "stu1",
            "course_id": "C1",
            "completed": True,
            "lecture_progress": [
                {"lecture_id": "L1", "viewed": True},
                {"lecture_id": "L2", "viewed": True},
            ],
        },
        {
            "user_id": "stu1",
            "course_id": "C2",
            "completed": False,
            "lecture_progress": [{"lecture_id": "L3", "viewed": True}],
        },
    ])
    await db.certificates.insert_one({
        "certificate_id": "cert-1",
        "user_id": "stu1",
        "course_id": "C1",
        "issued_at": datetime(2025, 6, 26, 9, 0),
        "url": "https://devacademy.example.com/certificates/cert-1",
    })
    return "stu1"


async def test_dashboard_splits_enrolled_and_completed(db, enrolled_student):
    result = await student_dashboard(db, enrolled_student)

    assert [c["course_id"] for c in result["completed_courses"]] == ["C1"]
    assert [c["course_id"] for c in result["enrolled_courses"]] == ["C2"]
    assert result["enrolled_courses"][0]["progress"] == 33
    assert result["enrolled_courses"][0]["creator"] == {"name": "Ada"}
    assert result["stats"] == {
        "total_enrolled": 2,
        "total_completed": 1,
        "total_certificates": 1,
        "total_progress": 60,
    }


async def test_dashboard_ignores_lectures_outside_course(db, enrolled_student):
    await db.course_progress.update_one(
        {"user_id": "stu1", "course_id": "C2"},
        {"$push": {"lecture_progress": {"lecture_id": "REMOVED", "viewed": True}}}
    )

    result = await student_dashboard(db, enrolled_student)

    assert result["enrolled_courses"][0]["progress"] == 33
    assert result["stats"]["total_progress"] == 60


async def test_dashboard_unknown_user(db):
    with pytest.raises(HTTPException) as exc:
        await student_dashboard(db, "ghost")
    assert exc.value.status_code == 404


async def test_completed_courses_carry_certificate(db, enrolled_student):
    result = await completed_courses(db, enrolled_student)

    assert len(result) == 1
    course = result[0]
    assert course["creator"] == "Ada"
    assert course["formatted_completed_at"] == "26/06/2025"
    assert course["certificate"]["certificate_id"] == "cert-1"


async def test_analytics_window(db, enrolled_student):
    week = await student_analytics(db, enrolled_student, "week", now=NOW)
    assert [c["course_id"] for c in week["completed_courses"]] == ["C1"]
    assert week["completed_courses"][0]["creator"] == "Ada"
    assert week["certificates"][0]["course_title"] == "Python"

    later = await student_analytics(db, enrolled_student, "week", now=datetime(2025, 8, 1))
    assert later == {"completed_courses": [], "certificates": []}


async def test_follow_toggle(db, enrolled_student):
    assert await toggle_follow_instructor(db, "stu1", "inst1") is True
    instructors = await list_instructors(db, "stu1")
    assert instructors[0]["is_following"] is True
    assert instructors[0]["total_courses"] == 2

    assert await toggle_follow_instructor(db, "stu1", "inst1") is False
    user = await db.users.find_one({"user_id": "stu1"})
    assert user["following_instructors"] == []


async def test_follow_rules(db, enrolled_student):
    with pytest.raises(HTTPException) as exc:
        await toggle_follow_instructor(db, "inst1", "inst1")
    assert exc.value.status_code == 400

    with pytest.raises(HTTPException) as exc:
        await toggle_follow_instructor(db, "inst1", "stu1")
    assert exc.value.status_code == 404


async def test_no_mails_switches_everything_off(db, enrolled_student):
    prefs = await update_notification_preferences(db, "stu1", {"weekly_digest": False})
    assert prefs == {
        "new_course": True,
        "followed_instructor": True,
        "weekly_digest": False,
        "no_mails": False,
    }

    prefs = await update_notification_preferences(db, "stu1", {"no_mails": True, "new_course": True})
    assert prefs == {
        "new_course": False,
        "followed_instructor": False,
        "weekly_digest": False,
        "no_mails": True,
    }
    user = await db.users.find_one({"user_id": "stu1"})
    assert user["notification_preferences"] == prefs
