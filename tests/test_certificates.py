from datetime import datetime

import pytest
from fastapi import HTTPException

from app.certificates.certificate_service import (
    get_user_certificate,
    issue_certificate,
    verify_certificate,
)
from tests.factories import make_course, make_user

BASE_URL = "https://devacademy.example.com/"


@pytest.fixture
async def completed_course(db):
    await db.users.insert_one(make_user("stu1", enrolled_courses=["C1"]))
    await db.courses.insert_one(make_course(
        "C1",
        title="Python Basics",
        completions=[{"user_id": "stu1", "completed_at": datetime(2025, 2, 1)}],
    ))
    return "C1"


async def test_not_completed_is_rejected(db):
    await db.users.insert_one(make_user("stu2"))
    await db.courses.insert_one(make_course("C1"))
    with pytest.raises(HTTPException) as exc:
        await issue_certificate(db, "stu2", "C1", BASE_URL)
    assert exc.value.status_code == 400
    assert await db.certificates.count_documents({}) == 0


async def test_unknown_course(db):
    with pytest.raises(HTTPException) as exc:
        await issue_certificate(db, "stu1", "NOPE", BASE_URL)
    assert exc.value.status_code == 404


async def test_issue_is_idempotent(db, completed_course):
    cert, created = await issue_certificate(db, "stu1", completed_course, BASE_URL)
    assert created is True
    assert cert["url"] == f"https://devacademy.example.com/certificates/{cert['certificate_id']}"
    assert "_id" not in cert

    again, created = await issue_certificate(db, "stu1", completed_course, BASE_URL)
    assert created is False
    assert again["certificate_id"] == cert["certificate_id"]

    assert await db.certificates.count_documents({}) == 1
    user = await db.users.find_one({"user_id": "stu1"})
    assert user["certificates"] == [cert["certificate_id"]]


async def test_user_certificate_lookup(db, completed_course):
    cert, _ = await issue_certificate(db, "stu1", completed_course, BASE_URL)

    found = await get_user_certificate(db, "stu1", f"  {cert['certificate_id']} ")
    assert found["course_title"] == "Python Basics"

    await db.users.insert_one(make_user("stu2"))
    with pytest.raises(HTTPException) as exc:
        await get_user_certificate(db, "stu2", cert["certificate_id"])
    assert exc.value.status_code == 404


async def test_verify(db, completed_course):
    cert, _ = await issue_certificate(db, "stu1", completed_course, BASE_URL)

    result = await verify_certificate(db, cert["certificate_id"])
    assert result["valid"] is True
    assert result["issued_to"] == "Stu1"
    assert result["course_title"] == "Python Basics"

    missing = await verify_certificate(db, "does-not-exist")
    assert missing["valid"] is False
