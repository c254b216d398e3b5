import pytest
from fastapi import HTTPException
from jose import jwt
from pymongo.errors import DuplicateKeyError

from app.core.auth import CurrentUser, decode_token
from app.core.config import Settings, settings
from app.core.database import create_indexes


def test_require_reports_missing_keys(monkeypatch):
    monkeypatch.delenv("MONGO_URL", raising=False)
    monkeypatch.setenv("JWT_SECRET_KEY", "x")
    with pytest.raises(RuntimeError, match="MONGO_URL"):
        Settings().require("MONGO_URL", "JWT_SECRET_KEY")


def test_cors_origins_split(monkeypatch):
    monkeypatch.setenv("FRONTEND_URL", "http://a.test, http://b.test ,")
    assert Settings().cors_origins == ["http://a.test", "http://b.test"]


def test_decode_token(monkeypatch):
    monkeypatch.setattr(settings, "JWT_SECRET_KEY", "k1")
    token = jwt.encode({"sub": "u1"}, "k1", algorithm="HS256")
    assert decode_token(token)["sub"] == "u1"

    forged = jwt.encode({"sub": "u1"}, "other", algorithm="HS256")
    with pytest.raises(HTTPException) as exc:
        decode_token(forged)
    assert exc.value.status_code == 401


def test_current_user_roles():
    assert CurrentUser("a", {"role": "admin"}).is_admin
    assert CurrentUser("i", {"role": "instructor"}).is_instructor
    student = CurrentUser("s", {})
    assert student.role == "student"
    assert not student.is_admin and not student.is_instructor


async def test_one_certificate_per_user_and_course(db):
    await create_indexes(db)
    await db.certificates.insert_one({"certificate_id": "a", "user_id": "u", "course_id": "c"})
    with pytest.raises(DuplicateKeyError):
        await db.certificates.insert_one({"certificate_id": "b", "user_id": "u", "course_id": "c"})
