import logging
import uuid
from datetime import datetime
from typing import Tuple

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.courses.database import get_course
from app.progress.progress_service import has_completion

logger = logging.getLogger(__name__)


def _public(cert: dict) -> dict:
    cert = dict(cert)
    cert.pop("_id", None)
    return cert


async def issue_certificate(
    db: AsyncIOMotorDatabase,
    user_id: str,
    course_id: str,
    base_url: str
) -> Tuple[dict, bool]:
    """
    Issue the course certificate once the student has completed the course

    Returns:
        (certificate, created) - created is False when it already existed
    """
    course = await get_course(db, course_id)
    if not course:
        raise HTTPException(status_code=404, detail="Course not found!")

    if not has_completion(course, user_id):
        raise HTTPException(
            status_code=400,
            detail="You cannot receive a certificate, course not completed!"
        )

    existing = await db.certificates.find_one({"user_id": user_id, "course_id": course_id})
    if existing:
        return _public(existing), False

    certificate_id = str(uuid.uuid4())
    certificate = {
        "certificate_id": certificate_id,
        "user_id": user_id,
        "course_id": course_id,
        "issued_at": datetime.utcnow(),
        "url": f"{base_url.rstrip('/')}/certificates/{certificate_id}",
    }
    await db.certificates.insert_one(certificate)
    await db.users.update_one(
        {"user_id": user_id},
        {"$push": {"certificates": certificate_id}}
    )

    logger.info("Certificate %s issued to %s for course %s", certificate_id, user_id, course_id)
    return _public(certificate), True


async def get_user_certificate(db: AsyncIOMotorDatabase, user_id: str, certificate_id: str) -> dict:
    user = await db.users.find_one({"user_id": user_id}, {"certificates": 1})
    if not user:
        raise HTTPException(status_code=404, detail="User not found!")

    wanted = certificate_id.strip()
    owned = [str(cid).strip() for cid in user.get("certificates", [])]
    if wanted not in owned:
        raise HTTPException(status_code=404, detail="Certificate not found!")

    cert = await db.certificates.find_one({"certificate_id": wanted})
    if not cert:
        raise HTTPException(status_code=404, detail="Certificate not found!")

    course = await get_course(db, cert["course_id"]) or {}
    result = _public(cert)
    result["course_title"] = course.get("title")
    return result


async def verify_certificate(db: AsyncIOMotorDatabase, certificate_id: str) -> dict:
    cert = await db.certificates.find_one({"certificate_id": certificate_id.strip()})
    if not cert:
        return {"valid": False, "certificate_id": certificate_id, "message": "Certificate not found"}

    user = await db.users.find_one({"user_id": cert["user_id"]}) or {}
    course = await get_course(db, cert["course_id"]) or {}
    return {
        "valid": True,
        "certificate_id": cert["certificate_id"],
        "issued_to": user.get("name", cert["user_id"]),
        "course_id": cert["course_id"],
        "course_title": course.get("title"),
        "issued_at": cert["issued_at"].isoformat() if isinstance(cert.get("issued_at"), datetime) else cert.get("issued_at"),
        "message": "Certificate is valid"
    }
