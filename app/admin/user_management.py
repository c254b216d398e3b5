"""
Instructor approval workflow and user listings for the admin panel
"""

import logging
from datetime import datetime
from typing import Dict

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.courses.models import UserRole

logger = logging.getLogger(__name__)

USER_LIST_PROJECTION = {"_id": 0, "user_id": 1, "name": 1, "email": 1, "created_at": 1, "photo_url": 1}


async def manage_users(db: AsyncIOMotorDatabase) -> Dict:
    """
    Students plus instructors grouped by approval state
    """
    students = await db.users.find(
        {"role": UserRole.STUDENT.value}, USER_LIST_PROJECTION
    ).to_list(length=None)

    instructors = await db.users.find(
        {"role": UserRole.INSTRUCTOR.value},
        {**USER_LIST_PROJECTION, "is_approved": 1, "reject": 1}
    ).to_list(length=None)

    approved = [u for u in instructors if u.get("is_approved") and not u.get("reject")]
    rejected = [u for u in instructors if u.get("reject")]
    pending = [u for u in instructors if not u.get("is_approved") and not u.get("reject")]

    return {
        "students": students,
        "instructors": {
            "approved": approved,
            "rejected": rejected,
            "pending": pending,
        }
    }


async def set_instructor_approval(db: AsyncIOMotorDatabase, instructor_id: str, approved: bool) -> dict:
    """Approve or reject an instructor; returns the updated user"""
    if approved:
        updates = {"is_approved": True, "reject": False, "approved_at": datetime.utcnow()}
    else:
        updates = {"is_approved": False, "reject": True, "rejected_at": datetime.utcnow()}

    user = await db.users.find_one_and_update(
        {"user_id": instructor_id},
        {"$set": updates},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER
    )
    if not user:
        raise HTTPException(status_code=404, detail="User not found")

    logger.info("Instructor %s %s", instructor_id, "approved" if approved else "rejected")
    return user
