"""
Who gets told about what: recipient selection and message bodies
"""

import logging
from typing import List

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import settings
from app.notifications.mailer import Mailer

logger = logging.getLogger(__name__)


# ==================== RECIPIENTS ====================

def _wants_mail(user: dict, preference: str) -> bool:
    prefs = user.get("notification_preferences") or {}
    if prefs.get("no_mails", False):
        return False
    return prefs.get(preference, True)


async def publish_recipients(db: AsyncIOMotorDatabase, instructor_id: str) -> List[str]:
    """
    Users to tell about a newly published course:
    everyone opted into new-course mails, plus followers of the instructor
    """
    new_course_users = await db.users.find(
        {"notification_preferences.new_course": {"$ne": False}}
    ).to_list(length=None)

    followers = await db.users.find({
        "following_instructors": instructor_id,
        "notification_preferences.followed_instructor": {"$ne": False},
    }).to_list(length=None)

    emails = {u["email"] for u in new_course_users if u.get("email") and _wants_mail(u, "new_course")}
    emails.update(
        u["email"] for u in followers if u.get("email") and _wants_mail(u, "followed_instructor")
    )
    return sorted(emails)


async def digest_recipients(db: AsyncIOMotorDatabase) -> List[str]:
    users = await db.users.find(
        {"notification_preferences.weekly_digest": {"$ne": False}}
    ).to_list(length=None)
    return sorted({u["email"] for u in users if u.get("email") and _wants_mail(u, "weekly_digest")})


# ==================== SENDERS ====================

async def notify_course_published(db: AsyncIOMotorDatabase, mailer: Mailer, course: dict) -> int:
    """Mail the publish announcement; returns number of recipients"""
    try:
        instructor = await db.users.find_one({"user_id": course.get("creator_id")}) or {}
        recipients = await publish_recipients(db, course.get("creator_id"))
        if not recipients:
            return 0

        instructor_name = instructor.get("name", "An instructor")
        link = f"{settings.FRONTEND_URL.split(',')[0].rstrip('/')}/course-detail/{course['course_id']}"
        await mailer.send(
            recipients,
            subject=f"New course: {course.get('title')}",
            text=(
                f"{instructor_name} just published \"{course.get('title')}\".\n\n"
                f"Take a look: {link}\n"
            )
        )
        return len(recipients)
    except Exception:
        logger.exception("Failed to send publish notification for course %s", course.get("course_id"))
        return 0


async def notify_instructor_decision(mailer: Mailer, user: dict, approved: bool):
    if approved:
        subject = "Your instructor account has been approved"
        text = f"Hi {user.get('name', '')},\n\nYou can now create and publish courses on DevAcademy.\n"
    else:
        subject = "Your instructor application"
        text = (
            f"Hi {user.get('name', '')},\n\n"
            "Unfortunately your instructor application was not approved at this time.\n"
        )
    await mailer.send([user.get("email")], subject=subject, text=text)


async def send_reply(mailer: Mailer, message: dict, reply: str):
    await mailer.send(
        [message.get("email")],
        subject=f"Re: {message.get('subject', 'Your message')}",
        text=f"Hi {message.get('name', '')},\n\n{reply}\n\nDevAcademy Support\n"
    )
