"""
Weekly digest: courses published in the last week, mailed every Monday 08:00 IST
"""

import asyncio
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorDatabase

from app.notifications.mailer import Mailer
from app.notifications.service import digest_recipients

logger = logging.getLogger(__name__)

DIGEST_TZ = timezone(timedelta(hours=5, minutes=30))  # IST
DIGEST_WEEKDAY = 0  # Monday
DIGEST_HOUR = 8
DIGEST_LOOKBACK = timedelta(days=7)


def next_digest_run(now: Optional[datetime] = None) -> datetime:
    """
    Next Monday 08:00 IST strictly after `now`

    `now` and the result are naive UTC, like every stored timestamp
    """
    now = now or datetime.utcnow()
    now_local = now.replace(tzinfo=timezone.utc).astimezone(DIGEST_TZ)

    candidate = now_local.replace(hour=DIGEST_HOUR, minute=0, second=0, microsecond=0)
    candidate += timedelta(days=(DIGEST_WEEKDAY - candidate.weekday()) % 7)
    if candidate <= now_local:
        candidate += timedelta(days=7)

    return candidate.astimezone(timezone.utc).replace(tzinfo=None)


def build_digest_text(courses: list) -> str:
    lines = ["New on DevAcademy this week:", ""]
    for course in courses:
        price = course.get("price") or 0
        price_label = "Free" if not price else f"₹{price}"
        lines.append(f"- {course.get('title')} ({course.get('category', 'General')}, {price_label})")
    lines += ["", "Happy learning!"]
    return "\n".join(lines)


async def send_weekly_digest(db: AsyncIOMotorDatabase, mailer: Mailer, now: Optional[datetime] = None) -> int:
    """
    Mail last week's new courses to digest subscribers

    Returns:
        number of recipients mailed (0 when nothing was published)
    """
    now = now or datetime.utcnow()
    try:
        courses = await db.courses.find({
            "is_published": True,
            "published_at": {"$gte": now - DIGEST_LOOKBACK},
        }).sort("published_at", -1).to_list(length=None)

        if not courses:
            logger.info("Weekly digest: no new courses, nothing to send")
            return 0

        recipients = await digest_recipients(db)
        if not recipients:
            return 0

        delivered = await mailer.send(
            recipients, subject="Your weekly DevAcademy digest", text=build_digest_text(courses)
        )
        if not delivered:
            logger.warning("Weekly digest: mail to %d user(s) was not delivered", len(recipients))
            return 0

        logger.info("Weekly digest: %d course(s) sent to %d user(s)", len(courses), len(recipients))
        return len(recipients)
    except Exception:
        logger.exception("Error in sending weekly digest")
        return 0


async def digest_loop(db: AsyncIOMotorDatabase, mailer: Mailer):
    """
    Background worker started at app startup; cancelled at shutdown
    """
    while True:
        run_at = next_digest_run()
        delay = max(0.0, (run_at - datetime.utcnow()).total_seconds())
        logger.info("📧 Next weekly digest at %s UTC", run_at.isoformat())
        await asyncio.sleep(delay)

        logger.info("📧 Weekly digest running...")
        await send_weekly_digest(db, mailer)
