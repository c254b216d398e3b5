from datetime import datetime

import pytest
from mongomock_motor import AsyncMongoMockClient

from app.notifications.mailer import Mailer
from tests.factories import make_course, make_lecture, make_user


class RecordingMailer(Mailer):
    """Keeps sent mail in memory instead of calling the provider"""

    def __init__(self):
        super().__init__(api_url="http://mail.test/send", api_key="test")
        self.sent = []

    async def send(self, to, subject, text):
        self.sent.append({"to": sorted(set(to)), "subject": subject, "text": text})
        return True


@pytest.fixture
def db():
    return AsyncMongoMockClient()["devacademy_test"]


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
async def course_with_lectures(db):
    """A published course with two lectures and one enrolled student"""
    await db.users.insert_one(make_user("inst1", role="instructor", is_approved=True))
    await db.users.insert_one(make_user("stu1", enrolled_courses=["C1"]))
    await db.lectures.insert_many([make_lecture("L1", "C1"), make_lecture("L2", "C1")])
    await db.courses.insert_one(make_course(
        "C1",
        lectures=["L1", "L2"],
        is_published=True,
        published_at=datetime(2025, 1, 2),
        enrolled_students=[{"user_id": "stu1", "enrolled_at": datetime(2025, 1, 3)}],
    ))
    return "C1"
