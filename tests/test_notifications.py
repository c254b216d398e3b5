import json
from datetime import datetime, timedelta

import httpx
import pytest

from app.notifications.digest import build_digest_text, next_digest_run, send_weekly_digest
from app.notifications.mailer import Mailer
from app.notifications.service import (
    digest_recipients,
    notify_course_published,
    publish_recipients,
    send_reply,
)
from tests.factories import make_course, make_user


def _prefs(**flags):
    prefs = {"new_course": False, "followed_instructor": False, "weekly_digest": False, "no_mails": False}
    prefs.update(flags)
    return prefs


@pytest.fixture
async def audience(db):
    await db.users.insert_many([
        make_user("inst1", role="instructor", is_approved=True, name="Ada",
                  notification_preferences=_prefs()),
        make_user("news", notification_preferences=_prefs(new_course=True, weekly_digest=True)),
        make_user("fan", following_instructors=["inst1"],
                  notification_preferences=_prefs(followed_instructor=True)),
        make_user("fan_other", following_instructors=["inst2"],
                  notification_preferences=_prefs(followed_instructor=True)),
        make_user("quiet", notification_preferences=_prefs(new_course=True, weekly_digest=True, no_mails=True)),
    ])


# ==================== RECIPIENTS ====================

async def test_publish_recipients(db, audience):
    assert await publish_recipients(db, "inst1") == ["fan@example.com", "news@example.com"]


async def test_digest_recipients(db, audience):
    assert await digest_recipients(db) == ["news@example.com"]


async def test_missing_preference_flags_default_to_on(db, audience):
    await db.users.insert_one(make_user(
        "legacy", following_instructors=["inst1"], notification_preferences={"no_mails": False}
    ))
    assert "legacy@example.com" in await publish_recipients(db, "inst1")
    assert "legacy@example.com" in await digest_recipients(db)


async def test_notify_course_published(db, audience, mailer):
    course = make_course("C1", title="Rust 101")
    assert await notify_course_published(db, mailer, course) == 2

    sent = mailer.sent[0]
    assert sent["to"] == ["fan@example.com", "news@example.com"]
    assert sent["subject"] == "New course: Rust 101"
    assert "Ada just published" in sent["text"]
    assert "/course-detail/C1" in sent["text"]


async def test_send_reply(mailer):
    await send_reply(mailer, {"email": "g@example.com", "name": "Grace", "subject": "Help"}, "All fixed.")
    assert mailer.sent[0]["subject"] == "Re: Help"
    assert "All fixed." in mailer.sent[0]["text"]


# ==================== DIGEST ====================

@pytest.mark.parametrize("now,expected", [
    # Monday 07:30 IST -> same morning
    (datetime(2025, 6, 30, 2, 0), datetime(2025, 6, 30, 2, 30)),
    # exactly on time -> next week
    (datetime(2025, 6, 30, 2, 30), datetime(2025, 7, 7, 2, 30)),
    # Sunday evening UTC is already Monday in IST
    (datetime(2025, 6, 29, 20, 0), datetime(2025, 6, 30, 2, 30)),
    # Wednesday
    (datetime(2025, 7, 2, 12, 0), datetime(2025, 7, 7, 2, 30)),
])
def test_next_digest_run(now, expected):
    assert next_digest_run(now) == expected


def test_digest_text_lists_courses():
    text = build_digest_text([
        {"title": "Rust 101", "category": "Systems", "price": 499},
        {"title": "HTML", "category": "Web", "price": 0},
    ])
    assert "- Rust 101 (Systems, ₹499)" in text
    assert "- HTML (Web, Free)" in text


async def test_weekly_digest_only_recent_courses(db, audience, mailer):
    now = datetime(2025, 6, 30, 2, 30)
    await db.courses.insert_many([
        make_course("C1", title="Fresh", is_published=True, published_at=now - timedelta(days=2)),
        make_course("C2", title="Stale", is_published=True, published_at=now - timedelta(days=20)),
        make_course("C3", title="Draft", published_at=None),
    ])

    assert await send_weekly_digest(db, mailer, now=now) == 1
    assert mailer.sent[0]["to"] == ["news@example.com"]
    assert "Fresh" in mailer.sent[0]["text"]
    assert "Stale" not in mailer.sent[0]["text"]


async def test_weekly_digest_nothing_new(db, audience, mailer):
    assert await send_weekly_digest(db, mailer, now=datetime(2025, 6, 30)) == 0
    assert mailer.sent == []


async def test_weekly_digest_undelivered(db, audience, caplog):
    now = datetime(2025, 6, 30, 2, 30)
    await db.courses.insert_one(
        make_course("C1", title="Fresh", is_published=True, published_at=now - timedelta(days=1))
    )
    failing = Mailer(
        api_url="https://mail.example.com/send",
        api_key="secret",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )

    assert await send_weekly_digest(db, failing, now=now) == 0
    assert "not delivered" in caplog.text


# ==================== MAILER ====================

async def test_mailer_posts_to_provider():
    captured = {}

    def handler(request: httpx.Request):
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "m1"})

    mailer = Mailer(
        api_url="https://mail.example.com/send",
        api_key="secret",
        sender="DevAcademy <no-reply@example.com>",
        transport=httpx.MockTransport(handler),
    )

    assert await mailer.send(["b@example.com", "a@example.com", "a@example.com", None], "Hi", "Body") is True
    assert captured["auth"] == "Bearer secret"
    assert captured["body"]["to"] == ["a@example.com", "b@example.com"]
    assert captured["body"]["from"] == "DevAcademy <no-reply@example.com>"


async def test_mailer_failure_is_logged_not_raised():
    mailer = Mailer(
        api_url="https://mail.example.com/send",
        api_key="secret",
        transport=httpx.MockTransport(lambda request: httpx.Response(500)),
    )
    assert await mailer.send(["a@example.com"], "Hi", "Body") is False


async def test_mailer_disabled_without_url():
    mailer = Mailer(api_url="", transport=httpx.MockTransport(lambda request: httpx.Response(200)))
    assert mailer.enabled is False
    assert await mailer.send(["a@example.com"], "Hi", "Body") is False
