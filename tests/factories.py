from datetime import datetime


def make_user(user_id, role="student", **extra):
    user = {
        "user_id": user_id,
        "name": user_id.title(),
        "email": f"{user_id}@example.com",
        "role": role,
        "enrolled_courses": [],
        "certificates": [],
        "is_approved": role != "instructor",
        "reject": False,
        "notification_preferences": {
            "new_course": True,
            "followed_instructor": True,
            "weekly_digest": True,
            "no_mails": False,
        },
        "following_instructors": [],
        "created_at": datetime(2025, 1, 1),
    }
    user.update(extra)
    return user


def make_course(course_id, creator_id="inst1", **extra):
    course = {
        "course_id": course_id,
        "title": f"Course {course_id}",
        "subtitle": "Learn things",
        "description": "A complete course",
        "price": 100,
        "level": "Beginner",
        "category": "Web Development",
        "thumbnail_url": "https://cdn.example.com/thumb.png",
        "creator_id": creator_id,
        "is_published": False,
        "published_at": None,
        "lectures": [],
        "enrolled_students": [],
        "completions": [],
        "reviews": [],
        "created_at": datetime(2025, 1, 1),
    }
    course.update(extra)
    return course


def make_lecture(lecture_id, course_id, video_url="https://cdn.example.com/v.mp4", **extra):
    lecture = {
        "lecture_id": lecture_id,
        "course_id": course_id,
        "title": f"Lecture {lecture_id}",
        "video_url": video_url,
        "is_preview_free": False,
        "views": [],
        "drop_off": [],
        "avg_time": [],
        "created_at": datetime(2025, 1, 1),
    }
    lecture.update(extra)
    return lecture

