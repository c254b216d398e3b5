from pydantic import BaseModel
from typing import Optional
from enum import Enum

# ==================== ENUMS ====================

class UserRole(str, Enum):
    STUDENT = "student"
    INSTRUCTOR = "instructor"
    ADMIN = "admin"

class AnalyticsRange(str, Enum):
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"

# ==================== LECTURE MODELS ====================

class LectureCreate(BaseModel):
    title: str

class LectureOut(BaseModel):
    lecture_id: str
    course_id: str
    title: str
    video_url: Optional[str] = None
    is_preview_free: bool = False
