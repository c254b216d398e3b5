from pydantic import BaseModel
from typing import Any, List, Optional

# ==================== PROGRESS MODELS ====================

class LectureProgressUpdate(BaseModel):
    # Sent straight from the video player; non-numeric values count as 0
    watched_time: Optional[Any] = 0
    drop_off_time: Optional[Any] = 0
    video_length: Optional[Any] = 0

class LectureProgressEntry(BaseModel):
    lecture_id: str
    watched_time: float = 0
    video_length: float = 0
    viewed: bool = False

class LectureProgressResult(BaseModel):
    message: str
    lecture: LectureProgressEntry
    completed: bool

class CourseProgressOut(BaseModel):
    course_details: dict
    progress: List[LectureProgressEntry]
    completed: bool
