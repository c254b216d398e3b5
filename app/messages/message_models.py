import re
from enum import Enum

from pydantic import BaseModel, validator

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class MessageCategory(str, Enum):
    GENERAL = "general"
    TECHNICAL = "technical"
    INSTRUCTOR = "instructor"
    FEEDBACK = "feedback"


def _min_length(value: str, length: int, label: str) -> str:
    value = (value or "").strip()
    if len(value) < length:
        raise ValueError(f"{label} must be at least {length} characters")
    return value


class MessageCreate(BaseModel):
    name: str
    email: str
    category: MessageCategory
    subject: str
    message: str

    @validator("name")
    def validate_name(cls, v):
        return _min_length(v, 2, "Name")

    @validator("email")
    def validate_email(cls, v):
        v = (v or "").strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError("Invalid email address")
        return v

    @validator("subject")
    def validate_subject(cls, v):
        return _min_length(v, 5, "Subject")

    @validator("message")
    def validate_message(cls, v):
        return _min_length(v, 10, "Message")


class MessageReply(BaseModel):
    reply_message: str = ""
