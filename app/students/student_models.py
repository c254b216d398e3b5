from pydantic import BaseModel
from typing import Optional


class NotificationPreferencesUpdate(BaseModel):
    new_course: Optional[bool] = None
    followed_instructor: Optional[bool] = None
    weekly_digest: Optional[bool] = None
    no_mails: Optional[bool] = None
