# app/core/auth.py

from typing import Optional

from fastapi import Depends, Header, HTTPException
from jose import JWTError, jwt
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.config import settings
from app.core.database import get_db
from app.courses.models import UserRole


class CurrentUser:
    """
    Authenticated user loaded from the users collection
    """
    def __init__(self, user_id: str, profile: dict):
        self.user_id = user_id
        self.name = profile.get("name")
        self.email = profile.get("email")
        self.role = profile.get("role", UserRole.STUDENT.value)
        self.is_approved = profile.get("is_approved", False)
        self.profile = profile

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN.value

    @property
    def is_instructor(self) -> bool:
        return self.role == UserRole.INSTRUCTOR.value


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        raise HTTPException(status_code=401, detail="Invalid or Expired Token")


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization or not authorization.startswith("Bearer "):
        return None
    return authorization.split(" ", 1)[1].strip() or None


async def _load_user(db: AsyncIOMotorDatabase, payload: dict) -> Optional[CurrentUser]:
    user_id = payload.get("sub")
    if not user_id:
        return None
    profile = await db.users.find_one({"user_id": user_id})
    if not profile:
        return None
    return CurrentUser(user_id, profile)


async def get_current_user(
    authorization: str = Header(None),
    db: AsyncIOMotorDatabase = Depends(get_db)
) -> CurrentUser:
    """
    Dependency: validates bearer token and returns the user context

    Raises:
        401: Missing/invalid token or unknown user
    """
    token = _bearer_token(authorization)
    if not token:
        raise HTTPException(status_code=401, detail="Unauthorized")

    user = await _load_user(db, decode_token(token))
    if not user:
        raise HTTPException(status_code=401, detail="User not found for token")
    return user


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_admin:
        raise HTTPException(status_code=403, detail="Access denied. Admin role required.")
    return user


async def require_instructor(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if not user.is_instructor:
        raise HTTPException(status_code=403, detail="Access denied. Instructor role required.")
    return user
