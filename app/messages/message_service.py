import uuid
from datetime import datetime
from typing import List

from fastapi import HTTPException
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ReturnDocument

from app.messages.message_models import MessageCreate


async def create_message(db: AsyncIOMotorDatabase, data: MessageCreate) -> dict:
    """Store an inquiry sent to the admins"""
    now = datetime.utcnow()
    message = {
        "message_id": f"MSG_{uuid.uuid4().hex[:12].upper()}",
        "name": data.name,
        "email": data.email,
        "category": data.category.value,
        "subject": data.subject,
        "message": data.message,
        "is_read": False,
        "created_at": now,
        "updated_at": now,
    }
    await db.messages.insert_one(message)
    message.pop("_id", None)
    return message


async def list_messages(db: AsyncIOMotorDatabase) -> List[dict]:
    return await db.messages.find({}, {"_id": 0}).sort("created_at", -1).to_list(length=None)


async def delete_message(db: AsyncIOMotorDatabase, message_id: str):
    result = await db.messages.delete_one({"message_id": message_id})
    if result.deleted_count == 0:
        raise HTTPException(status_code=404, detail="Message not found")


async def mark_as_read(db: AsyncIOMotorDatabase, message_id: str, reply: str) -> dict:
    """
    Flag the message as read; the caller mails the reply
    """
    message = await db.messages.find_one({"message_id": message_id})
    if not message:
        raise HTTPException(status_code=404, detail="Message not found")

    if len((reply or "").strip()) < 5:
        raise HTTPException(status_code=400, detail="Reply must be at least 5 characters")

    return await db.messages.find_one_and_update(
        {"message_id": message_id},
        {"$set": {"is_read": True, "updated_at": datetime.utcnow()}},
        projection={"_id": 0},
        return_document=ReturnDocument.AFTER
    )
