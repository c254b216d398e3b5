from fastapi import APIRouter, BackgroundTasks, Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth import CurrentUser, require_admin
from app.core.database import get_db
from app.messages import message_service as service
from app.messages.message_models import MessageCreate, MessageReply
from app.notifications.mailer import Mailer, get_mailer
from app.notifications.service import send_reply

router = APIRouter(tags=["Messages"])


# ==================== PUBLIC ====================

@router.post("/message", status_code=201)
async def create_message(data: MessageCreate, db: AsyncIOMotorDatabase = Depends(get_db)):
    """Anyone can send an inquiry to the admins"""
    message = await service.create_message(db, data)
    return {"success": True, "message": "Message sent successfully", "data": message}


# ==================== ADMIN ====================

@router.get("/admin/get-messages")
async def get_messages(
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: CurrentUser = Depends(require_admin)
):
    return {"success": True, "data": await service.list_messages(db)}


@router.delete("/admin/delete-message/{message_id}")
async def delete_message(
    message_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    admin: CurrentUser = Depends(require_admin)
):
    await service.delete_message(db, message_id)
    return {"success": True, "message": "Message deleted successfully"}


@router.post("/admin/mark-as-read/{message_id}")
async def mark_as_read(
    message_id: str,
    body: MessageReply,
    background_tasks: BackgroundTasks,
    db: AsyncIOMotorDatabase = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: CurrentUser = Depends(require_admin)
):
    updated = await service.mark_as_read(db, message_id, body.reply_message)
    background_tasks.add_task(send_reply, mailer, updated, body.reply_message.strip())
    return {
        "success": True,
        "message": "Message marked as read & reply email sent",
        "data": updated
    }
