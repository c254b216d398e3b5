from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from motor.motor_asyncio import AsyncIOMotorDatabase

from app.core.auth import CurrentUser, get_current_user
from app.core.config import settings
from app.core.database import get_db
from app.certificates import certificate_service as service

# Student endpoints live under /user/student, verification is public
router = APIRouter(tags=["Certificates"])
public_router = APIRouter(tags=["Certificates"])


@router.post("/student/gen-certificate/{course_id}")
async def issue_certificate(
    course_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    certificate, created = await service.issue_certificate(
        db, user.user_id, course_id, settings.PUBLIC_BASE_URL
    )
    return JSONResponse(
        status_code=201 if created else 200,
        content=jsonable_encoder({
            "success": True,
            "message": "Certificate issued successfully!" if created else "Certificate already issued!",
            "certificate": certificate
        })
    )


@router.get("/student/certificate/{certificate_id}")
async def get_certificate(
    certificate_id: str,
    db: AsyncIOMotorDatabase = Depends(get_db),
    user: CurrentUser = Depends(get_current_user)
):
    return {"success": True, "certificate": await service.get_user_certificate(db, user.user_id, certificate_id)}


@public_router.get("/verify/{certificate_id}")
async def verify_certificate(certificate_id: str, db: AsyncIOMotorDatabase = Depends(get_db)):
    return await service.verify_certificate(db, certificate_id)
