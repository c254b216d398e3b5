import asyncio
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.admin.router import router as admin_router
from app.certificates.certificate_router import public_router as certificate_public_router
from app.certificates.certificate_router import router as certificate_router
from app.core.config import settings
from app.core.database import create_indexes, db_manager
from app.courses.course_router import router as course_router
from app.instructors.instructor_router import router as instructor_router
from app.messages.message_router import router as message_router
from app.notifications.digest import digest_loop
from app.notifications.mailer import get_mailer
from app.progress.progress_router import router as progress_router
from app.students.student_router import router as student_router
from app.system.health_router import APP_NAME, APP_VERSION, router as health_router

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)


app = FastAPI(title=APP_NAME, version=APP_VERSION)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_digest_task: Optional[asyncio.Task] = None


@app.on_event("startup")
async def startup_event():
    global _digest_task
    settings.require("MONGO_URL", "JWT_SECRET_KEY")
    db_manager.connect()
    await create_indexes(db_manager.get_database())

    if settings.DIGEST_ENABLED:
        _digest_task = asyncio.create_task(digest_loop(db_manager.get_database(), get_mailer()))
    logger.info("✅ %s started", APP_NAME)


@app.on_event("shutdown")
async def shutdown_event():
    global _digest_task
    if _digest_task:
        _digest_task.cancel()
        try:
            await _digest_task
        except asyncio.CancelledError:
            pass
        _digest_task = None
    db_manager.disconnect()
    logger.info("Shutting down %s", APP_NAME)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"success": False, "message": "Internal server error"})


# ==================== ROUTER REGISTRATION ====================
app.include_router(health_router)
app.include_router(admin_router, prefix="/api/v1/course")
app.include_router(instructor_router, prefix="/api/v1/course")
app.include_router(course_router, prefix="/api/v1/course")
app.include_router(progress_router, prefix="/api/v1/progress")
app.include_router(student_router, prefix="/api/v1/user")
app.include_router(certificate_router, prefix="/api/v1/user")
app.include_router(message_router, prefix="/api/v1/user")
app.include_router(certificate_public_router, prefix="/api/v1/certificates")
# ============================================================


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000)
