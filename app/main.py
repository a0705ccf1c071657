import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from app.api.v1.assignments.router import router as assignments_router
from app.api.v1.attendance.router import router as attendance_router
from app.api.v1.auth.router import router as auth_router
from app.api.v1.courses.router import router as courses_router
from app.api.v1.dashboard.router import router as dashboard_router
from app.api.v1.materials.router import router as materials_router
from app.api.v1.profiles.router import router as profiles_router
from app.api.v1.provisioning.router import router as provisioning_router
from app.api.v1.students.router import router as students_router
from app.api.v1.subjects.router import router as subjects_router
from app.api.v1.teachers.router import router as teachers_router
from app.core.config import settings
from app.core.exceptions import ServiceError
from app.core.logging_config import setup_logging

logger = logging.getLogger(__name__)


def create_app() -> FastAPI:
    setup_logging(settings.log_level, settings.log_format)
    app = FastAPI(title="Academic Portal Backend")

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError):
        return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(status_code=500, content={"detail": "Internal server error"})

    # Routers
    app.include_router(auth_router)
    app.include_router(courses_router)
    app.include_router(subjects_router)
    app.include_router(teachers_router)
    app.include_router(students_router)
    app.include_router(provisioning_router)
    app.include_router(attendance_router)
    app.include_router(assignments_router)
    app.include_router(materials_router)
    app.include_router(dashboard_router)
    app.include_router(profiles_router)

    # Uploaded files written by LocalFileStore
    app.mount(settings.files_base_url, StaticFiles(directory=settings.upload_dir, check_dir=False), name="files")

    @app.get("/health", tags=["health"])
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
