import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from app.api.admin.router import router as admin_router
from app.api.analytics.router import router as analytics_router
from app.api.auth.router import router as auth_router
from app.api.batches.router import router as batches_router
from app.api.classes.router import router as classes_router
from app.api.departments.router import router as departments_router
from app.api.faculties.router import router as faculties_router
from app.api.jobs.router import router as jobs_router
from app.api.reports.router import router as reports_router
from app.api.settings.router import router as settings_router
from app.api.students.router import router as students_router
from app.core.config import settings
from app.core.errors import register_exception_handlers
from app.core.logging_config import setup_logging


def create_app() -> FastAPI:
    logger = setup_logging()
    app = FastAPI(title="Alumni Management Backend")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)

    @app.get("/api/health", tags=["health"])
    async def health() -> dict:
        return {"status": "ok"}

    # Routers
    app.include_router(auth_router)
    app.include_router(admin_router)
    app.include_router(faculties_router)
    app.include_router(departments_router)
    app.include_router(classes_router)
    app.include_router(batches_router)
    app.include_router(jobs_router)
    app.include_router(students_router)
    app.include_router(analytics_router)
    app.include_router(reports_router)
    app.include_router(settings_router)

    # Student photos saved by the local upload handler
    os.makedirs(os.path.join(settings.upload_dir, "students"), exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=settings.upload_dir), name="uploads")

    logger.info("Application configured (environment=%s)", settings.environment)
    return app


app = create_app()
