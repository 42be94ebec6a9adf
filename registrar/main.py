from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from registrar.api.v1.enrollments.router import router as enrollments_router
from registrar.api.v1.enrollments.service import EnrollmentService
from registrar.api.v1.promotions.router import router as promotions_router
from registrar.api.v1.promotions.service import PromotionService
from registrar.api.v1.student_imports.router import router as student_imports_router
from registrar.api.v1.student_imports.service import StudentImportService
from registrar.core.config import Settings, settings as default_settings
from registrar.core.logging import setup_logging
from registrar.db.session import Database


def create_app(database: Optional[Database] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the application. The database is created from settings unless one is passed in (tests)."""
    settings = settings or default_settings
    setup_logging(settings.log_level)
    database = database or Database.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await database.dispose()

    app = FastAPI(title="Registrar", lifespan=lifespan)

    # CORS: allow frontend to call this API
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.database = database
    app.state.enrollment_service = EnrollmentService(database)
    app.state.promotion_service = PromotionService(database)
    app.state.student_import_service = StudentImportService(
        database,
        isolation_level=settings.import_isolation_level,
        max_wait_seconds=settings.import_max_wait_ms / 1000,
        timeout_seconds=settings.import_timeout_ms / 1000,
    )

    # Routers
    app.include_router(enrollments_router)
    app.include_router(promotions_router)
    app.include_router(student_imports_router)

    return app


app = create_app()
