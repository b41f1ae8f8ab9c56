# yourvoice/main.py
from fastapi import FastAPI

from yourvoice.core.config import get_settings
from yourvoice.core.errors import register_exception_handlers
from yourvoice.core.logging import setup_logging, RequestIdMiddleware

from yourvoice.routers.health import router as health_router
from yourvoice.routers.auth import router as auth_router
from yourvoice.routers.feedback import router as feedback_router
from yourvoice.routers.moods import router as moods_router
from yourvoice.routers.directory import router as directory_router


def create_app() -> FastAPI:
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(title=settings.app_name)

    app.add_middleware(RequestIdMiddleware)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(feedback_router)
    app.include_router(moods_router)
    app.include_router(directory_router)

    return app


app = create_app()
