"""
FastAPI application entrypoint
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .config import settings
from .core.logging import setup_logging, get_logger
from .database import init_db
from .routes import auth, stores, ratings, users

setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info(f"{settings.app_name} started")
    yield


def create_app() -> FastAPI:
    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_allowed_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(auth.router, prefix="/api/auth", tags=["auth"])
    app.include_router(users.router, prefix="/api/users", tags=["users"])
    app.include_router(stores.router, prefix="/api/stores", tags=["stores"])
    app.include_router(ratings.router, prefix="/api/ratings", tags=["ratings"])

    @app.get("/health")
    def health_check():
        return {"status": "ok", "app": settings.app_name}

    return app


app = create_app()
