"""FastAPI entrypoint for the RunLog backend."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .api.dependencies import get_settings
from .api.routers import backup, dashboard, health, runs
from .infra.logging import configure_logging


def create_app() -> FastAPI:
    """Instantiate the FastAPI app and register routers."""

    settings = get_settings()
    configure_logging(settings.logging, environment=settings.environment)
    application = FastAPI(title="RunLog API", version="0.1.0")
    allowed_origins = {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    }
    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(allowed_origins),
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Content-Disposition"],
    )
    for router in (
        health.router,
        runs.router,
        dashboard.router,
        backup.router,
    ):
        application.include_router(router)
    return application


app = create_app()
