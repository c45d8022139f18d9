import sys
import logging

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from workledger.app.api.contracts import router as contracts_router
from workledger.app.api.entries import router as entries_router
from workledger.app.api.layouts import router as layouts_router
from workledger.app.api.reports import router as reports_router
from workledger.app.api.templates import router as templates_router
from workledger.app.core.config import get_settings
from workledger.app.core.container import Services, build_services

logger = logging.getLogger("workledger.main")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Services are wired in ``create_app`` so tests can inject their own;
    startup only reports what was wired.
    """
    services: Services = app.state.services
    logger.info(
        "workledger_startup",
        extra={
            "service": "workledger",
            "version": app.version,
            "max_report_entries": services.settings.max_report_entries,
        },
    )
    try:
        yield
    finally:
        logger.info("workledger_shutdown")


def create_app(services: Optional[Services] = None) -> FastAPI:
    """
    Application factory for the WorkLedger HTTP surface.
    """
    if services is None:
        services = build_services()
    settings = services.settings

    logging.basicConfig(level=settings.log_level)

    app = FastAPI(
        title=settings.app_title,
        description=(
            "Dynamic form templates, work entries and "
            "block-based report assembly."
        ),
        version=settings.app_version,
        docs_url="/docs",
        redoc_url=None,
        lifespan=lifespan,
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(templates_router, prefix="/templates")
    app.include_router(layouts_router, prefix="/layouts")
    app.include_router(contracts_router, prefix="/contracts")
    app.include_router(entries_router, prefix="/entries")
    app.include_router(reports_router, prefix="/reports")

    @app.get(
        "/healthz",
        tags=["Monitoring"],
        summary="Liveness probe",
    )
    async def health_check():
        return {
            "status": "ok",
            "service": "workledger",
            "version": app.version,
            "runtime": f"python {sys.version.split()[0]}",
        }

    return app


app = create_app()
