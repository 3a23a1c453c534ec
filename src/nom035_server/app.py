"""Application factory and CLI entry point.

``create_app()`` wires together:
  - a lifespan that loads the question catalog once and builds the
    ``AssessmentFlow`` and ``AccessTokenService`` singletons
  - CORS for the respondent front end (GET/POST plus the admin header)
  - exception handlers mapping engine errors to HTTP statuses
  - the ``/api/v1`` routers and an unversioned ``/health`` probe

``cli()`` is the ``nom035-server`` console script.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from nom035_db.engine import dispose_engine, get_engine
from nom035_engine.catalog import QuestionCatalog
from nom035_engine.flow import AssessmentFlow
from nom035_engine.tokens import AccessTokenService

from nom035_server.config import ServerSettings, load_settings
from nom035_server.errors import generic_error_handler, value_error_handler
from nom035_server.routes import register_routes

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


# ------------------------------------------------------------------
# Lifespan — runs once at startup/shutdown
# ------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Load the catalog and build the engine singletons; dispose the pool on exit.

    A malformed catalog raises here, so the server refuses to start
    rather than serving questionnaires it cannot score.
    """
    settings: ServerSettings = app.state.settings

    catalog = QuestionCatalog(catalog_dir=settings.catalog_dir)
    catalog.load()
    app.state.catalog = catalog
    app.state.flow = AssessmentFlow(catalog)
    app.state.token_service = AccessTokenService()

    if not settings.admin_api_key:
        logger.warning("ADMIN_API_KEY is not set; admin endpoints are disabled")
    logger.info("Serving catalog %s", catalog.version)

    yield

    await dispose_engine()
    logger.info("Database engine disposed")


# ------------------------------------------------------------------
# Factory
# ------------------------------------------------------------------

def create_app(settings: ServerSettings | None = None) -> FastAPI:
    """Build and return the configured FastAPI application."""
    if settings is None:
        settings = load_settings()

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format=LOG_FORMAT,
    )

    app = FastAPI(
        title="NOM-035 Assessment API",
        description=(
            "Token-gated NOM-035-STPS-2018 questionnaires: trauma screening "
            "(Reference Guide I) and psychosocial risk (Reference Guide III)"
        ),
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.settings = settings

    # Browsers reject credentialed requests against a wildcard origin
    wildcard = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST"],
        allow_headers=["Content-Type", "X-Admin-Key"],
    )

    # AssessmentError subclasses ValueError, so one handler covers both
    app.add_exception_handler(ValueError, value_error_handler)
    app.add_exception_handler(Exception, generic_error_handler)

    @app.get("/health")
    async def health(request: Request) -> JSONResponse:
        """Readiness probe: database reachable and catalog loaded.  503 otherwise."""
        catalog: QuestionCatalog | None = getattr(request.app.state, "catalog", None)
        body = {
            "status": "ok",
            "database": "ok",
            "catalog": catalog.version if catalog is not None and catalog.loaded else None,
        }
        try:
            async with get_engine().connect() as conn:
                await conn.execute(text("SELECT 1"))
        except (SQLAlchemyError, OSError) as exc:
            logger.error("Health check failed: %s", exc)
            body["database"] = "unavailable"
        if body["database"] != "ok" or body["catalog"] is None:
            body["status"] = "error"
            return JSONResponse(status_code=503, content=body)
        return JSONResponse(content=body)

    register_routes(app)
    return app


# Module-level ASGI export (for uvicorn nom035_server.app:app)
app = create_app()


# ------------------------------------------------------------------
# CLI entry point
# ------------------------------------------------------------------

def cli() -> None:
    """Console-script entry point: ``nom035-server``."""
    import uvicorn

    settings = load_settings()
    uvicorn.run(
        "nom035_server.app:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
