"""FastAPI application entry point."""

from __future__ import annotations

import logging
import sys
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from portofino.api.admin import router as admin_router
from portofino.api.health import router as health_router
from portofino.api.pages import router as pages_router
from portofino.api.templates import router as templates_router
from portofino.config import Settings
from portofino.dispatcher.dispatcher import Dispatcher, resolve_root
from portofino.dispatcher.registry import ActionRegistry, RootRegistry
from portofino.dispatcher.resolver import DescriptorResourceResolver
from portofino.exceptions import (
    DefinitionLoadError,
    DefinitionSaveError,
    PageNotActiveError,
    ResourceNotFoundError,
)
from portofino.filesystem.store import ResourceLocation
from portofino.pageactions.base import CustomAction
from portofino.pageactions.scripting import FileScriptingLoader
from portofino.pageactions.templates import TemplateResolver
from portofino.services.injector import ContextInjector
from portofino.services.page_service import PageService

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

logger = logging.getLogger(__name__)


def _configure_logging(debug: bool) -> None:
    """Configure application logging."""
    level = logging.DEBUG if debug else logging.INFO
    fmt = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"
    logging.basicConfig(
        level=level,
        format=fmt,
        stream=sys.stdout,
        force=True,
    )
    # Quiet noisy libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def ensure_app_dir(app_dir: Path) -> None:
    """Create the application directory if it does not exist yet."""
    if app_dir.exists() and not app_dir.is_dir():
        msg = f"Application path exists but is not a directory: {app_dir}"
        raise NotADirectoryError(msg)
    if not app_dir.exists():
        logger.info("Creating application directory at %s", app_dir)
        app_dir.mkdir(parents=True)


def default_action_registry() -> ActionRegistry:
    registry = ActionRegistry()
    registry.register("custom", CustomAction, default=True)
    return registry


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Application lifespan: startup and shutdown."""
    settings: Settings = app.state.settings
    settings.validate_runtime_paths()
    _configure_logging(settings.debug)
    logger.info("Starting Portofino (debug=%s)", settings.debug)

    try:
        ensure_app_dir(settings.app_dir)
        root = resolve_root(
            ResourceLocation.of(settings.app_dir),
            DescriptorResourceResolver(),
            app.state.root_registry,
        )
    except Exception as exc:
        logger.critical(
            "Failed to initialize application directory at %s: %s.", settings.app_dir, exc
        )
        raise

    injector = ContextInjector({"settings": settings})
    page_service = PageService.from_settings(settings, injector=injector)
    injector.register("page_service", page_service)
    app.state.page_service = page_service
    app.state.templates = TemplateResolver(
        skins_dir=settings.skins_dir,
        skin=settings.skin,
        default_template=settings.default_template,
    )
    app.state.scripting = FileScriptingLoader()
    app.state.dispatcher = Dispatcher(root, page_service, app.state.action_registry)
    logger.info(
        "Serving pages from %s (root type %s)", settings.app_dir, type(root).__name__
    )

    yield

    try:
        page_service.close()
    except Exception as exc:
        logger.error("Error during page service shutdown: %s", exc, exc_info=True)

    logger.info("Portofino stopped")


def create_app(
    settings: Settings | None = None,
    action_registry: ActionRegistry | None = None,
    root_registry: RootRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application."""
    if settings is None:
        settings = Settings()

    docs_enabled = settings.debug or settings.expose_docs

    app = FastAPI(
        title="Portofino",
        description="Directory-backed page dispatcher",
        version="0.1.0",
        lifespan=lifespan,
        docs_url="/docs" if docs_enabled else None,
        redoc_url="/redoc" if docs_enabled else None,
        openapi_url="/openapi.json" if docs_enabled else None,
    )
    app.state.settings = settings
    app.state.action_registry = action_registry or default_action_registry()
    app.state.root_registry = root_registry or RootRegistry()

    app.add_middleware(GZipMiddleware, minimum_size=500)

    app.include_router(health_router)
    app.include_router(admin_router)
    app.include_router(pages_router)
    app.include_router(templates_router)

    # Global exception handlers

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = []
        for err in exc.errors():
            loc = err.get("loc", ())
            field = str(loc[-1]) if loc else "unknown"
            errors.append({"field": field, "message": err.get("msg", "Invalid value")})
        logger.warning(
            "RequestValidationError in %s %s: %s",
            request.method,
            request.url.path,
            errors,
        )
        return JSONResponse(status_code=422, content={"detail": errors})

    @app.exception_handler(ResourceNotFoundError)
    async def resource_not_found_handler(
        request: Request, exc: ResourceNotFoundError
    ) -> JSONResponse:
        logger.info("ResourceNotFoundError in %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=404, content={"detail": "Page not found"})

    @app.exception_handler(PageNotActiveError)
    async def page_not_active_handler(request: Request, exc: PageNotActiveError) -> JSONResponse:
        logger.warning("PageNotActiveError in %s %s: %s", request.method, request.url.path, exc)
        return JSONResponse(status_code=404, content={"detail": "Page not active"})

    @app.exception_handler(DefinitionLoadError)
    async def definition_load_error_handler(
        request: Request, exc: DefinitionLoadError
    ) -> JSONResponse:
        logger.error(
            "DefinitionLoadError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Invalid page definition"},
        )

    @app.exception_handler(DefinitionSaveError)
    async def definition_save_error_handler(
        request: Request, exc: DefinitionSaveError
    ) -> JSONResponse:
        logger.error(
            "DefinitionSaveError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Storage operation failed"},
        )

    @app.exception_handler(OSError)
    async def os_error_handler(request: Request, exc: OSError) -> JSONResponse:
        if isinstance(exc, (ConnectionError, TimeoutError)):
            raise exc
        logger.error("OSError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Storage operation failed"},
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError) -> JSONResponse:
        logger.error("ValueError in %s %s: %s", request.method, request.url.path, exc, exc_info=exc)
        message = str(exc) or "Invalid value"
        return JSONResponse(
            status_code=422,
            content={"detail": message},
        )

    return app


app = create_app()


def cli_entry() -> None:
    """CLI entry point for running the server."""
    import uvicorn

    settings: Settings = app.state.settings
    uvicorn.run(
        "portofino.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )
