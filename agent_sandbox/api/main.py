"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from agent_sandbox.api.routes import health_router, router
from agent_sandbox.config import Settings, get_settings
from agent_sandbox.core.sandbox import SandboxService
from agent_sandbox.core.store import APIKeyStore, MemoryAPIKeyStore, SQLAPIKeyStore
from agent_sandbox.database.session import get_engine, init_db
from agent_sandbox.errors import ExecutionFailedError, SandboxError
from agent_sandbox.schemas import ErrorResponse
from agent_sandbox.tools.files import FileService
from agent_sandbox.tools.shell import ShellService


logger = logging.getLogger(__name__)


def create_key_store(settings: Settings) -> APIKeyStore:
    """Build the API key store selected by ``sandbox.key_store``."""
    if settings.sandbox.key_store == "sql":
        engine = get_engine(settings.sandbox.database_url)
        init_db(engine)
        return SQLAPIKeyStore(engine)
    return MemoryAPIKeyStore()


async def sandbox_error_handler(request: Request, exc: SandboxError) -> JSONResponse:
    body = ErrorResponse(code=exc.code, message=exc.message)
    if isinstance(exc, ExecutionFailedError) and exc.output:
        body.output = exc.output
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(by_alias=True, exclude_none=True),
    )


async def os_error_handler(request: Request, exc: OSError) -> JSONResponse:
    # OS error text names absolute paths, so it stays in the server log
    logger.error(f"Unhandled OS error on {request.url.path}: {exc}")
    body = ErrorResponse(code="internal", message="internal error")
    return JSONResponse(status_code=500, content=body.model_dump(by_alias=True, exclude_none=True))


def create_app(settings: Settings | None = None, key_store: APIKeyStore | None = None) -> FastAPI:
    """Create the FastAPI application.

    Args:
        settings: Configuration (default: cached environment settings)
        key_store: Pre-built API key store (default: built from settings)
    """
    if settings is None:
        settings = get_settings()
    if key_store is None:
        key_store = create_key_store(settings)

    sandbox = settings.sandbox

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan handler."""
        # Startup
        logger.info(f"Starting {settings.app_name} v{settings.app_version}")

        sandbox.workspace_dir.mkdir(parents=True, exist_ok=True)
        logger.info(f"Workspace directory: {sandbox.workspace_dir}")

        if not sandbox.confine_paths:
            logger.warning("Path confinement disabled: '..' in file paths can escape the workspace")

        yield

        # Shutdown
        logger.info("Shutting down...")
        key_store.close()

    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="Agent Sandbox API - file and shell access to an isolated workspace",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.key_store = key_store
    app.state.sandbox_service = SandboxService(key_store)
    app.state.file_service = FileService(
        max_file_size=sandbox.max_file_size,
        workspace_dir=sandbox.workspace_dir,
        confine_paths=sandbox.confine_paths,
    )
    app.state.shell_service = ShellService(
        default_timeout=sandbox.shell_timeout,
        workspace_dir=sandbox.workspace_dir,
    )

    app.add_exception_handler(SandboxError, sandbox_error_handler)
    app.add_exception_handler(OSError, os_error_handler)

    app.include_router(health_router)
    app.include_router(router)

    return app
