"""FastAPI routes for the sandbox API.

Connect-style unary procedures (POST, JSON body):
- /core.v1.CoreService/InitSandbox    - Create sandbox, returns id + API key (no auth)
- /core.v1.CoreService/DeleteSandbox  - Revoke the caller's API key
- /file.v1.FileService/Read           - Read a workspace file
- /file.v1.FileService/Write          - Create or overwrite a workspace file
- /file.v1.FileService/Edit           - Overwrite an existing workspace file
- /shell.v1.ShellService/Execute      - Run a shell command in the workspace

Authentication:
- Every procedure except InitSandbox needs the X-Sandbox-Api-Key header
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, Request
from fastapi.responses import PlainTextResponse

from agent_sandbox.api.auth import access_gate
from agent_sandbox.core.sandbox import SandboxService
from agent_sandbox.errors import SandboxError
from agent_sandbox.schemas import (
    DeleteSandboxResponse,
    EditRequest,
    EditResponse,
    ExecuteRequest,
    ExecuteResponse,
    InitSandboxResponse,
    ReadRequest,
    ReadResponse,
    WriteRequest,
    WriteResponse,
)
from agent_sandbox.tools.files import FileService
from agent_sandbox.tools.shell import ShellService


logger = logging.getLogger(__name__)

# The gate runs once per request; handlers reuse its cached result
router = APIRouter(dependencies=[Depends(access_gate)])
health_router = APIRouter()

SandboxID = Annotated[str, Depends(access_gate)]


def get_sandbox_service(request: Request) -> SandboxService:
    return request.app.state.sandbox_service


def get_file_service(request: Request) -> FileService:
    return request.app.state.file_service


def get_shell_service(request: Request) -> ShellService:
    return request.app.state.shell_service


# =============================================================================
# Health Check
# =============================================================================

@health_router.get("/health", response_class=PlainTextResponse)
async def health() -> str:
    """Liveness probe."""
    return "OK"


# =============================================================================
# Core Service
# =============================================================================

@router.post("/core.v1.CoreService/InitSandbox", response_model=InitSandboxResponse)
def init_sandbox(
    service: SandboxService = Depends(get_sandbox_service),
) -> InitSandboxResponse:
    """Create a new sandbox and return its id and API key."""
    logger.info("Initializing sandbox")

    try:
        result = service.init_sandbox()
    except SandboxError as e:
        logger.error(f"Failed to initialize sandbox: {e}")
        raise

    logger.info(f"Sandbox initialized: {result.sandbox_id}")

    return InitSandboxResponse(
        sandbox_id=result.sandbox_id,
        api_key=result.api_key,
        created_at=result.created_at,
    )


@router.post("/core.v1.CoreService/DeleteSandbox", response_model=DeleteSandboxResponse)
def delete_sandbox(
    sandbox_id: SandboxID,
    service: SandboxService = Depends(get_sandbox_service),
) -> DeleteSandboxResponse:
    """Revoke the calling sandbox's API key."""
    service.delete_sandbox(sandbox_id)
    return DeleteSandboxResponse(sandbox_id=sandbox_id)


# =============================================================================
# File Service
# =============================================================================

@router.post("/file.v1.FileService/Read", response_model=ReadResponse)
def read_file(
    request: ReadRequest,
    sandbox_id: SandboxID,
    service: FileService = Depends(get_file_service),
) -> ReadResponse:
    logger.info(f"Reading file {request.path} (sandbox_id={sandbox_id})")

    try:
        content = service.read(request.path)
    except (SandboxError, OSError) as e:
        logger.error(f"Failed to read file {request.path} (sandbox_id={sandbox_id}): {e}")
        raise

    return ReadResponse(content=content)


@router.post("/file.v1.FileService/Write", response_model=WriteResponse)
def write_file(
    request: WriteRequest,
    sandbox_id: SandboxID,
    service: FileService = Depends(get_file_service),
) -> WriteResponse:
    logger.info(f"Writing file {request.path} (sandbox_id={sandbox_id})")

    try:
        service.write(request.path, request.content)
    except (SandboxError, OSError) as e:
        logger.error(f"Failed to write file {request.path} (sandbox_id={sandbox_id}): {e}")
        raise

    return WriteResponse()


@router.post("/file.v1.FileService/Edit", response_model=EditResponse)
def edit_file(
    request: EditRequest,
    sandbox_id: SandboxID,
    service: FileService = Depends(get_file_service),
) -> EditResponse:
    logger.info(f"Editing file {request.path} (sandbox_id={sandbox_id})")

    try:
        result = service.edit(request.path, request.content)
    except (SandboxError, OSError) as e:
        logger.error(f"Failed to edit file {request.path} (sandbox_id={sandbox_id}): {e}")
        raise

    return EditResponse(path=result.path, content=result.content)


# =============================================================================
# Shell Service
# =============================================================================

@router.post("/shell.v1.ShellService/Execute", response_model=ExecuteResponse)
def execute(
    request: ExecuteRequest,
    sandbox_id: SandboxID,
    service: ShellService = Depends(get_shell_service),
) -> ExecuteResponse:
    """Run a shell command.

    On failure the error body still carries any output produced.
    """
    logger.info(f"Executing shell command (sandbox_id={sandbox_id}): {request.command}")

    try:
        output = service.execute(request.command)
    except (SandboxError, OSError) as e:
        logger.error(f"Shell command failed (sandbox_id={sandbox_id}): {request.command}: {e}")
        raise

    logger.info(f"Shell command succeeded (sandbox_id={sandbox_id}, output_length={len(output)})")
    return ExecuteResponse(output=output)
