"""Pydantic schemas for the sandbox API contracts.

Field names travel as camelCase on the wire (Connect JSON mapping);
snake_case is accepted on input as well.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class APIModel(BaseModel):
    """Base for every request/response body."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# =============================================================================
# Core Service
# =============================================================================

class InitSandboxResponse(APIModel):
    sandbox_id: str = Field(..., description="Opaque sandbox identifier")
    api_key: str = Field(..., description="Bearer credential for this sandbox")
    created_at: datetime


class DeleteSandboxResponse(APIModel):
    sandbox_id: str


# =============================================================================
# File Service
# =============================================================================

class ReadRequest(APIModel):
    path: str = Field(..., description="Path relative to the workspace root")


class ReadResponse(APIModel):
    content: str


class WriteRequest(APIModel):
    path: str = Field(..., description="Path relative to the workspace root")
    content: str = Field(default="", description="Full file content")


class WriteResponse(APIModel):
    pass


class EditRequest(APIModel):
    path: str = Field(..., description="Path of an existing file")
    content: str = Field(default="", description="Replacement content")


class EditResponse(APIModel):
    path: str
    content: str


# =============================================================================
# Shell Service
# =============================================================================

class ExecuteRequest(APIModel):
    command: str = Field(default="", description="Shell command line, run via /bin/sh -c")

    model_config = ConfigDict(
        json_schema_extra={"example": {"command": "ls -la"}},
    )


class ExecuteResponse(APIModel):
    output: str


# =============================================================================
# Errors
# =============================================================================

class ErrorResponse(APIModel):
    """Body returned for every failed call."""
    code: str
    message: str
    output: str | None = Field(default=None, description="Partial command output, if any")
