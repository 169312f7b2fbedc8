"""SQLModel tables for persistent API key storage."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlmodel import Field, SQLModel


class SandboxKey(SQLModel, table=True):
    """A live sandbox and the API key bound to it."""

    __tablename__ = "sandbox_keys"

    sandbox_id: str = Field(primary_key=True, description="UUID of the sandbox")
    api_key: str = Field(unique=True, index=True, description="Bearer credential")
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
