"""Database engine management.

Responsibilities:
- Create engine from the configured database URL
- Create tables on startup
"""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlmodel import SQLModel, create_engine

# Registers the tables on SQLModel.metadata
from agent_sandbox.database import models  # noqa: F401


def get_engine(database_url: str, echo: bool = False) -> Engine:
    connect_args = {}
    if database_url.startswith("sqlite"):
        # Requests are served from FastAPI's thread pool
        connect_args["check_same_thread"] = False
    return create_engine(database_url, echo=echo, connect_args=connect_args)


def init_db(engine: Engine) -> None:
    """Create tables.

    Note: there are no migrations; the schema is a single table.
    """
    SQLModel.metadata.create_all(engine)
