"""API key storage.

Maps sandbox ids to their bearer API keys in both directions. Every
privileged call authorizes against one of these stores.
"""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Iterator

from sqlalchemy import or_
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from agent_sandbox.database.models import SandboxKey
from agent_sandbox.errors import StorageError


logger = logging.getLogger(__name__)


class APIKeyStore(ABC):
    """Abstract base class for API key stores.

    Implementations must keep the key -> sandbox and sandbox -> key mappings
    mutual inverses: a key verifies if and only if its sandbox is live.
    """

    @abstractmethod
    def store(self, sandbox_id: str, api_key: str) -> None:
        """Bind ``api_key`` to ``sandbox_id``, replacing any previous key."""
        ...

    @abstractmethod
    def verify(self, api_key: str) -> str | None:
        """Return the sandbox id owning ``api_key``, or None."""
        ...

    @abstractmethod
    def delete(self, sandbox_id: str) -> None:
        """Forget a sandbox and its key. Unknown ids are ignored."""
        ...

    @abstractmethod
    def created_at(self, sandbox_id: str) -> datetime | None:
        """Return when the sandbox's current key was stored."""
        ...

    def close(self) -> None:
        """Release backing resources."""


class ReadWriteLock:
    """Many concurrent readers or one exclusive writer.

    Waiting writers block new readers so a steady stream of ``verify`` calls
    cannot starve ``store``/``delete``.
    """

    def __init__(self):
        self._cond = threading.Condition(threading.Lock())
        self._readers = 0
        self._writer = False
        self._writers_waiting = 0

    @contextmanager
    def read_locked(self) -> Iterator[None]:
        with self._cond:
            while self._writer or self._writers_waiting:
                self._cond.wait()
            self._readers += 1
        try:
            yield
        finally:
            with self._cond:
                self._readers -= 1
                if self._readers == 0:
                    self._cond.notify_all()

    @contextmanager
    def write_locked(self) -> Iterator[None]:
        with self._cond:
            self._writers_waiting += 1
            try:
                while self._writer or self._readers:
                    self._cond.wait()
            finally:
                self._writers_waiting -= 1
            self._writer = True
        try:
            yield
        finally:
            with self._cond:
                self._writer = False
                self._cond.notify_all()


class MemoryAPIKeyStore(APIKeyStore):
    """In-process store. Everything is lost when the process exits."""

    def __init__(self):
        self._lock = ReadWriteLock()
        self._keys: dict[str, str] = {}  # api_key -> sandbox_id
        self._sandboxes: dict[str, str] = {}  # sandbox_id -> api_key
        self._timestamps: dict[str, datetime] = {}

    def store(self, sandbox_id: str, api_key: str) -> None:
        with self._lock.write_locked():
            previous = self._sandboxes.get(sandbox_id)
            if previous is not None and previous != api_key:
                del self._keys[previous]
            previous_owner = self._keys.get(api_key)
            if previous_owner is not None and previous_owner != sandbox_id:
                del self._sandboxes[previous_owner]
                self._timestamps.pop(previous_owner, None)
            self._keys[api_key] = sandbox_id
            self._sandboxes[sandbox_id] = api_key
            self._timestamps[sandbox_id] = datetime.now(timezone.utc)

    def verify(self, api_key: str) -> str | None:
        with self._lock.read_locked():
            return self._keys.get(api_key)

    def delete(self, sandbox_id: str) -> None:
        with self._lock.write_locked():
            api_key = self._sandboxes.pop(sandbox_id, None)
            if api_key is not None:
                del self._keys[api_key]
            self._timestamps.pop(sandbox_id, None)

    def created_at(self, sandbox_id: str) -> datetime | None:
        with self._lock.read_locked():
            return self._timestamps.get(sandbox_id)

    def __len__(self) -> int:
        with self._lock.read_locked():
            return len(self._sandboxes)


class SQLAPIKeyStore(APIKeyStore):
    """Store backed by a SQL database through SQLModel.

    Keys survive restarts. Database failures surface as ``StorageError``.
    """

    def __init__(self, engine: Engine):
        self.engine = engine

    @contextmanager
    def _session(self) -> Iterator[Session]:
        try:
            with Session(self.engine) as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Key store database error: {e}")
            raise StorageError(f"key store unavailable: {e}") from e

    def store(self, sandbox_id: str, api_key: str) -> None:
        with self._session() as session:
            stale = session.exec(
                select(SandboxKey).where(
                    or_(SandboxKey.sandbox_id == sandbox_id, SandboxKey.api_key == api_key)
                )
            ).all()
            for row in stale:
                session.delete(row)
            session.flush()
            session.add(
                SandboxKey(
                    sandbox_id=sandbox_id,
                    api_key=api_key,
                    created_at=datetime.now(timezone.utc),
                )
            )
            session.commit()

    def verify(self, api_key: str) -> str | None:
        with self._session() as session:
            row = session.exec(
                select(SandboxKey).where(SandboxKey.api_key == api_key)
            ).first()
            return row.sandbox_id if row else None

    def delete(self, sandbox_id: str) -> None:
        with self._session() as session:
            row = session.get(SandboxKey, sandbox_id)
            if row is not None:
                session.delete(row)
                session.commit()

    def created_at(self, sandbox_id: str) -> datetime | None:
        with self._session() as session:
            row = session.get(SandboxKey, sandbox_id)
            if row is None:
                return None
            # SQLite drops tzinfo on the way back
            if row.created_at.tzinfo is None:
                return row.created_at.replace(tzinfo=timezone.utc)
            return row.created_at

    def close(self) -> None:
        self.engine.dispose()
