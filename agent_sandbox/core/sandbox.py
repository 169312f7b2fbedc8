"""Sandbox lifecycle: issuing and revoking sandbox credentials."""

from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone

from agent_sandbox.core.store import APIKeyStore
from agent_sandbox.errors import GenerationError


logger = logging.getLogger(__name__)

API_KEY_PREFIX = "sk_"
API_KEY_BYTES = 32


@dataclass(frozen=True)
class InitSandboxResult:
    """Identity of a freshly created sandbox."""
    sandbox_id: str
    api_key: str
    created_at: datetime


def generate_api_key() -> str:
    """32 random bytes, hex encoded, with the ``sk_`` prefix."""
    return API_KEY_PREFIX + secrets.token_hex(API_KEY_BYTES)


class SandboxService:
    """Creates sandboxes and revokes their keys."""

    def __init__(self, store: APIKeyStore):
        self.store = store

    def init_sandbox(self) -> InitSandboxResult:
        """Create a sandbox id and API key pair and register it.

        Raises:
            GenerationError: the OS random source is unavailable.
            StorageError: a persistent store could not save the key.
        """
        try:
            sandbox_id = str(uuid.uuid4())
            api_key = generate_api_key()
        except (OSError, NotImplementedError) as e:
            raise GenerationError(f"failed to generate api key: {e}") from e

        self.store.store(sandbox_id, api_key)
        created_at = self.store.created_at(sandbox_id) or datetime.now(timezone.utc)

        return InitSandboxResult(
            sandbox_id=sandbox_id,
            api_key=api_key,
            created_at=created_at,
        )

    def delete_sandbox(self, sandbox_id: str) -> None:
        """Revoke a sandbox's key. Deleting an unknown sandbox is a no-op."""
        self.store.delete(sandbox_id)
        logger.info(f"Deleted sandbox {sandbox_id}")
