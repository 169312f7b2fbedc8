"""API key authentication for RPC routes.

``AccessGate`` runs as a router-level dependency on every RPC call. Calls
whose path ends with one of the skip suffixes (sandbox creation) pass
through; every other call must present a key the store recognises. The
sandbox id it resolves is handed to route handlers as a plain parameter.
"""

import logging
from typing import Iterable

from fastapi import Request

from agent_sandbox.core.store import APIKeyStore
from agent_sandbox.errors import InvalidCredentialError, MissingCredentialError


logger = logging.getLogger(__name__)

API_KEY_HEADER = "X-Sandbox-Api-Key"

# Procedures reachable without an API key
SKIP_AUTH_SUFFIXES = ("/InitSandbox",)


def mask_api_key(api_key: str) -> str:
    """Show only the first 8 characters of a key."""
    if len(api_key) <= 8:
        return "***"
    return api_key[:8] + "..."


class AccessGate:
    """Authenticates requests against the app's key store."""

    def __init__(
        self,
        skip_suffixes: Iterable[str] = SKIP_AUTH_SUFFIXES,
        header: str = API_KEY_HEADER,
    ):
        self.skip_suffixes = tuple(skip_suffixes)
        self.header = header

    def should_skip(self, procedure: str) -> bool:
        return procedure.endswith(self.skip_suffixes)

    def authenticate(self, store: APIKeyStore, procedure: str, api_key: str | None) -> str:
        """Return the sandbox id for ``api_key``.

        Raises:
            MissingCredentialError: no key was sent.
            InvalidCredentialError: the key is unknown or revoked.
        """
        if not api_key:
            logger.warning(f"Authentication failed: missing API key (procedure={procedure})")
            raise MissingCredentialError(f"missing API key in header {self.header}")

        sandbox_id = store.verify(api_key)
        if sandbox_id is None:
            logger.warning(
                f"Authentication failed: invalid API key "
                f"(procedure={procedure}, api_key_prefix={mask_api_key(api_key)})"
            )
            raise InvalidCredentialError("invalid API key")

        logger.debug(f"Authentication successful (procedure={procedure}, sandbox_id={sandbox_id})")
        return sandbox_id

    def __call__(self, request: Request) -> str | None:
        procedure = request.url.path
        if self.should_skip(procedure):
            return None
        return self.authenticate(
            request.app.state.key_store,
            procedure,
            request.headers.get(self.header),
        )


access_gate = AccessGate()
