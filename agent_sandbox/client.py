"""Async HTTP client for the sandbox API.

Usage:
    async with SandboxClient("http://localhost:8080") as client:
        await client.init_sandbox()
        await client.write_file("hello.txt", "hi")
        print(await client.execute("cat hello.txt"))
"""

from __future__ import annotations

from typing import Any

import httpx

from agent_sandbox.api.auth import API_KEY_HEADER
from agent_sandbox.schemas import (
    EditResponse,
    ErrorResponse,
    InitSandboxResponse,
)


class SandboxAPIError(Exception):
    """Error response from the sandbox API."""

    def __init__(self, status_code: int, code: str, message: str, output: str | None = None):
        super().__init__(f"{code}: {message}")
        self.status_code = status_code
        self.code = code
        self.message = message
        self.output = output


class SandboxClient:
    """Client for one sandbox.

    ``init_sandbox()`` stores the returned API key on the client; pass
    ``api_key`` to talk to an existing sandbox instead.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str | None = None,
        timeout: float = 330.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self.api_key = api_key
        self.sandbox_id: str | None = None

        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers={"Content-Type": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> SandboxClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    async def _call(self, procedure: str, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {API_KEY_HEADER: self.api_key} if self.api_key else {}
        response = await self._client.post(procedure, json=payload, headers=headers)

        if response.is_error:
            try:
                error = ErrorResponse.model_validate(response.json())
            except ValueError:
                raise SandboxAPIError(response.status_code, "unknown", response.text) from None
            raise SandboxAPIError(response.status_code, error.code, error.message, error.output)

        return response.json()

    async def init_sandbox(self) -> InitSandboxResponse:
        data = await self._call("/core.v1.CoreService/InitSandbox", {})
        result = InitSandboxResponse.model_validate(data)
        self.api_key = result.api_key
        self.sandbox_id = result.sandbox_id
        return result

    async def delete_sandbox(self) -> None:
        await self._call("/core.v1.CoreService/DeleteSandbox", {})

    async def read_file(self, path: str) -> str:
        data = await self._call("/file.v1.FileService/Read", {"path": path})
        return data["content"]

    async def write_file(self, path: str, content: str) -> None:
        await self._call("/file.v1.FileService/Write", {"path": path, "content": content})

    async def edit_file(self, path: str, content: str) -> EditResponse:
        data = await self._call("/file.v1.FileService/Edit", {"path": path, "content": content})
        return EditResponse.model_validate(data)

    async def execute(self, command: str) -> str:
        """Run a command. Failures raise ``SandboxAPIError`` with ``output`` set."""
        data = await self._call("/shell.v1.ShellService/Execute", {"command": command})
        return data["output"]

    async def health(self) -> bool:
        """Check if the server is up."""
        try:
            response = await self._client.get("/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()
