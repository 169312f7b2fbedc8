import logging

import pytest
from fastapi.testclient import TestClient

from agent_sandbox.api.auth import API_KEY_HEADER
from agent_sandbox.api.main import create_app
from agent_sandbox.config import Settings


@pytest.fixture(scope="session")
def anyio_backend():
    """Run anyio-marked tests on asyncio only."""
    return "asyncio"


@pytest.fixture(autouse=True)
def setup_test_logging(caplog):
    caplog.set_level(logging.DEBUG)


@pytest.fixture
def workspace(tmp_path):
    path = tmp_path / "workspace"
    path.mkdir()
    return path


@pytest.fixture
def settings(workspace):
    return Settings(
        sandbox={
            "workspace_dir": workspace,
            "max_file_size": 1024,
            "shell_timeout": 5,
        },
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def sandbox(client):
    """Credentials of a freshly created sandbox."""
    response = client.post("/core.v1.CoreService/InitSandbox", json={})
    assert response.status_code == 200
    return response.json()


@pytest.fixture
def auth_headers(sandbox):
    return {API_KEY_HEADER: sandbox["apiKey"]}
