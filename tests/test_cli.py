import pytest
from typer.testing import CliRunner

from agent_sandbox import cli
from agent_sandbox.client import SandboxAPIError
from agent_sandbox.config import APP_VERSION
from agent_sandbox.core.sandbox import InitSandboxResult


runner = CliRunner()


@pytest.fixture(autouse=True)
def no_logging_reconfigure(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda level, fmt: None)


def test_version():
    result = runner.invoke(cli.app, ["version"])
    assert result.exit_code == 0
    assert result.output.strip() == APP_VERSION


def test_serve_uses_config(monkeypatch, tmp_path):
    config = tmp_path / "config.toml"
    config.write_text(f"""
[server]
host = "127.0.0.1"
port = 9191
keep_alive_timeout = "15s"

[sandbox]
workspace_dir = "{tmp_path / 'ws'}"
""")
    calls = {}

    def fake_run(app, **kwargs):
        calls["app"] = app
        calls.update(kwargs)

    monkeypatch.setattr(cli.uvicorn, "run", fake_run)

    result = runner.invoke(cli.app, ["serve", "--config", str(config)])

    assert result.exit_code == 0, result.output
    assert calls["host"] == "127.0.0.1"
    assert calls["port"] == 9191
    assert calls["timeout_keep_alive"] == 15
    assert calls["app"].state.file_service.workspace_dir == tmp_path / "ws"


def test_serve_missing_config(monkeypatch, tmp_path):
    monkeypatch.setattr(cli.uvicorn, "run", lambda *a, **kw: pytest.fail("server started"))

    result = runner.invoke(cli.app, ["serve", "-c", str(tmp_path / "missing.toml")])

    assert result.exit_code == 1
    assert "Failed to load config" in result.output


class FakeClient:
    """Stands in for SandboxClient without a server."""

    def __init__(self, url, api_key=None):
        self.url = url
        self.api_key = api_key

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        pass

    async def init_sandbox(self):
        return InitSandboxResult(sandbox_id="sandbox-1", api_key="sk_abc", created_at=None)

    async def execute(self, command):
        if command == "fail":
            raise SandboxAPIError(500, "internal", "exit status 1", output="partial")
        return f"ran {command} with {self.api_key}"


@pytest.fixture
def fake_client(monkeypatch):
    monkeypatch.setattr(cli, "SandboxClient", FakeClient)


def test_init(fake_client):
    result = runner.invoke(cli.app, ["init", "--url", "http://example:8080"])

    assert result.exit_code == 0
    assert "sandbox-1" in result.output
    assert "sk_abc" in result.output


def test_exec(fake_client):
    result = runner.invoke(cli.app, ["exec", "ls", "--api-key", "sk_abc"])

    assert result.exit_code == 0
    assert "ran ls with sk_abc" in result.output


def test_exec_failure_prints_partial_output(fake_client):
    result = runner.invoke(cli.app, ["exec", "fail", "--api-key", "sk_abc"])

    assert result.exit_code == 1
    assert "partial" in result.output
