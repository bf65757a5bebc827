"""CLI tests — Click commands against a scripted API."""

import json
import time

import httpx
import pytest
from click.testing import CliRunner

from backoffice.cli import main as cli
from backoffice.client.session import SessionManager
from backoffice.client.storage import FileStorage

from test_session_client import USER, make_token


def _api(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/auth/login":
        body = json.loads(request.content)
        if body["password"] != "right":
            return httpx.Response(401, json={"success": False, "error": "Invalid email or password"})
        return httpx.Response(200, json={
            "success": True,
            "token": make_token(int(time.time()) + 3600),
            "refreshToken": make_token(int(time.time()) + 86400),
            "user": USER,
        })
    if path == "/api/auth/logout":
        return httpx.Response(200, json={"success": True, "message": "Logged out successfully"})
    if path == "/api/setup":
        return httpx.Response(200, json={
            "success": True, "data": {"userCount": 3, "hasAdmin": True, "databaseConnected": True},
        })
    if not request.headers.get("Authorization"):
        return httpx.Response(401, json={"success": False, "error": "Invalid or expired token"})
    if path == "/api/auth/me":
        return httpx.Response(200, json={"success": True, "user": USER})
    if path == "/api/admin/users":
        return httpx.Response(200, json={"success": True, "data": {
            "users": [{**USER, "isActive": True}],
            "pagination": {"currentPage": 1, "totalPages": 1, "totalItems": 1,
                           "itemsPerPage": 20, "hasNextPage": False, "hasPrevPage": False},
        }})
    return httpx.Response(404, json={"success": False, "error": "Not Found"})


@pytest.fixture()
def session_file(tmp_path, monkeypatch):
    path = tmp_path / "session.json"

    def factory():
        http = httpx.AsyncClient(transport=httpx.MockTransport(_api), base_url="http://test")
        manager = SessionManager(http=http, storage=FileStorage(path))
        manager._owns_http = True
        return manager

    monkeypatch.setattr(cli, "_session", factory)
    return path


def test_login_persists_session(session_file):
    result = CliRunner().invoke(cli.main, ["login", "-e", "sam@example.com", "-p", "right"])
    assert result.exit_code == 0, result.output
    assert "Logged in as Sam Staff (staff)" in result.output
    stored = json.loads(session_file.read_text())
    assert set(stored) == {"token", "refreshToken", "user"}


def test_login_failure(session_file):
    result = CliRunner().invoke(cli.main, ["login", "-e", "sam@example.com", "-p", "wrong"])
    assert result.exit_code == 1
    assert "Invalid email or password" in result.output
    assert not session_file.exists()


def test_whoami_without_session(session_file):
    result = CliRunner().invoke(cli.main, ["whoami"])
    assert result.exit_code == 1
    assert "Authentication required" in result.output


def test_whoami_and_logout(session_file):
    runner = CliRunner()
    runner.invoke(cli.main, ["login", "-e", "sam@example.com", "-p", "right"])

    result = runner.invoke(cli.main, ["whoami", "--json"])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["email"] == "sam@example.com"

    result = runner.invoke(cli.main, ["logout"])
    assert result.exit_code == 0
    assert json.loads(session_file.read_text()) == {}


def test_users_table(session_file):
    runner = CliRunner()
    runner.invoke(cli.main, ["login", "-e", "sam@example.com", "-p", "right"])
    result = runner.invoke(cli.main, ["users", "--role", "staff"])
    assert result.exit_code == 0, result.output
    assert "1 total" in result.output
    assert "sam@example.com" in result.output


def test_setup_status(session_file):
    result = CliRunner().invoke(cli.main, ["setup"])
    assert result.exit_code == 0, result.output
    assert "Users:         3" in result.output
