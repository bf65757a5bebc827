"""Backoffice CLI — sign in and inspect the admin API from a terminal.

Usage:
    backoffice login -e admin@example.com     # Prompts for the password
    backoffice whoami                          # Current session user
    backoffice users --role staff              # List accounts (admins)
    backoffice activity --category auth        # Audit trail (admins)
    backoffice setup --create-admin            # Bootstrap the first super_admin
    backoffice logout
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import click
import httpx

from backoffice import __version__
from backoffice.client.http import ApiClient, ApiResponse
from backoffice.client.session import SessionManager
from backoffice.client.storage import FileStorage

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("BACKOFFICE_API_URL", DEFAULT_API_URL).rstrip("/")


def _session_file() -> Path:
    override = os.environ.get("BACKOFFICE_SESSION_FILE")
    if override:
        return Path(override)
    return Path(click.get_app_dir("backoffice")) / "session.json"


def _session() -> SessionManager:
    """Session persisted across invocations in the per-user app dir."""
    return SessionManager(base_url=_api_url(), storage=FileStorage(_session_file()))


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _with_session(handler: Callable[..., Awaitable[Any]], *args: Any, **kwargs: Any) -> Any:
    """Open the stored session, await ``handler(session, ...)``, then close it.

    Click handlers are synchronous. When a loop is already running in this
    thread the work gets a private loop on a worker thread instead.
    """

    async def _go():
        async with _session() as session:
            return await handler(session, *args, **kwargs)

    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(_go())
    with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
        return pool.submit(asyncio.run, _go()).result()


def _echo_json(data: Any) -> None:
    click.echo(json.dumps(data, indent=2, sort_keys=True, default=str))


Column = tuple[str, Callable[[dict], Any], int]


def _echo_rows(rows: list[dict], columns: list[Column]) -> None:
    """Fixed-width listing. Each column is (title, cell getter, width)."""
    click.secho("  ".join(title.ljust(width) for title, _, width in columns).rstrip(), bold=True)
    for row in rows:
        cells = []
        for _, cell, width in columns:
            value = cell(row)
            text = "-" if value is None or value == "" else str(value)
            cells.append(text[:width].ljust(width))
        click.echo("  ".join(cells).rstrip())


def _fail(result: ApiResponse) -> None:
    if result.status == 0:
        click.secho(f"Cannot reach {_api_url()}: {result.error}", fg="red", err=True)
    else:
        click.secho(f"Error ({result.status}): {result.error}", fg="red", err=True)
    sys.exit(1)


async def _call(session: SessionManager, method: str, path: str, **kwargs) -> dict:
    """One API call; exits with the server's error on failure."""
    result = await ApiClient(session).request(method, path, **kwargs)
    if not result.success:
        _fail(result)
    return result.data


def _severity_color(severity: str) -> str:
    return {
        "low": "white",
        "medium": "yellow",
        "high": "red",
        "critical": "magenta",
    }.get(severity, "white")


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="backoffice")
def main():
    """Backoffice — admin panel API from the command line."""


# ---------------------------------------------------------------------------
# backoffice login / logout / whoami
# ---------------------------------------------------------------------------


@main.command()
@click.option("--email", "-e", prompt=True, help="Account email")
@click.option("--password", "-p", prompt=True, hide_input=True, help="Account password")
def login(email: str, password: str):
    """Sign in and store the session locally."""
    _with_session(_login, email, password)


async def _login(session: SessionManager, email: str, password: str):
    try:
        snapshot = await session.login(email, password)
    except httpx.HTTPStatusError as e:
        try:
            error = e.response.json().get("error")
        except ValueError:
            error = None
        click.secho(f"Login failed: {error or e.response.status_code}", fg="red", err=True)
        sys.exit(1)
    except httpx.HTTPError as e:
        click.secho(f"Cannot reach {_api_url()}: {e}", fg="red", err=True)
        sys.exit(1)

    user = snapshot.user
    click.secho(
        f"Logged in as {user.get('firstName')} {user.get('lastName')} ({user.get('role')})",
        fg="green",
    )


@main.command()
def logout():
    """End the session (server is notified best-effort)."""
    _with_session(_logout)
    click.echo("Logged out.")


async def _logout(session: SessionManager):
    await session.logout()


@main.command()
@click.option("--json", "as_json", is_flag=True, help="Print the raw user record")
def whoami(as_json: bool):
    """Show the signed-in user, refreshing the session if needed."""
    user = _with_session(_call, "GET", "/api/auth/me")["user"]
    if as_json:
        _echo_json(user)
        return
    click.secho(f"{user['firstName']} {user['lastName']}", bold=True)
    click.echo(f"  Email:      {user['email']}")
    click.echo(f"  Role:       {user['role']}")
    click.echo(f"  Department: {user.get('department') or '-'}")
    click.echo(f"  Last login: {user.get('lastLogin') or '-'}")


# ---------------------------------------------------------------------------
# backoffice setup
# ---------------------------------------------------------------------------


@main.command()
@click.option("--create-admin", is_flag=True, help="Create the default super_admin if no users exist")
def setup(create_admin: bool):
    """Show first-run status, or bootstrap the first admin."""
    if create_admin:
        body = _with_session(_call, "POST", "/api/setup", json={"action": "create-admin"}, require_auth=False)
        click.secho(body.get("message", "Done"), fg="green")
        return

    data = _with_session(_call, "GET", "/api/setup", require_auth=False)["data"]
    click.echo(f"  Users:         {data['userCount']}")
    click.echo(f"  Active admin:  {'yes' if data['hasAdmin'] else 'no'}")


# ---------------------------------------------------------------------------
# backoffice users
# ---------------------------------------------------------------------------


@main.command()
@click.option("--search", "-s", help="Match name, email or department")
@click.option("--role", "-r", type=click.Choice(["super_admin", "admin", "staff"]))
@click.option("--page", default=1, help="Page number")
@click.option("--limit", "-l", default=20, help="Results per page")
def users(search: Optional[str], role: Optional[str], page: int, limit: int):
    """List user accounts (admins only)."""
    params: dict = {"page": page, "limit": limit}
    if search:
        params["search"] = search
    if role:
        params["role"] = role

    data = _with_session(_call, "GET", "/api/admin/users", params=params)["data"]
    rows = data["users"]
    if not rows:
        click.echo("No users found.")
        return
    pagination = data["pagination"]
    click.secho(
        f"Users (page {pagination['currentPage']}/{pagination['totalPages']}, "
        f"{pagination['totalItems']} total):",
        bold=True,
    )
    click.echo()
    _echo_rows(rows, [
        ("Name", lambda u: f"{u['firstName']} {u['lastName']}", 24),
        ("Email", lambda u: u["email"], 32),
        ("Role", lambda u: u["role"], 12),
        ("Active", lambda u: "yes" if u["isActive"] else "no", 6),
    ])


# ---------------------------------------------------------------------------
# backoffice activity
# ---------------------------------------------------------------------------


@main.command()
@click.option("--category", "-c", help="auth, user, inquiry, client, project, system, settings")
@click.option("--severity", type=click.Choice(["low", "medium", "high", "critical"]))
@click.option("--action", "-a", help="Action code, e.g. UPDATE_USER")
@click.option("--limit", "-l", default=20, help="Max results")
def activity(category: Optional[str], severity: Optional[str], action: Optional[str], limit: int):
    """Show the most recent audit trail entries (admins only)."""
    params: dict = {"limit": limit}
    if category:
        params["category"] = category
    if severity:
        params["severity"] = severity
    if action:
        params["action"] = action

    entries = _with_session(_call, "GET", "/api/activity", params=params)["data"]["activities"]
    if not entries:
        click.echo("No activity recorded.")
        return
    for entry in entries:
        sev = click.style(entry["severity"].ljust(8), fg=_severity_color(entry["severity"]))
        click.echo(f"{entry['createdAt'][:19]}  {sev}  {entry['action']:<18}  {entry['description']}")


if __name__ == "__main__":
    main()
