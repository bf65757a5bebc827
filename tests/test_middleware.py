"""Tests for the middleware stack — security headers, request IDs, rate limits.

Learn: Rate limiting runs in every test app with an in-memory limiter.
Apps that need to hit the limit are built with tiny limits so a handful
of requests is enough.
"""

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from backoffice.config import Settings
from backoffice.db.engine import get_db
from backoffice.main import create_app
from backoffice.middleware.rate_limit import FixedWindowRateLimiter


@pytest.mark.asyncio
async def test_security_headers_on_health(client):
    """Health endpoint returns security headers."""
    r = await client.get("/api/health")
    assert r.status_code == 200
    assert r.headers["X-Content-Type-Options"] == "nosniff"
    assert r.headers["X-Frame-Options"] == "DENY"
    assert r.headers["Referrer-Policy"] == "strict-origin-when-cross-origin"
    assert r.headers["Cache-Control"] == "no-store"
    assert "X-XSS-Protection" not in r.headers


@pytest.mark.asyncio
async def test_security_headers_on_errors(client):
    r = await client.get("/api/auth/me")
    assert r.status_code == 401
    assert r.headers["X-Frame-Options"] == "DENY"


@pytest.mark.asyncio
async def test_request_id_generated(client):
    """Each request gets a unique X-Request-ID header."""
    r1 = await client.get("/api/health")
    r2 = await client.get("/api/health")
    assert "X-Request-ID" in r1.headers
    assert "X-Request-ID" in r2.headers
    assert r1.headers["X-Request-ID"] != r2.headers["X-Request-ID"]


@pytest.mark.asyncio
async def test_request_id_propagated(client):
    """Incoming X-Request-ID is propagated through the response."""
    custom_id = "test-trace-12345"
    r = await client.get("/api/health", headers={"X-Request-ID": custom_id})
    assert r.headers["X-Request-ID"] == custom_id


@pytest.mark.asyncio
async def test_no_hsts_on_http(client):
    """HSTS header is NOT set on HTTP connections (only HTTPS)."""
    r = await client.get("/api/health")
    assert "Strict-Transport-Security" not in r.headers


@pytest.mark.asyncio
async def test_unknown_route_uses_envelope(client):
    r = await client.get("/api/does-not-exist")
    assert r.status_code == 404
    assert r.json() == {"success": False, "error": "Not Found"}


# ═══════════════════════════════════════════════════════════
# Rate limiting
# ═══════════════════════════════════════════════════════════


@pytest_asyncio.fixture()
async def limited_client(session_factory):
    """A client against an app allowing 3 requests, and 2 login attempts, per window."""
    config = Settings(rate_limit_requests=3, rate_limit_auth_requests=2)
    app = create_app(config=config, rate_limiter=FixedWindowRateLimiter(window_seconds=60))

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


def test_injected_limiter_is_used_even_when_empty():
    limiter = FixedWindowRateLimiter(window_seconds=60)
    assert len(limiter) == 0
    app = create_app(rate_limiter=limiter)
    assert app.state.rate_limiter is limiter
    assert app.state.rate_limiter.window_seconds == 60


@pytest.mark.asyncio
async def test_rate_limit_returns_429(limited_client):
    for _ in range(3):
        r = await limited_client.get("/api/health")
        assert r.status_code == 200

    r = await limited_client.get("/api/health")
    assert r.status_code == 429
    assert r.json() == {"success": False, "error": "Too many requests. Try again later."}
    assert 1 <= int(r.headers["Retry-After"]) <= 60
    assert r.headers["X-RateLimit-Remaining"] == "0"
    # still wrapped by the outer middleware
    assert r.headers["X-Frame-Options"] == "DENY"
    assert "X-Request-ID" in r.headers


@pytest.mark.asyncio
async def test_rate_limit_headers_count_down(limited_client):
    r = await limited_client.get("/api/health")
    assert r.headers["X-RateLimit-Limit"] == "3"
    assert r.headers["X-RateLimit-Remaining"] == "2"


@pytest.mark.asyncio
async def test_login_has_its_own_smaller_bucket(limited_client):
    body = {"email": "nobody@example.com", "password": "whatever"}
    for _ in range(2):
        r = await limited_client.post("/api/auth/login", json=body)
        assert r.status_code == 401
    r = await limited_client.post("/api/auth/login", json=body)
    assert r.status_code == 429

    # general bucket is untouched
    assert (await limited_client.get("/api/health")).status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_is_per_ip(limited_client):
    for _ in range(3):
        await limited_client.get("/api/health", headers={"X-Forwarded-For": "10.0.0.1"})
    blocked = await limited_client.get("/api/health", headers={"X-Forwarded-For": "10.0.0.1"})
    other = await limited_client.get("/api/health", headers={"X-Forwarded-For": "10.0.0.2"})
    assert blocked.status_code == 429
    assert other.status_code == 200


@pytest.mark.asyncio
async def test_rate_limit_can_be_disabled(session_factory):
    config = Settings(rate_limit_requests=1, rate_limit_enabled=False)
    app = create_app(config=config, rate_limiter=FixedWindowRateLimiter(window_seconds=60))

    async def override_get_db():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        for _ in range(3):
            assert (await ac.get("/api/health")).status_code == 200
