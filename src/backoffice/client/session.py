"""Client-side session cache: token pair, user snapshot, silent refresh.

Learn: The session lives in a key/value storage as three independent keys.
A snapshot only exists when all three are present and readable; anything
less is treated as no session and the leftovers are wiped, so a half-written
session can never be used.

Expiry checks here read ``exp`` without verifying the signature. That is
fine for deciding *when* to refresh; the server still verifies every token.

Two things keep the access token fresh:
- a timer that fires 5 minutes before ``exp`` and refreshes proactively
- ``get_valid_token`` refreshing on demand when the token has expired
Both go through one SingleFlight, so N concurrent callers cause exactly one
POST /api/auth/refresh and all get its result.
"""

import asyncio
import inspect
import json
import time
from typing import Any, Awaitable, Callable, Optional, Union

import httpx
import structlog
from pydantic import Field

from backoffice.auth.jwt import is_structurally_expired, token_expiration_time
from backoffice.client.singleflight import SingleFlight
from backoffice.client.storage import MemoryStorage, TokenStorage
from backoffice.schemas.common import CamelModel

logger = structlog.get_logger()

TOKEN_KEY = "token"
REFRESH_TOKEN_KEY = "refreshToken"
USER_KEY = "user"

REFRESH_MARGIN_SECONDS = 5 * 60
DEFAULT_WATCH_INTERVAL = 60.0

ExpiredCallback = Callable[[], Union[None, Awaitable[None]]]


class SessionSnapshot(CamelModel):
    token: str
    refresh_token: str
    user: dict[str, Any] = Field(default_factory=dict)
    expires_at: int  # epoch seconds, the token's exp claim


class SessionManager:
    """Owns the stored session and the HTTP client used for auth calls."""

    def __init__(
        self,
        base_url: str = "",
        storage: Optional[TokenStorage] = None,
        http: Optional[httpx.AsyncClient] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage or MemoryStorage()
        self._owns_http = http is None
        self.http = http or httpx.AsyncClient(base_url=base_url, timeout=30.0)
        self.clock = clock
        self._refresh_flight: SingleFlight[Optional[str]] = SingleFlight()
        self._refresh_timer: Optional[asyncio.TimerHandle] = None
        self._timer_task: Optional[asyncio.Task] = None
        self._watch_task: Optional[asyncio.Task] = None

    async def __aenter__(self) -> "SessionManager":
        return self

    async def __aexit__(self, *exc) -> None:
        await self.aclose()

    # ─── Snapshot ───────────────────────────────────────

    def get_tokens(self) -> Optional[SessionSnapshot]:
        """Read the stored session; partial or unreadable state is cleared."""
        token = self.storage.get(TOKEN_KEY)
        refresh_token = self.storage.get(REFRESH_TOKEN_KEY)
        raw_user = self.storage.get(USER_KEY)
        if token is None and refresh_token is None and raw_user is None:
            return None

        snapshot = None
        if token and refresh_token and raw_user:
            try:
                user = json.loads(raw_user)
            except ValueError:
                user = None
            expires_at = token_expiration_time(token)
            if isinstance(user, dict) and expires_at is not None:
                snapshot = SessionSnapshot(
                    token=token,
                    refresh_token=refresh_token,
                    user=user,
                    expires_at=expires_at,
                )

        if snapshot is None:
            logger.info("session.discarded_partial_state")
            self.clear_tokens()
        return snapshot

    def set_tokens(self, token: str, refresh_token: str, user: dict[str, Any]) -> None:
        """Persist all three keys and (re)schedule the proactive refresh."""
        self.storage.set(TOKEN_KEY, token)
        self.storage.set(REFRESH_TOKEN_KEY, refresh_token)
        self.storage.set(USER_KEY, json.dumps(user))
        self._schedule_refresh(token)

    def clear_tokens(self) -> None:
        for key in (TOKEN_KEY, REFRESH_TOKEN_KEY, USER_KEY):
            self.storage.delete(key)
        self._cancel_refresh_timer()

    def current_user(self) -> Optional[dict[str, Any]]:
        snapshot = self.get_tokens()
        return snapshot.user if snapshot else None

    def is_authenticated(self) -> bool:
        snapshot = self.get_tokens()
        return snapshot is not None and not is_structurally_expired(snapshot.token, now=self.clock())

    # ─── Refresh timer ──────────────────────────────────

    @property
    def refresh_scheduled(self) -> bool:
        return self._refresh_timer is not None

    def _cancel_refresh_timer(self) -> None:
        if self._refresh_timer is not None:
            self._refresh_timer.cancel()
            self._refresh_timer = None

    def _schedule_refresh(self, token: str) -> None:
        """Fire a refresh 5 minutes before exp. Already past that point: no timer."""
        self._cancel_refresh_timer()
        exp = token_expiration_time(token)
        if exp is None:
            return
        delay = exp - REFRESH_MARGIN_SECONDS - self.clock()
        if delay <= 0:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # Outside an event loop there is nothing to run the timer on;
            # get_valid_token still refreshes on demand.
            return
        self._refresh_timer = loop.call_later(delay, self._on_refresh_due)

    def _on_refresh_due(self) -> None:
        self._refresh_timer = None
        self._timer_task = asyncio.get_running_loop().create_task(self.refresh())

    # ─── Tokens ─────────────────────────────────────────

    async def login(self, email: str, password: str) -> SessionSnapshot:
        """POST /api/auth/login and store the returned pair.

        Raises httpx.HTTPStatusError on a rejected login.
        """
        response = await self.http.post("/api/auth/login", json={"email": email, "password": password})
        response.raise_for_status()
        data = response.json()
        self.set_tokens(data["token"], data["refreshToken"], data["user"])
        logger.info("session.logged_in", email=email)
        return self.get_tokens()

    async def get_valid_token(self) -> Optional[str]:
        """The cached access token if still valid, else a (shared) refresh."""
        snapshot = self.get_tokens()
        if snapshot is None:
            return None
        if not is_structurally_expired(snapshot.token, now=self.clock()):
            return snapshot.token
        return await self.refresh()

    async def refresh(self) -> Optional[str]:
        """Exchange the refresh token for a new access token.

        Concurrent callers share one request. Any failure clears the whole
        session and yields None; there are no retries.
        """
        return await self._refresh_flight.do(self._refresh_once)

    async def _refresh_once(self) -> Optional[str]:
        snapshot = self.get_tokens()
        if snapshot is None:
            return None

        try:
            response = await self.http.post(
                "/api/auth/refresh", json={"refreshToken": snapshot.refresh_token}
            )
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("session.refresh_failed", error=str(e))
            self.clear_tokens()
            return None

        token = data.get("token") if isinstance(data, dict) else None
        if not token or not response.is_success or not data.get("success"):
            error = data.get("error") if isinstance(data, dict) else None
            logger.info("session.refresh_rejected", status=response.status_code, error=error)
            self.clear_tokens()
            return None

        # Only the access token changes; refresh token and user carry over.
        self.set_tokens(token, snapshot.refresh_token, snapshot.user)
        logger.info("session.refreshed")
        return token

    async def logout(self) -> None:
        """Best-effort server notification, then always clear. Idempotent."""
        snapshot = self.get_tokens()
        if snapshot is not None:
            try:
                await self.http.post(
                    "/api/auth/logout",
                    headers={"Authorization": f"Bearer {snapshot.token}"},
                )
            except httpx.HTTPError as e:
                logger.info("session.logout_request_failed", error=str(e))
        self.clear_tokens()

    # ─── Expiry watch ───────────────────────────────────

    async def check_expiry(self, on_expired: Optional[ExpiredCallback] = None) -> bool:
        """One watch tick. Returns True if the session was found dead and ended."""
        snapshot = self.get_tokens()
        if snapshot is None or not is_structurally_expired(snapshot.token, now=self.clock()):
            return False
        if await self.refresh() is not None:
            return False

        await self.logout()
        if on_expired is not None:
            result = on_expired()
            if inspect.isawaitable(result):
                await result
        return True

    def watch_expiry(
        self,
        on_expired: Optional[ExpiredCallback] = None,
        interval: float = DEFAULT_WATCH_INTERVAL,
    ) -> asyncio.Task:
        """Start the periodic expiry check on the running loop."""
        self.stop_watch()

        async def loop():
            while True:
                await asyncio.sleep(interval)
                await self.check_expiry(on_expired)

        self._watch_task = asyncio.get_running_loop().create_task(loop())
        return self._watch_task

    def stop_watch(self) -> None:
        if self._watch_task is not None:
            self._watch_task.cancel()
            self._watch_task = None

    async def aclose(self) -> None:
        self.stop_watch()
        self._cancel_refresh_timer()
        if self._timer_task is not None and not self._timer_task.done():
            self._timer_task.cancel()
        if self._owns_http:
            await self.http.aclose()
