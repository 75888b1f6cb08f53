"""Default "ensure authenticated" collaborator: log in with stored credentials."""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable
from typing import Any

from apilink.credentials import CredentialStore
from apilink.duration import to_seconds
from apilink.errors import DEFAULT_RETRY_AFTER_SECONDS, ApiError, ErrorKind
from apilink.types import Duration

logger = logging.getLogger(__name__)

Login = Callable[[str, str], Awaitable[Any]]


class StoredLoginAuthenticator:
    """Logs in with a configured identifier/password when no token is held.

    Concurrent callers share one login. Attempts are spaced at least
    ``min_interval`` apart; a rate-limited login pushes the next allowed
    attempt to the server's Retry-After instead.
    """

    def __init__(
        self,
        login: Login,
        credentials: CredentialStore,
        identifier: str,
        password: str,
        *,
        min_interval: Duration = "60s",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._login = login
        self._credentials = credentials
        self._identifier = identifier
        self._password = password
        self._min_interval = to_seconds(min_interval)
        self._clock = clock
        self._next_attempt_at: float | None = None
        self._pending: asyncio.Task[bool] | None = None

    def has_token(self) -> bool:
        return self._credentials.access_token is not None

    def is_login_in_progress(self) -> bool:
        return self._pending is not None

    def time_until_next_attempt(self) -> float:
        """Seconds until another login may be attempted (0 if allowed now)."""
        if self._next_attempt_at is None:
            return 0.0
        return max(0.0, self._next_attempt_at - self._clock())

    def reset(self) -> None:
        """Forget throttling state, e.g. after an explicit logout."""
        self._next_attempt_at = None

    async def ensure_authenticated(self) -> bool:
        if self.has_token():
            return True

        if self._pending is not None:
            logger.debug("Login already in progress; waiting")
            return await asyncio.shield(self._pending)

        wait = self.time_until_next_attempt()
        if wait > 0:
            logger.info("Skipping login; next attempt allowed in %ds", int(wait + 0.999))
            return False

        self._next_attempt_at = self._clock() + self._min_interval
        task = asyncio.create_task(self._perform_login())
        self._pending = task
        try:
            return await asyncio.shield(task)
        finally:
            self._pending = None

    async def _perform_login(self) -> bool:
        logger.info("Attempting automatic login")
        try:
            await self._login(self._identifier, self._password)
        except ApiError as error:
            if error.kind is ErrorKind.RATE_LIMITED:
                seconds = error.retry_after_seconds or DEFAULT_RETRY_AFTER_SECONDS
                self._next_attempt_at = self._clock() + seconds
                logger.warning("Login rate limited; next attempt in %ss", seconds)
            else:
                logger.warning("Automatic login failed: %s", error.kind.value)
            return False
        return self.has_token()
