"""Authentication recovery after a 401.

One run walks::

    NoAuthIssue -> RefreshAttempted -> Recovered
                                    -> ReauthAttempted -> Recovered | Failed
    NoAuthIssue -> ReauthAttempted  (no refresh token held)

A run makes at most one refresh call and at most one re-authentication
call. Concurrent 401s share the run already in flight.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum
from typing import Protocol, runtime_checkable

from apilink.credentials import CredentialStore
from apilink.errors import ApiError

logger = logging.getLogger(__name__)

# refresh token -> (access token, new refresh token or None), or None on failure
RefreshTokens = Callable[[str], Awaitable[tuple[str, str | None] | None]]


class AuthState(str, Enum):
    NO_AUTH_ISSUE = "NoAuthIssue"
    REFRESH_ATTEMPTED = "RefreshAttempted"
    REAUTH_ATTEMPTED = "ReauthAttempted"
    RECOVERED = "Recovered"
    FAILED = "Failed"


@runtime_checkable
class ReauthCallback(Protocol):
    """Last-resort full credential re-acquisition."""

    async def ensure_authenticated(self) -> bool: ...


class AuthRecovery:
    """Refresh-then-reauthenticate state machine with a single-flight guard."""

    def __init__(
        self,
        credentials: CredentialStore,
        refresh: RefreshTokens,
        reauth: ReauthCallback | None = None,
    ) -> None:
        self._credentials = credentials
        self._refresh = refresh
        self._reauth = reauth
        self._pending: asyncio.Task[AuthState] | None = None
        self.last_path: tuple[AuthState, ...] = ()

    @property
    def reauth(self) -> ReauthCallback | None:
        return self._reauth

    @reauth.setter
    def reauth(self, reauth: ReauthCallback | None) -> None:
        self._reauth = reauth

    @property
    def in_progress(self) -> bool:
        return self._pending is not None

    async def recover(self, rejected_token: str | None) -> AuthState:
        """Recover from a 401 received for a request sent with ``rejected_token``.

        Returns ``RECOVERED`` when the caller should replay its request once,
        ``FAILED`` otherwise.
        """
        current = self._credentials.access_token
        if current is not None and current != rejected_token:
            # Another caller already replaced the token this request used.
            return AuthState.RECOVERED

        task = self._pending
        if task is None:
            task = asyncio.create_task(self._run())
            self._pending = task
            task.add_done_callback(self._clear_pending)
        else:
            logger.debug("Auth recovery already in flight; waiting for it")
        return await asyncio.shield(task)

    def _clear_pending(self, task: asyncio.Task[AuthState]) -> None:
        if self._pending is task:
            self._pending = None

    async def _run(self) -> AuthState:
        path = [AuthState.NO_AUTH_ISSUE]
        try:
            refresh_token = self._credentials.refresh_token
            if refresh_token:
                path.append(AuthState.REFRESH_ATTEMPTED)
                if await self._try_refresh(refresh_token):
                    path.append(AuthState.RECOVERED)
                    return AuthState.RECOVERED
                await self._credentials.clear_refresh_token()

            path.append(AuthState.REAUTH_ATTEMPTED)
            # The rejected token must not satisfy an "already logged in" check.
            await self._credentials.clear_access_token()
            outcome = AuthState.RECOVERED if await self._try_reauth() else AuthState.FAILED
            path.append(outcome)
            return outcome
        finally:
            self.last_path = tuple(path)
            logger.info("Auth recovery: %s", " -> ".join(s.value for s in path))

    async def _try_refresh(self, refresh_token: str) -> bool:
        try:
            tokens = await self._refresh(refresh_token)
        except ApiError as error:
            logger.warning("Token refresh failed: %s", error.kind.value)
            return False
        if tokens is None:
            logger.warning("Token refresh rejected")
            return False
        access_token, new_refresh_token = tokens
        await self._credentials.set_tokens(access_token, new_refresh_token)
        return True

    async def _try_reauth(self) -> bool:
        if self._reauth is None:
            return False
        try:
            return bool(await self._reauth.ensure_authenticated())
        except ApiError as error:
            logger.warning("Re-authentication failed: %s", error.kind.value)
            return False
