"""Credential store backed by durable key-value storage."""

from __future__ import annotations

from apilink.storage.base import AsyncKeyValueStorage
from apilink.types import Credentials

ACCESS_TOKEN_KEY = "authToken"
REFRESH_TOKEN_KEY = "refreshToken"


class CredentialStore:
    """Holds the current access and refresh token.

    The in-memory pair is authoritative for header construction; every
    change is written through to ``storage`` so a later process can
    ``load()`` it again. No network calls happen here.
    """

    def __init__(
        self,
        storage: AsyncKeyValueStorage,
        credentials: Credentials | None = None,
    ) -> None:
        self._storage = storage
        self._credentials = credentials or Credentials()

    @classmethod
    async def load(cls, storage: AsyncKeyValueStorage) -> CredentialStore:
        """Create a store from whatever tokens ``storage`` already holds."""
        access = await storage.get(ACCESS_TOKEN_KEY)
        refresh = await storage.get(REFRESH_TOKEN_KEY)
        return cls(storage, Credentials(access_token=access, refresh_token=refresh))

    @property
    def storage(self) -> AsyncKeyValueStorage:
        return self._storage

    @property
    def credentials(self) -> Credentials:
        return self._credentials

    @property
    def access_token(self) -> str | None:
        return self._credentials.access_token

    @property
    def refresh_token(self) -> str | None:
        return self._credentials.refresh_token

    async def set_tokens(self, access_token: str, refresh_token: str | None = None) -> None:
        """Store a new access token and, if given, a new refresh token.

        A ``None`` refresh token keeps the one already held.
        """
        refresh = refresh_token if refresh_token is not None else self.refresh_token
        self._credentials = Credentials(access_token=access_token, refresh_token=refresh)
        await self._storage.set(ACCESS_TOKEN_KEY, access_token)
        if refresh_token is not None:
            await self._storage.set(REFRESH_TOKEN_KEY, refresh_token)

    async def clear_access_token(self) -> None:
        self._credentials = Credentials(refresh_token=self.refresh_token)
        await self._storage.remove(ACCESS_TOKEN_KEY)

    async def clear_refresh_token(self) -> None:
        self._credentials = Credentials(access_token=self.access_token)
        await self._storage.remove(REFRESH_TOKEN_KEY)

    async def clear(self) -> None:
        """Drop both tokens (logout)."""
        self._credentials = Credentials()
        await self._storage.remove(ACCESS_TOKEN_KEY)
        await self._storage.remove(REFRESH_TOKEN_KEY)
