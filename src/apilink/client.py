"""Async API client: the single entry point for backend calls."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from types import TracebackType
from typing import Any

import httpx

from apilink.auth import AuthRecovery, AuthState, ReauthCallback
from apilink.authenticator import StoredLoginAuthenticator
from apilink.cache import ResponseCache, make_cache_key, resource_segment
from apilink.config import BASE_URL_STORAGE_KEY, ClientConfig, resolve_base_url
from apilink.credentials import CredentialStore
from apilink.duration import parse_duration, to_seconds
from apilink.errors import ApiError, ErrorKind, classify, network_error, timeout_error
from apilink.notifications import NotificationSink, Notifier, success_message
from apilink.retry import Sleep, with_retry
from apilink.storage.base import AsyncKeyValueStorage
from apilink.types import RequestOptions

logger = logging.getLogger(__name__)

LOGIN_ENDPOINT = "/auth/login"
REFRESH_ENDPOINT = "/auth/refresh"
VERIFY_ENDPOINT = "/auth/verify"

READ_METHODS = frozenset({"GET", "HEAD"})
MUTATING_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


@dataclass(frozen=True, slots=True)
class _Outcome:
    response: httpx.Response
    body: Any
    token: str | None  # access token the request was sent with


def parse_body(response: httpx.Response) -> Any:
    """Parse JSON when the response declares it, raw text otherwise.

    Unparseable or empty bodies yield None.
    """
    content_type = response.headers.get("content-type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            return None
    return response.text or None


def _without_content_type(headers: dict[str, str]) -> dict[str, str]:
    return {k: v for k, v in headers.items() if k.lower() != "content-type"}


class ApiClient:
    """Dispatches requests to the backend with caching, retries and auth recovery.

    Usage:
        async with await create_client(storage=JsonFileStorage("session.json")) as api:
            await api.login("admin@example.com", "secret")
            products = await api.get("/products", cache=True)
    """

    def __init__(
        self,
        credentials: CredentialStore,
        *,
        config: ClientConfig | None = None,
        cache: ResponseCache | None = None,
        storage: AsyncKeyValueStorage | None = None,
        notification_sink: NotificationSink | None = None,
        reauth: ReauthCallback | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        # storage defaults to the one backing the credentials
        self._config = config or ClientConfig()
        self._credentials = credentials
        self._cache = (
            cache if cache is not None else ResponseCache(self._config.cache_max_items)
        )
        self._storage = storage if storage is not None else credentials.storage
        self._notifier = Notifier(notification_sink)
        self._recovery = AuthRecovery(credentials, self._refresh_tokens, reauth)
        self._sleep = sleep
        self._base_url_override = self._config.base_url
        self._timeout = to_seconds(self._config.timeout)
        self._http = httpx.AsyncClient(transport=transport, timeout=self._timeout)

    async def __aenter__(self) -> ApiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._http.aclose()

    @property
    def credentials(self) -> CredentialStore:
        return self._credentials

    @property
    def cache(self) -> ResponseCache:
        return self._cache

    @property
    def recovery(self) -> AuthRecovery:
        return self._recovery

    @property
    def notifier(self) -> Notifier:
        return self._notifier

    @property
    def reauth(self) -> ReauthCallback | None:
        return self._recovery.reauth

    @reauth.setter
    def reauth(self, reauth: ReauthCallback | None) -> None:
        self._recovery.reauth = reauth

    # -------------------------------------------------------------------------
    # Base URL
    # -------------------------------------------------------------------------

    async def get_api_url(self) -> str:
        """The base URL requests go to right now."""
        return await resolve_base_url(self._base_url_override, self._storage)

    def set_base_url(self, url: str | None) -> None:
        """Set (or with None, drop) the runtime base URL override."""
        self._base_url_override = url

    async def persist_base_url(self, url: str | None) -> None:
        """Save (or with None, remove) the persisted base URL override."""
        if url:
            await self._storage.set(BASE_URL_STORAGE_KEY, url)
        else:
            await self._storage.remove(BASE_URL_STORAGE_KEY)

    async def _url(self, endpoint: str) -> str:
        if not endpoint.startswith("/"):
            endpoint = f"/{endpoint}"
        return f"{await self.get_api_url()}{endpoint}"

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def dispatch(self, endpoint: str, options: RequestOptions | None = None) -> Any:
        """Send a request and return its parsed body.

        Raises:
            ApiError: for every failure that was not recovered internally
        """
        return await self._dispatch(endpoint, options or RequestOptions(), recover_auth=True)

    async def get(self, endpoint: str, **options: Any) -> Any:
        return await self.dispatch(endpoint, RequestOptions(method="GET", **options))

    async def post(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        return await self.dispatch(endpoint, RequestOptions(method="POST", body=body, **options))

    async def put(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        return await self.dispatch(endpoint, RequestOptions(method="PUT", body=body, **options))

    async def patch(self, endpoint: str, body: Any = None, **options: Any) -> Any:
        return await self.dispatch(endpoint, RequestOptions(method="PATCH", body=body, **options))

    async def delete(self, endpoint: str, **options: Any) -> Any:
        return await self.dispatch(endpoint, RequestOptions(method="DELETE", **options))

    async def _dispatch(
        self,
        endpoint: str,
        options: RequestOptions,
        *,
        recover_auth: bool,
    ) -> Any:
        method = options.method.upper()
        cacheable = options.cache and method in READ_METHODS
        key = make_cache_key(endpoint, options) if cacheable else None

        if key is not None:
            cached = self._cache.get(key)
            if cached is not None:
                logger.debug("Cache hit: %s", key)
                return cached
            logger.debug("Cache miss: %s", key)

        url = await self._url(endpoint)
        try:
            outcome = await self._perform(method, url, options)
            if outcome.response.status_code == 401 and recover_auth:
                state = await self._recovery.recover(outcome.token)
                if state is AuthState.RECOVERED:
                    logger.info("Replaying %s %s after auth recovery", method, endpoint)
                    outcome = await self._perform(method, url, options)
            if not outcome.response.is_success:
                raise await self._classify(outcome)
        except ApiError as error:
            logger.warning("%s %s failed: %s (%s)", method, endpoint, error.kind.value, error.status)
            if options.show_error_notification and error.kind is not ErrorKind.NOT_FOUND:
                self._notifier.error("Error", error.message)
            raise

        body = outcome.body
        if key is not None:
            ttl = parse_duration(
                options.cache_ttl if options.cache_ttl is not None else self._config.default_cache_ttl
            )
            self._cache.set(key, body, ttl)
        if method in MUTATING_METHODS:
            segment = resource_segment(endpoint)
            if segment:
                self._cache.invalidate(segment)
        if options.show_success_notification:
            message = success_message(method)
            if message is not None:
                self._notifier.success("Success", message)
        return body

    async def _perform(self, method: str, url: str, options: RequestOptions) -> _Outcome:
        """Run one logical request through the retry engine."""

        async def attempt() -> _Outcome:
            # Headers are rebuilt per attempt so a refreshed token applies.
            token = self._credentials.access_token
            response = await self._send(method, url, self._build_headers(options, token), options)
            body = parse_body(response)
            if response.status_code == 429 or response.status_code >= 500:
                raise classify(response, body)
            return _Outcome(response=response, body=body, token=token)

        return await with_retry(
            attempt,
            retries=self._config.retries,
            base_delay=self._config.retry_base_delay,
            notifier=self._notifier,
            sleep=self._sleep,
        )

    def _build_headers(self, options: RequestOptions, token: str | None) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        headers.update(options.headers or {})
        if options.is_multipart:
            # The transport must set the multipart boundary itself.
            headers = _without_content_type(headers)
        return headers

    async def _send(
        self,
        method: str,
        url: str,
        headers: dict[str, str],
        options: RequestOptions,
    ) -> httpx.Response:
        """Single transport call under the timeout budget."""
        kwargs: dict[str, Any] = {}
        if options.is_multipart:
            kwargs["files"] = options.files
            if isinstance(options.body, Mapping):
                kwargs["data"] = options.body
        elif isinstance(options.body, (str, bytes)):
            kwargs["content"] = options.body
        elif options.body is not None:
            kwargs["content"] = json.dumps(options.body, default=str)

        try:
            return await asyncio.wait_for(
                self._http.request(
                    method,
                    url,
                    headers=headers,
                    params=dict(options.params) if options.params else None,
                    **kwargs,
                ),
                timeout=self._timeout,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise timeout_error() from exc
        except httpx.TransportError as exc:
            raise network_error(type(exc).__name__) from exc

    async def _classify(self, outcome: _Outcome) -> ApiError:
        error = classify(outcome.response, outcome.body)
        if error.kind is ErrorKind.UNAUTHORIZED and self._credentials.access_token == outcome.token:
            await self._credentials.clear_access_token()
        return error

    # -------------------------------------------------------------------------
    # Authentication endpoints
    # -------------------------------------------------------------------------

    async def login(self, identifier: str, password: str) -> Any:
        """Log in and store the returned token pair. Returns the response body."""
        data = await self._dispatch(
            LOGIN_ENDPOINT,
            RequestOptions(method="POST", body={"identifier": identifier, "password": password}),
            recover_auth=False,
        )
        await self._store_login(data)
        return data

    async def login_once(self, identifier: str, password: str) -> Any:
        """Log in with a single request: no retries, no recovery, no notifications.

        Used for automatic re-authentication, where a failure must be
        reported to the caller right away.

        Raises:
            ApiError: when the request fails or is rejected
        """
        url = await self._url(LOGIN_ENDPOINT)
        options = RequestOptions(method="POST", body={"identifier": identifier, "password": password})
        response = await self._send("POST", url, {"Content-Type": "application/json"}, options)
        body = parse_body(response)
        if not response.is_success:
            raise classify(response, body)
        await self._store_login(body)
        return body

    async def _store_login(self, data: Any) -> None:
        if isinstance(data, Mapping) and data.get("token"):
            await self._credentials.set_tokens(data["token"], data.get("refreshToken"))
            logger.info("Logged in")

    async def logout(self) -> None:
        """Drop credentials and every cached response."""
        await self._credentials.clear()
        self._cache.clear()
        if isinstance(self.reauth, StoredLoginAuthenticator):
            self.reauth.reset()
        logger.info("Logged out")

    async def verify(self) -> Any:
        return await self.dispatch(VERIFY_ENDPOINT)

    async def _refresh_tokens(self, refresh_token: str) -> tuple[str, str | None] | None:
        """Call the refresh endpoint once, bypassing retries and recovery."""
        url = await self._url(REFRESH_ENDPOINT)
        options = RequestOptions(method="POST", body={"refreshToken": refresh_token})
        response = await self._send("POST", url, {"Content-Type": "application/json"}, options)
        if not response.is_success:
            logger.info("Refresh endpoint answered %s", response.status_code)
            return None
        body = parse_body(response)
        if not isinstance(body, Mapping) or not body.get("token"):
            return None
        new_refresh = body.get("refreshToken")
        return str(body["token"]), str(new_refresh) if new_refresh else None


async def create_client(
    *,
    storage: AsyncKeyValueStorage,
    config: ClientConfig | None = None,
    notification_sink: NotificationSink | None = None,
    reauth: ReauthCallback | None = None,
    default_login: tuple[str, str] | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
    sleep: Sleep = asyncio.sleep,
) -> ApiClient:
    """Create a client whose credentials are loaded from ``storage``.

    Args:
        storage: Durable key-value storage for tokens and the base URL override
        config: Client settings (default: ``ClientConfig()``)
        notification_sink: Receives advisory notifications
        reauth: Last-resort re-authentication collaborator
        default_login: ``(identifier, password)`` for a ``StoredLoginAuthenticator``;
            ignored when ``reauth`` is given
        transport: httpx transport override, mostly for tests
        sleep: Backoff sleep override, mostly for tests

    Returns:
        A ready ``ApiClient``
    """
    credentials = await CredentialStore.load(storage)
    client = ApiClient(
        credentials,
        config=config,
        storage=storage,
        notification_sink=notification_sink,
        reauth=reauth,
        transport=transport,
        sleep=sleep,
    )
    if reauth is None and default_login is not None:
        identifier, password = default_login
        client.reauth = StoredLoginAuthenticator(
            client.login_once, credentials, identifier, password
        )
    return client


__all__ = ["ApiClient", "create_client", "parse_body"]
