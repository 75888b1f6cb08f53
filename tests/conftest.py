"""Shared pytest fixtures."""

from collections.abc import AsyncIterator, Iterator

import pytest
import respx

from apilink import (
    ApiClient,
    AsyncMemoryStorage,
    ClientConfig,
    CredentialStore,
    Notification,
)

BASE_URL = "http://test.local/api"


class NotificationRecorder:
    """Notification sink that keeps everything it receives."""

    def __init__(self) -> None:
        self.notifications: list[Notification] = []

    def __call__(self, notification: Notification) -> None:
        self.notifications.append(notification)


class SleepRecorder:
    """Stand-in for asyncio.sleep that records delays instead of waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeReauth:
    """Re-authentication collaborator with a fixed answer."""

    def __init__(self, result: bool, credentials: CredentialStore | None = None) -> None:
        self.result = result
        self.credentials = credentials
        self.calls = 0

    async def ensure_authenticated(self) -> bool:
        self.calls += 1
        if self.result and self.credentials is not None:
            await self.credentials.set_tokens("reauth-token")
        return self.result


@pytest.fixture
def storage() -> AsyncMemoryStorage:
    """Create a fresh AsyncMemoryStorage for each test."""
    return AsyncMemoryStorage()


@pytest.fixture
def credentials(storage: AsyncMemoryStorage) -> CredentialStore:
    return CredentialStore(storage)


@pytest.fixture
def sink() -> NotificationRecorder:
    return NotificationRecorder()


@pytest.fixture
def sleeper() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def api_mock() -> Iterator[respx.MockRouter]:
    """Mock every HTTP call made through httpx."""
    with respx.mock(assert_all_called=False) as mock:
        yield mock


@pytest.fixture
async def client(
    credentials: CredentialStore,
    sink: NotificationRecorder,
    sleeper: SleepRecorder,
) -> AsyncIterator[ApiClient]:
    """Create an ApiClient pointed at the mocked backend."""
    api = ApiClient(
        credentials,
        config=ClientConfig(base_url=BASE_URL),
        notification_sink=sink,
        sleep=sleeper,
    )
    yield api
    await api.aclose()


@pytest.fixture
def reauth_factory() -> type[FakeReauth]:
    return FakeReauth
