"""Tests for client configuration and base URL resolution."""

import pytest

from apilink import AsyncMemoryStorage, ClientConfig, normalize_base_url, resolve_base_url
from apilink.config import BASE_URL_ENV_VAR, DEFAULT_BASE_URL


class TestNormalizeBaseUrl:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("http://host:3001", "http://host:3001/api"),
            ("http://host:3001/", "http://host:3001/api"),
            ("http://host:3001/api", "http://host:3001/api"),
            ("http://host:3001/api/", "http://host:3001/api"),
            ("http://host:3001/api/api", "http://host:3001/api"),
            ("  https://shop.example.com/v2  ", "https://shop.example.com/v2/api"),
        ],
    )
    def test_single_api_prefix(self, raw: str, expected: str) -> None:
        """Test that base URLs end in exactly one /api."""
        assert normalize_base_url(raw) == expected


class TestResolveBaseUrl:
    async def test_runtime_override_first(self) -> None:
        """Test that the runtime override is used first."""
        storage = AsyncMemoryStorage({"apiBaseUrl": "http://saved"})
        assert await resolve_base_url("http://runtime", storage) == "http://runtime/api"

    async def test_persisted_override_second(self) -> None:
        """Test that the persisted override comes next."""
        storage = AsyncMemoryStorage({"apiBaseUrl": "http://saved"})
        assert await resolve_base_url(None, storage) == "http://saved/api"

    async def test_environment_then_default(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test the environment variable, then the default."""
        monkeypatch.setenv(BASE_URL_ENV_VAR, "http://env-host")
        assert await resolve_base_url(None, AsyncMemoryStorage()) == "http://env-host/api"

        monkeypatch.delenv(BASE_URL_ENV_VAR)
        assert await resolve_base_url(None, None) == DEFAULT_BASE_URL


class TestClientConfig:
    def test_defaults(self) -> None:
        """Test default settings."""
        config = ClientConfig()
        assert config.timeout == "30s"
        assert config.retries == 3
        assert config.retry_base_delay == "1s"

    def test_invalid_duration_rejected(self) -> None:
        """Test rejecting a malformed duration."""
        with pytest.raises(ValueError, match="Invalid duration"):
            ClientConfig(timeout="soon")

    def test_negative_retries_rejected(self) -> None:
        """Test rejecting negative retries."""
        with pytest.raises(ValueError):
            ClientConfig(retries=-1)

    def test_non_positive_cache_size_rejected(self) -> None:
        """Test rejecting a cache size below one."""
        with pytest.raises(ValueError):
            ClientConfig(cache_max_items=0)
