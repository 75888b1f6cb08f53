"""Tests for package exports."""


def test_public_api_available() -> None:
    """Test that the public API is importable from the package root."""
    from apilink import (
        ApiClient,
        ApiError,
        AuthRecovery,
        ClientConfig,
        CredentialStore,
        ErrorKind,
        RequestOptions,
        ResponseCache,
        StoredLoginAuthenticator,
        classify,
        create_client,
        with_retry,
    )

    # Just verify they're importable
    assert ApiClient is not None
    assert ApiError is not None
    assert AuthRecovery is not None
    assert ClientConfig is not None
    assert CredentialStore is not None
    assert ErrorKind is not None
    assert RequestOptions is not None
    assert ResponseCache is not None
    assert StoredLoginAuthenticator is not None
    assert classify is not None
    assert create_client is not None
    assert with_retry is not None


async def test_create_client_loads_credentials_and_default_login() -> None:
    """Test that the public API is importable from the package."""
    from apilink import AsyncMemoryStorage, StoredLoginAuthenticator, create_client

    storage = AsyncMemoryStorage({"authToken": "a", "refreshToken": "r"})
    client = await create_client(storage=storage, default_login=("admin", "pw"))
    try:
        assert client.credentials.access_token == "a"
        assert isinstance(client.reauth, StoredLoginAuthenticator)
    finally:
        await client.aclose()
