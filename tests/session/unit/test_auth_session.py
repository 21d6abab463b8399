from unittest.mock import AsyncMock

import pytest

from enums.storage_key import StorageKey
from exceptions.api import ApiRequestRejectedException
from models.user import AuthResponseDTO, UserDTO
from services.api_client import ApiClient
from services.auth_session import AuthSession


@pytest.fixture
def api_client():
    client = ApiClient(base_url="http://127.0.0.1:1/api")
    client.login = AsyncMock()
    client.register = AsyncMock()
    return client


@pytest.fixture
def auth(storage, api_client):
    return AuthSession(storage, api_client)


def auth_response(token="jwt-token") -> AuthResponseDTO:
    return AuthResponseDTO(success=True, token=token, user=UserDTO(id="U1", name="Asha", email="asha@example.com"))


@pytest.mark.asyncio
async def test_login_persists_session_and_sets_token(auth, api_client, storage):
    api_client.login.return_value = auth_response()

    user = await auth.login("asha@example.com", "secret")

    assert user.id == "U1"
    assert auth.is_authenticated
    assert api_client.token == "jwt-token"
    assert await storage.read(StorageKey.AUTH_TOKEN) == "jwt-token"
    assert (await storage.read_json(StorageKey.AUTH_USER))["email"] == "asha@example.com"


@pytest.mark.asyncio
async def test_register_starts_session(auth, api_client):
    api_client.register.return_value = auth_response("new-token")

    await auth.register("Asha", "asha@example.com", "secret")

    assert auth.token == "new-token"


@pytest.mark.asyncio
async def test_failed_login_changes_nothing(auth, api_client, storage):
    api_client.login.side_effect = ApiRequestRejectedException("/auth/login", 400, "Invalid credentials")

    with pytest.raises(ApiRequestRejectedException):
        await auth.login("asha@example.com", "wrong")

    assert not auth.is_authenticated
    assert api_client.token is None
    assert await storage.read(StorageKey.AUTH_TOKEN) is None


@pytest.mark.asyncio
async def test_restore_after_restart(auth, api_client, storage):
    api_client.login.return_value = auth_response()
    await auth.login("asha@example.com", "secret")

    fresh_client = ApiClient(base_url="http://127.0.0.1:1/api")
    restored = AuthSession(storage, fresh_client)
    user = await restored.restore()

    assert user.name == "Asha"
    assert fresh_client.token == "jwt-token"
    assert restored.is_authenticated


@pytest.mark.asyncio
async def test_restore_with_corrupt_profile_is_logged_out(auth, api_client, storage):
    await storage.write(StorageKey.AUTH_TOKEN, "jwt-token")
    await storage.write(StorageKey.AUTH_USER, "{broken")

    assert await auth.restore() is None
    assert not auth.is_authenticated
    assert api_client.token is None


@pytest.mark.asyncio
async def test_restore_without_token_stays_logged_out(auth, api_client, storage):
    await storage.write_json(StorageKey.AUTH_USER, {"id": "U1", "name": "Asha"})

    assert await auth.restore() is None
    assert api_client.token is None


@pytest.mark.asyncio
async def test_logout_clears_everything(auth, api_client, storage):
    api_client.login.return_value = auth_response()
    await auth.login("asha@example.com", "secret")

    await auth.logout()

    assert auth.user is None
    assert api_client.token is None
    assert await storage.read(StorageKey.AUTH_TOKEN) is None
    assert await storage.read(StorageKey.AUTH_USER) is None
