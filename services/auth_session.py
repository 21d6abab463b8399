import logging

from pydantic import ValidationError

from enums.storage_key import StorageKey
from exceptions.storage import CorruptSnapshotException
from models.user import AuthResponseDTO, UserDTO
from services.api_client import ApiClient
from services.storage import KeyValueStorage

logger = logging.getLogger(__name__)


class AuthSession:
    """
    Logged-in user and bearer token, persisted across restarts.

    The API client is the only holder of the live token; this class keeps the
    durable copy in step with it.
    """

    def __init__(self, storage: KeyValueStorage, api_client: ApiClient):
        self._storage = storage
        self._api_client = api_client
        self._user: UserDTO | None = None
        self._restored = False

    @property
    def user(self) -> UserDTO | None:
        return self._user

    @property
    def token(self) -> str | None:
        return self._api_client.token

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None and bool(self._api_client.token)

    async def restore(self) -> UserDTO | None:
        """Load the persisted session once; later calls return the cached user."""
        if self._restored:
            return self._user
        self._restored = True

        token = await self._storage.read(StorageKey.AUTH_TOKEN)
        try:
            raw_user = await self._storage.read_json(StorageKey.AUTH_USER)
            user = UserDTO.model_validate(raw_user) if raw_user is not None else None
        except (CorruptSnapshotException, ValidationError) as e:
            logger.warning(f"[Auth] Stored user profile is unreadable, treating session as logged out: {e}")
            return None

        if token and user is not None:
            self._user = user
            self._api_client.set_token(token)
            logger.info(f"[Auth] Restored session for user {user.id}")
        return self._user

    async def login(self, email: str, password: str) -> UserDTO:
        response = await self._api_client.login(email, password)
        await self._start(response)
        return response.user

    async def register(self, name: str, email: str, password: str) -> UserDTO:
        response = await self._api_client.register(name, email, password)
        await self._start(response)
        return response.user

    async def _start(self, response: AuthResponseDTO) -> None:
        await self._storage.write(StorageKey.AUTH_TOKEN, response.token)
        await self._storage.write_json(StorageKey.AUTH_USER, response.user.model_dump(mode="json", by_alias=True))
        self._user = response.user
        self._restored = True
        self._api_client.set_token(response.token)
        logger.info(f"[Auth] Signed in user {response.user.id}")

    async def logout(self) -> None:
        await self._storage.remove(StorageKey.AUTH_TOKEN)
        await self._storage.remove(StorageKey.AUTH_USER)
        user_id = self._user.id if self._user else None
        self._user = None
        self._api_client.remove_token()
        logger.info(f"[Auth] Signed out user {user_id}")
