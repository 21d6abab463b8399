import json
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from db import get_db_session, session_commit
from enums.storage_key import StorageKey
from exceptions.storage import CorruptSnapshotException, StorageReadException, StorageWriteException
from repositories.storage import StorageRepository

logger = logging.getLogger(__name__)


def _key_name(key: StorageKey | str) -> str:
    return key.value if isinstance(key, StorageKey) else key


class KeyValueStorage:
    """
    Durable client-side key-value storage.

    Each call runs in its own session and commits before returning, so once a
    write returns the snapshot survives a process restart. SQLAlchemy errors
    never leave this class: they become StorageReadException /
    StorageWriteException.
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def read(self, key: StorageKey | str) -> str | None:
        key = _key_name(key)
        try:
            async with get_db_session(self._session_maker) as session:
                record = await StorageRepository.get(key, session)
        except SQLAlchemyError as e:
            logger.error(f"[Storage] Read of '{key}' failed: {e}")
            raise StorageReadException(key, str(e)) from e
        return record.value if record else None

    async def write(self, key: StorageKey | str, value: str) -> None:
        key = _key_name(key)
        try:
            async with get_db_session(self._session_maker) as session:
                await StorageRepository.put(key, value, session)
                await session_commit(session)
        except SQLAlchemyError as e:
            logger.error(f"[Storage] Write of '{key}' failed: {e}")
            raise StorageWriteException(key, str(e)) from e
        logger.debug(f"[Storage] Persisted '{key}' ({len(value)} bytes)")

    async def remove(self, key: StorageKey | str) -> None:
        key = _key_name(key)
        try:
            async with get_db_session(self._session_maker) as session:
                await StorageRepository.delete(key, session)
                await session_commit(session)
        except SQLAlchemyError as e:
            logger.error(f"[Storage] Delete of '{key}' failed: {e}")
            raise StorageWriteException(key, str(e)) from e

    async def read_json(self, key: StorageKey | str) -> Any | None:
        """
        Read and decode a JSON snapshot.

        Returns:
            Decoded value, or None when nothing is stored under the key

        Raises:
            CorruptSnapshotException: stored text is not valid JSON
        """
        raw = await self.read(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as e:
            raise CorruptSnapshotException(_key_name(key), str(e)) from e

    async def write_json(self, key: StorageKey | str, value: Any) -> None:
        await self.write(key, json.dumps(value, separators=(",", ":")))
