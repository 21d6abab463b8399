from datetime import datetime

from sqlalchemy import select, delete
from sqlalchemy.dialects.sqlite import insert
from sqlalchemy.ext.asyncio import AsyncSession

from db import session_execute
from models.storage_record import StorageRecord, StorageRecordDTO


class StorageRepository:
    @staticmethod
    async def get(key: str, session: AsyncSession) -> StorageRecordDTO | None:
        stmt = select(StorageRecord).where(StorageRecord.key == key)
        record = await session_execute(stmt, session)
        record = record.scalar()
        if record is None:
            return None
        return StorageRecordDTO.model_validate(record, from_attributes=True)

    @staticmethod
    async def put(key: str, value: str, session: AsyncSession) -> None:
        # Upsert: a snapshot key holds exactly one row
        now = datetime.now()
        stmt = insert(StorageRecord).values(key=key, value=value, updated_at=now)
        stmt = stmt.on_conflict_do_update(
            index_elements=[StorageRecord.key],
            set_={"value": value, "updated_at": now}
        )
        await session_execute(stmt, session)

    @staticmethod
    async def delete(key: str, session: AsyncSession) -> bool:
        stmt = delete(StorageRecord).where(StorageRecord.key == key)
        result = await session_execute(stmt, session)
        return result.rowcount > 0
