# A storage record is one named durable snapshot of client state (cart, wishlist,
# auth user, auth token, promo). The value is the JSON text of the snapshot; the
# owning service decodes and validates it on load.
from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, String, Text, DateTime, func

from models.base import Base


class StorageRecord(Base):
    __tablename__ = "storage_records"

    key = Column(String(100), primary_key=True)
    value = Column(Text, nullable=False)
    updated_at = Column(DateTime, nullable=False, default=func.now(), onupdate=func.now())


class StorageRecordDTO(BaseModel):
    key: str
    value: str
    updated_at: datetime | None = None
