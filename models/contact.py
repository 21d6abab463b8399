from pydantic import BaseModel


class ContactMessageDTO(BaseModel):
    name: str
    email: str
    message: str
    phone: str | None = None
    subject: str | None = None
    source: str | None = None
