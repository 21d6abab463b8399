import logging
import re

import config
from exceptions.contact import InvalidContactMessageException
from models.contact import ContactMessageDTO
from services.api_client import ApiClient

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


class ContactService:

    def __init__(self, api_client: ApiClient):
        self._api_client = api_client

    @staticmethod
    def build_message(
        name: str | None,
        email: str | None,
        message: str | None,
        phone: str | None = None,
        subject: str | None = None
    ) -> ContactMessageDTO:
        """
        Validate and normalize a contact form.

        Raises:
            InvalidContactMessageException: with one entry per invalid field
        """
        name = (name or "").strip()
        email = (email or "").strip()
        message = (message or "").strip()

        errors = {}
        if not name:
            errors["name"] = "Name is required"
        if not email:
            errors["email"] = "Email is required"
        elif not EMAIL_PATTERN.match(email):
            errors["email"] = "Email is invalid"
        if not message:
            errors["message"] = "Message is required"
        if errors:
            raise InvalidContactMessageException(errors)

        return ContactMessageDTO(
            name=name,
            email=email,
            message=message,
            phone=(phone or "").strip() or None,
            subject=(subject or "").strip() or None,
            source=config.CONTACT_SOURCE
        )

    async def submit(
        self,
        name: str | None,
        email: str | None,
        message: str | None,
        phone: str | None = None,
        subject: str | None = None
    ) -> dict:
        contact_message = self.build_message(name, email, message, phone, subject)
        response = await self._api_client.submit_contact(contact_message)
        logger.info(f"[Contact] Message from {contact_message.email} submitted")
        return response
