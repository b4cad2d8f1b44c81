"""
Support ticket submission.

Tickets are written once with status `pending`. Nothing in the service moves a
ticket to another status.
"""

import logging
from typing import Any, Dict

from core.models import utcnow
from core.validation import InputValidator
from providers.data_gateway import TableGateway

logger = logging.getLogger(__name__)

CONTACT_MESSAGES = "contact_messages"
PENDING = "pending"


class ContactService:
    def __init__(self, gateway: TableGateway):
        self.gateway = gateway

    async def submit(self, user_id: str, subject: str, message: str) -> Dict[str, Any]:
        subject = InputValidator.require_text("subject", subject, max_length=255)
        message = InputValidator.require_text("message", message)

        row = await self.gateway.insert(
            CONTACT_MESSAGES,
            {
                "user_id": user_id,
                "subject": subject,
                "message": message,
                "status": PENDING,
                "created_at": utcnow(),
            },
        )
        logger.info(f"Support ticket submitted by {user_id}")
        return row
