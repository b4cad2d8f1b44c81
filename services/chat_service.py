"""
AI Assistant Chat Service.

This module provides the `ChatService`, which forwards a user's message to the
generative-AI provider and keeps a transcript of every exchange in the
`chat_history` table.

Key Components:
- `ChatService`: Sends messages, lists the recent transcript and deletes
  individual exchanges on behalf of one authenticated user.
- `AIProvider`: The service talks to the model only through this interface
  (in production `GeminiProvider`), one stateless turn per call.
- `TableGateway`: Transcript rows are read and written through the gateway,
  which in the hosted deployment enforces row-level security as well.

Architectural Design:
- Stateless Turns: No conversation context is sent upstream. The transcript is
  a record for the user, not memory for the model.
- Ownership Re-check: Deletion re-fetches the row and compares its owner
  before issuing the delete, so an id guessed by another user is refused
  locally instead of relying on backend policy alone.
- No Automatic Retries: Failures fail the current action. The only retry-like
  operation is the explicit `test_connection` probe.
"""

import asyncio
import logging
from typing import Any, Dict, List, Mapping

from core.exceptions import (
    BackendError,
    BackendTimeoutError,
    ChatNotFoundError,
    EmptyMessageError,
    PermissionDeniedError,
)
from core.models import utcnow
from providers.ai_provider import AIProvider
from providers.data_gateway import TableGateway

logger = logging.getLogger(__name__)

CHAT_HISTORY = "chat_history"
DELETE_TIMEOUT_SECONDS = 10.0
PREVIEW_LENGTH = 100
TEST_PROMPT = "Hello, this is a test message. Please respond with a simple greeting."
NIL_UUID = "00000000-0000-0000-0000-000000000000"


def preview(message: str) -> str:
    """First 100 characters of a message, with an ellipsis when cut"""
    if len(message) > PREVIEW_LENGTH:
        return message[:PREVIEW_LENGTH] + "..."
    return message


def normalize_chat(row: Mapping[str, Any]) -> Dict[str, Any]:
    """Map the legacy `message`/`response` columns onto the current names"""
    return {
        "id": row.get("id"),
        "user_id": row.get("user_id"),
        "user_message": row.get("user_message") or row.get("message") or "",
        "ai_response": row.get("ai_response") or row.get("response") or "",
        "last_message": row.get("last_message"),
        "created_at": row.get("created_at"),
    }


def build_profile_prompt(profile: Mapping[str, Any]) -> str:
    def field(name: str) -> str:
        return profile.get(name) or "Not provided"

    return (
        "Please analyze this professional profile and provide suggestions for improvement:\n"
        f"Name: {field('full_name')}\n"
        f"Skills: {field('skills')}\n"
        f"Education: {field('education')}\n"
        f"Experience: {field('experience')}\n"
        f"Bio: {field('bio')}\n"
        "\n"
        "Please provide specific suggestions for:\n"
        "1. Profile completeness\n"
        "2. Skills presentation\n"
        "3. Professional image\n"
        "4. Areas for improvement"
    )


class ChatService:
    """Service that relays chat turns to the AI provider and stores them"""

    def __init__(
        self,
        ai_provider: AIProvider,
        gateway: TableGateway,
        delete_timeout: float = DELETE_TIMEOUT_SECONDS,
    ):
        self.ai_provider = ai_provider
        self.gateway = gateway
        self.delete_timeout = delete_timeout

    async def send(self, user_id: str, text: str) -> Dict[str, Any]:
        """
        Forward a message and persist the exchange.

        Args:
            user_id: Owner of the transcript
            text: Message typed by the user

        Returns:
            dict: The reply text and, when stored, the transcript row

        Raises:
            EmptyMessageError: Blank input; nothing is sent upstream
            AIServiceError / ResponseFormatError: The model call failed;
                nothing is persisted
        """
        if not isinstance(text, str) or not text.strip():
            raise EmptyMessageError()

        message = text.strip()
        reply = await self.ai_provider.generate(message)

        row = None
        try:
            row = await self.gateway.insert(
                CHAT_HISTORY,
                {
                    "user_id": user_id,
                    "user_message": message,
                    "ai_response": reply,
                    "last_message": preview(message),
                    "created_at": utcnow(),
                },
            )
        except BackendError as e:
            # the reply is still worth showing even if the transcript write failed
            logger.error(f"Error saving chat history for {user_id}: {e}")

        return {
            "reply": reply,
            "chat": normalize_chat(row) if row else None,
            "saved": row is not None,
        }

    async def list_recent(self, user_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent exchanges first"""
        rows = await self.gateway.select(
            CHAT_HISTORY,
            {"user_id": user_id},
            order_by="created_at",
            descending=True,
            limit=limit,
        )
        return [normalize_chat(row) for row in rows]

    async def delete(self, user_id: str, chat_id: str) -> None:
        """
        Delete one exchange after confirming the caller owns it.

        Raises:
            ChatNotFoundError: No such row is visible to the caller
            PermissionDeniedError: The row belongs to another user
            BackendTimeoutError: The delete did not finish in time
        """
        row = await self.gateway.select_one(CHAT_HISTORY, {"id": chat_id})
        if row is None:
            raise ChatNotFoundError(chat_id)
        if row.get("user_id") != user_id:
            logger.warning(
                f"User {user_id} attempted to delete chat {chat_id} owned by another user"
            )
            raise PermissionDeniedError("chat", chat_id)

        try:
            await asyncio.wait_for(
                self.gateway.delete(CHAT_HISTORY, {"id": chat_id, "user_id": user_id}),
                timeout=self.delete_timeout,
            )
        except asyncio.TimeoutError:
            raise BackendTimeoutError("delete chat", self.delete_timeout)

        logger.info(f"Deleted chat {chat_id} for user {user_id}")

    async def test_connection(self) -> bool:
        """Send a fixed greeting; report whether the model answered"""
        try:
            await self.ai_provider.generate(TEST_PROMPT)
            return True
        except Exception as e:
            logger.error(f"Connection test failed: {e}")
            return False

    async def check_permissions(self, user_id: str) -> Dict[str, bool]:
        """Probe whether the caller may read and delete transcript rows"""
        result = {"can_select": False, "can_delete": False}

        try:
            await self.gateway.select(CHAT_HISTORY, {"user_id": user_id}, limit=1)
            result["can_select"] = True
        except BackendError as e:
            logger.warning(f"Select permission check failed for {user_id}: {e}")

        try:
            await self.gateway.delete(CHAT_HISTORY, {"id": NIL_UUID, "user_id": user_id})
            result["can_delete"] = True
        except BackendError as e:
            logger.warning(f"Delete permission check failed for {user_id}: {e}")

        return result

    async def analyze_profile(self, profile: Mapping[str, Any]) -> str:
        """Ask the model for improvement suggestions; not stored in the transcript"""
        return await self.ai_provider.generate(build_profile_prompt(profile))
