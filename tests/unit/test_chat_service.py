"""
Unit tests for ChatService

Tests the transcript store with a fake AI provider and an in-memory gateway.
"""
import asyncio
import pytest
from unittest.mock import AsyncMock
from core.exceptions import (
    AIServiceError,
    BackendTimeoutError,
    ChatNotFoundError,
    EmptyMessageError,
    PermissionDeniedError,
    ResponseFormatError,
)
from services.chat_service import (
    CHAT_HISTORY,
    NIL_UUID,
    TEST_PROMPT,
    ChatService,
    build_profile_prompt,
    normalize_chat,
    preview,
)


class TestChatService:
    """Test ChatService"""

    @pytest.fixture
    def service(self, fake_ai, gateway):
        return ChatService(fake_ai, gateway)

    @pytest.mark.asyncio
    async def test_send_persists_exchange(self, service, fake_ai, gateway):
        result = await service.send("u1", "  What is NEXIA?  ")

        assert result["reply"] == fake_ai.reply
        assert result["saved"] is True
        assert fake_ai.prompts == ["What is NEXIA?"]

        row = gateway.tables[CHAT_HISTORY][0]
        assert row["user_id"] == "u1"
        assert row["user_message"] == "What is NEXIA?"
        assert row["ai_response"] == fake_ai.reply
        assert row["last_message"] == "What is NEXIA?"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", "\n\t", None])
    async def test_blank_message_rejected_locally(self, service, fake_ai, gateway, text):
        with pytest.raises(EmptyMessageError):
            await service.send("u1", text)

        assert fake_ai.prompts == []
        assert gateway.calls == []

    @pytest.mark.asyncio
    async def test_malformed_reply_is_not_persisted(self, service, fake_ai, gateway):
        fake_ai.error = ResponseFormatError()

        with pytest.raises(ResponseFormatError) as exc_info:
            await service.send("u1", "hello")

        assert exc_info.value.details["retryable"] is True
        assert CHAT_HISTORY not in gateway.tables

    @pytest.mark.asyncio
    async def test_transport_failure_is_not_persisted(self, service, fake_ai, gateway):
        fake_ai.error = AIServiceError("API request failed: 503", status=503)

        with pytest.raises(AIServiceError):
            await service.send("u1", "hello")
        assert CHAT_HISTORY not in gateway.tables

    @pytest.mark.asyncio
    async def test_persistence_failure_still_returns_reply(self, service, fake_ai, gateway):
        gateway.fail_on.add("insert")

        result = await service.send("u1", "hello")

        assert result["reply"] == fake_ai.reply
        assert result["saved"] is False
        assert result["chat"] is None

    @pytest.mark.asyncio
    async def test_list_recent_newest_first_with_legacy_columns(self, service, gateway):
        gateway.tables[CHAT_HISTORY] = [
            {"id": "a", "user_id": "u1", "message": "old q", "response": "old a",
             "created_at": "2024-01-01T00:00:00"},
            {"id": "b", "user_id": "u1", "user_message": "new q", "ai_response": "new a",
             "created_at": "2024-02-01T00:00:00"},
            {"id": "c", "user_id": "u2", "user_message": "other", "ai_response": "x",
             "created_at": "2024-03-01T00:00:00"},
        ]

        chats = await service.list_recent("u1", limit=10)

        assert [c["id"] for c in chats] == ["b", "a"]
        assert chats[1]["user_message"] == "old q"
        assert chats[1]["ai_response"] == "old a"

    @pytest.mark.asyncio
    async def test_list_recent_respects_limit(self, service, gateway):
        gateway.tables[CHAT_HISTORY] = [
            {"id": str(i), "user_id": "u1", "created_at": f"2024-01-0{i}"} for i in range(1, 6)
        ]
        chats = await service.list_recent("u1", limit=2)
        assert [c["id"] for c in chats] == ["5", "4"]

    @pytest.mark.asyncio
    async def test_delete_own_chat(self, service, gateway):
        gateway.tables[CHAT_HISTORY] = [{"id": "c1", "user_id": "u1"}]

        await service.delete("u1", "c1")

        assert gateway.tables[CHAT_HISTORY] == []

    @pytest.mark.asyncio
    async def test_delete_missing_chat_never_calls_delete(self, service, gateway):
        with pytest.raises(ChatNotFoundError):
            await service.delete("u1", "missing")
        assert "delete:chat_history" not in gateway.calls

    @pytest.mark.asyncio
    async def test_delete_foreign_chat_refused(self, service, gateway):
        gateway.tables[CHAT_HISTORY] = [{"id": "c1", "user_id": "someone-else"}]

        with pytest.raises(PermissionDeniedError):
            await service.delete("u1", "c1")

        assert "delete:chat_history" not in gateway.calls
        assert len(gateway.tables[CHAT_HISTORY]) == 1

    @pytest.mark.asyncio
    async def test_delete_timeout(self, fake_ai, gateway):
        async def slow_delete(table, filters):
            await asyncio.sleep(1)
            return 1

        gateway.tables[CHAT_HISTORY] = [{"id": "c1", "user_id": "u1"}]
        gateway.delete = slow_delete
        service = ChatService(fake_ai, gateway, delete_timeout=0.01)

        with pytest.raises(BackendTimeoutError) as exc_info:
            await service.delete("u1", "c1")
        assert exc_info.value.status_code == 504

    @pytest.mark.asyncio
    async def test_test_connection(self, service, fake_ai):
        assert await service.test_connection() is True
        assert fake_ai.prompts == [TEST_PROMPT]

        fake_ai.error = AIServiceError("down")
        assert await service.test_connection() is False

    @pytest.mark.asyncio
    async def test_check_permissions(self, service, gateway):
        gateway.delete = AsyncMock(return_value=0)

        result = await service.check_permissions("u1")

        assert result == {"can_select": True, "can_delete": True}
        gateway.delete.assert_awaited_once_with(CHAT_HISTORY, {"id": NIL_UUID, "user_id": "u1"})

    @pytest.mark.asyncio
    async def test_check_permissions_reports_failures(self, service, gateway):
        gateway.fail_on.update({"select", "delete"})
        result = await service.check_permissions("u1")
        assert result == {"can_select": False, "can_delete": False}

    @pytest.mark.asyncio
    async def test_analyze_profile(self, service, fake_ai):
        reply = await service.analyze_profile({"full_name": "Jane", "bio": "Engineer"})

        assert reply == fake_ai.reply
        prompt = fake_ai.prompts[0]
        assert "Name: Jane" in prompt
        assert "Skills: Not provided" in prompt
        assert "4. Areas for improvement" in prompt


def test_preview_truncates_long_messages():
    assert preview("short") == "short"
    assert preview("x" * 100) == "x" * 100
    assert preview("x" * 101) == "x" * 100 + "..."


def test_normalize_prefers_current_columns():
    row = {"id": "1", "user_message": "new", "message": "old", "ai_response": "", "response": "r"}
    chat = normalize_chat(row)
    assert chat["user_message"] == "new"
    assert chat["ai_response"] == "r"


def test_profile_prompt_fallbacks():
    prompt = build_profile_prompt({})
    assert prompt.count("Not provided") == 5
