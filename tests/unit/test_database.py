"""
Unit tests for database setup and the SQL table gateway.

Runs the gateway against an in-memory SQLite database so the same queries
the local backend issues are exercised end to end.
"""
import pytest
from datetime import datetime, timezone
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock, Mock
from sqlalchemy.exc import SQLAlchemyError
from core.database import build_engine, create_db_and_tables, get_database_info, mask_database_url
from core.exceptions import BackendError
from providers.data_gateway import SQLTableGateway

MEMORY_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def sql_gateway():
    engine = build_engine(MEMORY_URL)
    await create_db_and_tables(engine)
    gateway = SQLTableGateway(engine)
    yield gateway
    await gateway.close()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_insert_and_select_profile(sql_gateway):
    """JSON columns come back as the structures that went in."""
    await sql_gateway.insert(
        "profiles",
        {
            "id": "u1",
            "full_name": "Jane Doe",
            "contact_info": {"email": "jane@example.com", "enabled": ["email"]},
            "not_a_column": "ignored",
        },
    )

    row = await sql_gateway.select_one("profiles", {"id": "u1"})

    assert row["full_name"] == "Jane Doe"
    assert row["contact_info"] == {"email": "jane@example.com", "enabled": ["email"]}
    assert row["is_public_profile"] is True
    assert "not_a_column" not in row


@pytest.mark.unit
@pytest.mark.asyncio
async def test_select_one_missing_returns_none(sql_gateway):
    assert await sql_gateway.select_one("profiles", {"id": "ghost"}) is None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_duplicate_primary_key_is_backend_error(sql_gateway):
    await sql_gateway.insert("profiles", {"id": "u1"})
    with pytest.raises(BackendError):
        await sql_gateway.insert("profiles", {"id": "u1"})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_returns_changed_rows(sql_gateway):
    await sql_gateway.insert("profiles", {"id": "u1", "title": "Old"})

    rows = await sql_gateway.update("profiles", {"id": "u1"}, {"title": "New"})

    assert [r["title"] for r in rows] == ["New"]
    assert await sql_gateway.update("profiles", {"id": "ghost"}, {"title": "x"}) == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_conflict_is_backend_error(sql_gateway):
    await sql_gateway.insert("profiles", {"id": "u1"})
    await sql_gateway.insert("profiles", {"id": "u2"})

    with pytest.raises(BackendError) as exc_info:
        await sql_gateway.update("profiles", {"id": "u2"}, {"id": "u1"})

    assert exc_info.value.details["operation"] == "update profiles"
    assert await sql_gateway.select_one("profiles", {"id": "u2"}) is not None


@pytest.mark.unit
@pytest.mark.asyncio
async def test_delete_commit_failure_is_backend_error(sql_gateway):
    result = Mock()
    result.all.return_value = [Mock()]
    session = Mock()
    session.exec = AsyncMock(return_value=result)
    session.delete = AsyncMock()
    session.commit = AsyncMock(side_effect=SQLAlchemyError("database is locked"))
    session.rollback = AsyncMock()
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=session)
    context.__aexit__ = AsyncMock(return_value=False)
    sql_gateway.session_factory = Mock(return_value=context)

    with pytest.raises(BackendError) as exc_info:
        await sql_gateway.delete("chat_history", {"id": "c1"})

    assert exc_info.value.details["reason"] == "database is locked"
    session.rollback.assert_awaited_once()


@pytest.mark.unit
@pytest.mark.asyncio
async def test_chat_ordering_and_delete(sql_gateway):
    january = datetime(2024, 1, 1, tzinfo=timezone.utc)
    february = datetime(2024, 2, 1, tzinfo=timezone.utc)
    first = await sql_gateway.insert(
        "chat_history", {"user_id": "u1", "user_message": "one", "created_at": january}
    )
    second = await sql_gateway.insert(
        "chat_history", {"user_id": "u1", "user_message": "two", "created_at": february}
    )
    await sql_gateway.insert("chat_history", {"user_id": "u2", "user_message": "other"})

    rows = await sql_gateway.select(
        "chat_history", {"user_id": "u1"}, order_by="created_at", descending=True
    )
    assert [r["id"] for r in rows] == [second["id"], first["id"]]

    deleted = await sql_gateway.delete("chat_history", {"id": first["id"], "user_id": "u1"})
    assert deleted == 1
    assert await sql_gateway.delete("chat_history", {"id": first["id"], "user_id": "u1"}) == 0


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unknown_table_and_column(sql_gateway):
    with pytest.raises(BackendError):
        await sql_gateway.select("comments")
    with pytest.raises(BackendError):
        await sql_gateway.select("profiles", {"nickname": "x"})


@pytest.mark.unit
@pytest.mark.asyncio
async def test_ping_and_database_info(sql_gateway):
    assert await sql_gateway.ping() is True

    info = await get_database_info(sql_gateway.engine, MEMORY_URL)
    assert info["connection_healthy"] is True
    assert info["database_type"] == "sqlite"


@pytest.mark.unit
def test_mask_database_url():
    assert (
        mask_database_url("postgresql+asyncpg://nexia:secret@db:5432/nexia")
        == "postgresql+asyncpg://***@db:5432/nexia"
    )
    assert mask_database_url(MEMORY_URL) == MEMORY_URL
