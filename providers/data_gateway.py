"""
Table Gateway Classes

CRUD access to the `profiles`, `chat_history` and `contact_messages` tables.
The gateway owns no data and applies no business rules; it only issues the
calls. Two implementations share one contract:

- `SupabaseTableGateway`: the hosted PostgREST API, called with the caller's
  access token so the backend's row-level security decides what is visible.
- `SQLTableGateway`: a local SQLModel database used for development and tests.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine
from sqlmodel import select

from core.database import build_session_factory
from core.exceptions import BackendError
from core.models import TABLE_MODELS
from providers.supabase_client import SupabaseHTTPClient

logger = logging.getLogger(__name__)

Row = Dict[str, Any]
Filters = Dict[str, Any]


class TableGateway(ABC):
    """Abstract base class for table access"""

    def for_user(self, access_token: Optional[str]) -> "TableGateway":
        """Gateway acting with the given caller's credentials"""
        return self

    @abstractmethod
    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        """Rows matching every equality filter"""
        pass

    async def select_one(self, table: str, filters: Filters) -> Optional[Row]:
        """First matching row, or None when nothing matches"""
        rows = await self.select(table, filters, limit=1)
        return rows[0] if rows else None

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        pass

    @abstractmethod
    async def update(self, table: str, filters: Filters, values: Row) -> List[Row]:
        pass

    @abstractmethod
    async def delete(self, table: str, filters: Filters) -> int:
        """Delete matching rows and return how many went away"""
        pass

    @abstractmethod
    async def ping(self) -> bool:
        pass

    async def close(self) -> None:
        pass


class SupabaseTableGateway(TableGateway):
    """Table gateway over the hosted PostgREST API"""

    def __init__(self, client: SupabaseHTTPClient, access_token: Optional[str] = None):
        self.client = client
        self.access_token = access_token

    def for_user(self, access_token: Optional[str]) -> "SupabaseTableGateway":
        return SupabaseTableGateway(self.client, access_token)

    @staticmethod
    def _filter_params(filters: Optional[Filters]) -> Dict[str, str]:
        params = {}
        for column, value in (filters or {}).items():
            if isinstance(value, bool):
                value = str(value).lower()
            params[column] = f"eq.{value}"
        return params

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        params = {"select": "*", **self._filter_params(filters)}
        if order_by:
            params["order"] = f"{order_by}.{'desc' if descending else 'asc'}"
        if limit is not None:
            params["limit"] = str(limit)

        rows = await self.client.request(
            "GET",
            f"/rest/v1/{table}",
            f"select {table}",
            access_token=self.access_token,
            params=params,
        )
        return rows or []

    async def insert(self, table: str, row: Row) -> Row:
        rows = await self.client.request(
            "POST",
            f"/rest/v1/{table}",
            f"insert {table}",
            access_token=self.access_token,
            json_body=[row],
            headers={"Prefer": "return=representation"},
        )
        if not rows:
            raise BackendError(f"insert {table}", "no row returned")
        return rows[0]

    async def update(self, table: str, filters: Filters, values: Row) -> List[Row]:
        rows = await self.client.request(
            "PATCH",
            f"/rest/v1/{table}",
            f"update {table}",
            access_token=self.access_token,
            params=self._filter_params(filters),
            json_body=values,
            headers={"Prefer": "return=representation"},
        )
        return rows or []

    async def delete(self, table: str, filters: Filters) -> int:
        rows = await self.client.request(
            "DELETE",
            f"/rest/v1/{table}",
            f"delete {table}",
            access_token=self.access_token,
            params=self._filter_params(filters),
            headers={"Prefer": "return=representation"},
        )
        return len(rows or [])

    async def ping(self) -> bool:
        try:
            await self.client.request("GET", "/rest/v1/", "ping")
            return True
        except BackendError as e:
            logger.warning(f"Backend ping failed: {e}")
            return False

    async def close(self) -> None:
        await self.client.close()


class SQLTableGateway(TableGateway):
    """Table gateway over a local SQLModel database"""

    def __init__(self, engine: AsyncEngine):
        self.engine = engine
        self.session_factory = build_session_factory(engine)

    @staticmethod
    def _model(table: str):
        try:
            return TABLE_MODELS[table]
        except KeyError:
            raise BackendError(f"access {table}", "unknown table")

    @staticmethod
    def _known(model, values: Row) -> Row:
        return {key: value for key, value in values.items() if key in model.model_fields}

    def _statement(self, model, filters: Optional[Filters]):
        statement = select(model)
        for column, value in (filters or {}).items():
            if column not in model.model_fields:
                raise BackendError(f"select {model.__tablename__}", f"unknown column {column}")
            statement = statement.where(getattr(model, column) == value)
        return statement

    async def select(
        self,
        table: str,
        filters: Optional[Filters] = None,
        order_by: Optional[str] = None,
        descending: bool = False,
        limit: Optional[int] = None,
    ) -> List[Row]:
        model = self._model(table)
        statement = self._statement(model, filters)
        if order_by:
            column = getattr(model, order_by)
            statement = statement.order_by(column.desc() if descending else column.asc())
        if limit is not None:
            statement = statement.limit(limit)

        async with self.session_factory() as session:
            result = await session.exec(statement)
            return [row.model_dump() for row in result.all()]

    async def insert(self, table: str, row: Row) -> Row:
        model = self._model(table)
        record = model(**self._known(model, row))
        async with self.session_factory() as session:
            session.add(record)
            try:
                await session.commit()
            except Exception as e:
                await session.rollback()
                raise BackendError(f"insert {table}", str(e))
            await session.refresh(record)
            return record.model_dump()

    async def update(self, table: str, filters: Filters, values: Row) -> List[Row]:
        model = self._model(table)
        changes = self._known(model, values)
        async with self.session_factory() as session:
            result = await session.exec(self._statement(model, filters))
            records = result.all()
            for record in records:
                for key, value in changes.items():
                    setattr(record, key, value)
                session.add(record)
            try:
                await session.commit()
            except Exception as e:
                await session.rollback()
                raise BackendError(f"update {table}", str(e))
            for record in records:
                await session.refresh(record)
            return [record.model_dump() for record in records]

    async def delete(self, table: str, filters: Filters) -> int:
        model = self._model(table)
        async with self.session_factory() as session:
            result = await session.exec(self._statement(model, filters))
            records = result.all()
            for record in records:
                await session.delete(record)
            try:
                await session.commit()
            except Exception as e:
                await session.rollback()
                raise BackendError(f"delete {table}", str(e))
            return len(records)

    async def ping(self) -> bool:
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.warning(f"Database ping failed: {e}")
            return False

    async def close(self) -> None:
        await self.engine.dispose()
