"""
Table store capability used by everything that reads or writes rows by table name.

Callers only see list / insert / update_by_key / delete_by_key; the concrete
query language (MongoDB via motor, or the HTTP table API via httpx) stays here.
Every failure is raised as DataServiceError.
"""
import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel
from pymongo.errors import PyMongoError

from config import TABLES

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class OrderBy(BaseModel):
    column: str
    ascending: bool = True


class DataServiceError(Exception):
    """Any failure reported by the remote data service."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class TableStore:
    async def list(self, table: str, order_by: Optional[OrderBy] = None, filters: Optional[Record] = None) -> List[Record]:
        raise NotImplementedError

    async def insert(self, table: str, record: Record) -> Record:
        raise NotImplementedError

    async def update_by_key(self, table: str, record: Record, key_field: str, key_value: Any) -> int:
        raise NotImplementedError

    async def delete_by_key(self, table: str, key_field: str, key_value: Any) -> int:
        raise NotImplementedError

    async def get_by_key(self, table: str, key_field: str, key_value: Any) -> Optional[Record]:
        rows = await self.list(table, filters={key_field: key_value})
        return rows[0] if rows else None


class MongoTableStore(TableStore):
    def __init__(self, database):
        self.db = database

    async def list(self, table, order_by=None, filters=None):
        try:
            cursor = self.db[table].find(filters or {}, {"_id": 0})
            if order_by:
                cursor = cursor.sort(order_by.column, 1 if order_by.ascending else -1)
            return await cursor.to_list(None)
        except PyMongoError as e:
            logger.error(f"Select on '{table}' failed: {e}")
            raise DataServiceError(f"Select on '{table}' failed") from e

    async def insert(self, table, record):
        doc = dict(record)
        try:
            await self.db[table].insert_one(doc)
        except PyMongoError as e:
            logger.error(f"Insert into '{table}' failed: {e}")
            raise DataServiceError(f"Insert into '{table}' failed") from e
        doc.pop("_id", None)
        return doc

    async def update_by_key(self, table, record, key_field, key_value):
        try:
            result = await self.db[table].update_one({key_field: key_value}, {"$set": dict(record)})
        except PyMongoError as e:
            logger.error(f"Update on '{table}' failed: {e}")
            raise DataServiceError(f"Update on '{table}' failed") from e
        return result.matched_count

    async def delete_by_key(self, table, key_field, key_value):
        try:
            result = await self.db[table].delete_one({key_field: key_value})
        except PyMongoError as e:
            logger.error(f"Delete on '{table}' failed: {e}")
            raise DataServiceError(f"Delete on '{table}' failed") from e
        return result.deleted_count

    async def get_by_key(self, table, key_field, key_value):
        try:
            return await self.db[table].find_one({key_field: key_value}, {"_id": 0})
        except PyMongoError as e:
            logger.error(f"Select on '{table}' failed: {e}")
            raise DataServiceError(f"Select on '{table}' failed") from e


class HttpTableStore(TableStore):
    """Talks to the /api/tables endpoints of a running backend.

    Equality filters are sent as query parameters, so they are compared as strings.
    Rows are addressed by the table's configured key field only.
    """

    def __init__(self, base_url: str, access_token: Optional[str] = None, timeout: float = 15.0, transport=None):
        headers = {"Authorization": f"Bearer {access_token}"} if access_token else {}
        self.client = httpx.AsyncClient(base_url=base_url, headers=headers, timeout=timeout, transport=transport)

    async def _request(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            resp = await self.client.request(method, url, **kwargs)
            resp.raise_for_status()
            return resp
        except httpx.HTTPStatusError as e:
            try:
                detail = e.response.json().get("detail", e.response.text)
            except (ValueError, AttributeError):
                detail = e.response.text
            logger.error(f"{method} {url} returned {e.response.status_code}: {detail}")
            raise DataServiceError(str(detail), e.response.status_code) from e
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise DataServiceError(f"Cannot reach data service: {e}") from e

    @staticmethod
    def _json(resp: httpx.Response):
        try:
            return resp.json()
        except ValueError as e:
            logger.error(f"{resp.request.method} {resp.request.url} returned a non-JSON body: {e}")
            raise DataServiceError("Invalid response from data service", resp.status_code) from e

    @staticmethod
    def _check_key(table: str, key_field: str):
        expected = TABLES.get(table, {}).get("key", "id")
        if key_field != expected:
            raise DataServiceError(f"Table '{table}' is addressed by '{expected}', not '{key_field}'")

    async def list(self, table, order_by=None, filters=None):
        params = {k: str(v) for k, v in (filters or {}).items()}
        if order_by:
            params["order_by"] = order_by.column
            params["ascending"] = "true" if order_by.ascending else "false"
        resp = await self._request("GET", f"/api/tables/{table}", params=params)
        return self._json(resp)

    async def insert(self, table, record):
        resp = await self._request("POST", f"/api/tables/{table}", json=record)
        return self._json(resp)

    async def update_by_key(self, table, record, key_field, key_value):
        self._check_key(table, key_field)
        await self._request("PATCH", f"/api/tables/{table}/{key_value}", json=record)
        return 1

    async def delete_by_key(self, table, key_field, key_value):
        self._check_key(table, key_field)
        await self._request("DELETE", f"/api/tables/{table}/{key_value}")
        return 1

    async def aclose(self):
        await self.client.aclose()
