import uuid
import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import HTTPException

from config import TABLES, LOGO_TABLES
from core.crud_state import filter_records
from core.table_store import OrderBy, TableStore
from controllers.access_code_controller import normalize_code
from controllers.auth_controller import image_data_url

logger = logging.getLogger(__name__)


def get_table_config(table: str) -> dict:
    config = TABLES.get(table)
    if config is None:
        raise HTTPException(status_code=404, detail=f"Tabella '{table}' non trovata")
    return config


def _prepare(table: str, record: dict) -> dict:
    if table == "access_codes" and "code" in record:
        record["code"] = normalize_code(record["code"])
    return record


async def list_rows(
    store: TableStore,
    table: str,
    order_by: Optional[str] = None,
    ascending: bool = True,
    search: Optional[str] = None,
    filters: Optional[dict] = None,
) -> list:
    config = get_table_config(table)
    if order_by:
        order = OrderBy(column=order_by, ascending=ascending)
    else:
        column, asc = config["order"]
        order = OrderBy(column=column, ascending=asc)
    rows = await store.list(table, order, filters or None)
    return filter_records(rows, search or "", config["search"])


async def get_row(store: TableStore, table: str, key: str) -> dict:
    config = get_table_config(table)
    row = await store.get_by_key(table, config["key"], key)
    if not row:
        raise HTTPException(status_code=404, detail="Elemento non trovato")
    return row


async def create_row(store: TableStore, table: str, data: dict) -> dict:
    config = get_table_config(table)
    now = datetime.now(timezone.utc).isoformat()
    record = _prepare(table, dict(data))
    if not record.get(config["key"]):
        record[config["key"]] = str(uuid.uuid4())
    record.setdefault("created_at", now)
    record.setdefault("updated_at", now)
    return await store.insert(table, record)


async def update_row(store: TableStore, table: str, key: str, data: dict) -> dict:
    config = get_table_config(table)
    updates = _prepare(table, {k: v for k, v in data.items() if k != config["key"]})
    if not updates:
        raise HTTPException(status_code=400, detail="Nessun campo da aggiornare")
    updates["updated_at"] = datetime.now(timezone.utc).isoformat()
    matched = await store.update_by_key(table, updates, config["key"], key)
    if matched == 0:
        raise HTTPException(status_code=404, detail="Elemento non trovato")
    return await store.get_by_key(table, config["key"], key)


async def delete_row(store: TableStore, table: str, key: str) -> dict:
    config = get_table_config(table)
    deleted = await store.delete_by_key(table, config["key"], key)
    if deleted == 0:
        raise HTTPException(status_code=404, detail="Elemento non trovato")
    logger.info(f"Deleted {table}/{key}")
    return {"message": "Eliminato"}


async def update_logo(store: TableStore, table: str, key: str, file_bytes: Optional[bytes], content_type: Optional[str]) -> dict:
    """Replace the logo of a company or association; no file clears it."""
    if table not in LOGO_TABLES:
        raise HTTPException(status_code=400, detail="Questa tabella non supporta un logo")
    logo_url = image_data_url(file_bytes, content_type) if file_bytes else None
    return await update_row(store, table, key, {"logo_url": logo_url})
