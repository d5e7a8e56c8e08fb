from typing import Any, Dict, Optional
from fastapi import APIRouter, Depends, Request, UploadFile, File, Body
from models.auth import Profile, UserRole
from core.auth import check_role
from core.table_store import TableStore
from database import get_table_store
from controllers import table_controller

router = APIRouter(prefix="/tables", tags=["tables"])

super_admin_only = check_role([UserRole.SUPER_ADMIN])

RESERVED_PARAMS = {"order_by", "ascending", "search"}


@router.get("/{table}")
async def list_rows(
    table: str,
    request: Request,
    order_by: Optional[str] = None,
    ascending: bool = True,
    search: Optional[str] = None,
    store: TableStore = Depends(get_table_store),
    current_user: Profile = Depends(super_admin_only),
):
    filters = {k: v for k, v in request.query_params.items() if k not in RESERVED_PARAMS}
    return await table_controller.list_rows(store, table, order_by, ascending, search, filters)


@router.get("/{table}/{key}")
async def get_row(table: str, key: str, store: TableStore = Depends(get_table_store), current_user: Profile = Depends(super_admin_only)):
    return await table_controller.get_row(store, table, key)


@router.post("/{table}")
async def create_row(table: str, data: Dict[str, Any] = Body(...), store: TableStore = Depends(get_table_store), current_user: Profile = Depends(super_admin_only)):
    return await table_controller.create_row(store, table, data)


@router.patch("/{table}/{key}")
async def update_row(table: str, key: str, data: Dict[str, Any] = Body(...), store: TableStore = Depends(get_table_store), current_user: Profile = Depends(super_admin_only)):
    return await table_controller.update_row(store, table, key, data)


@router.delete("/{table}/{key}")
async def delete_row(table: str, key: str, store: TableStore = Depends(get_table_store), current_user: Profile = Depends(super_admin_only)):
    return await table_controller.delete_row(store, table, key)


@router.post("/{table}/{key}/logo")
async def upload_logo(table: str, key: str, file: UploadFile = File(...), store: TableStore = Depends(get_table_store), current_user: Profile = Depends(super_admin_only)):
    file_bytes = await file.read()
    return await table_controller.update_logo(store, table, key, file_bytes, file.content_type)


@router.delete("/{table}/{key}/logo")
async def remove_logo(table: str, key: str, store: TableStore = Depends(get_table_store), current_user: Profile = Depends(super_admin_only)):
    return await table_controller.update_logo(store, table, key, None, None)
