"""
CrudState binds one list/detail admin view to one table of the data service.

It owns the loaded rows, the client-side search, the selection and dialog
flags, and the create/update/delete round trips. Store failures never escape:
they are logged and turned into a notification, and the operation reports
False. Overlapping calls are not serialized; whichever fetch settles last
decides `items`.
"""
import logging
from typing import Any, Callable, Dict, List, Optional, Sequence

from core.notifications import Notifier
from core.table_store import DataServiceError, OrderBy, TableStore

logger = logging.getLogger(__name__)

Record = Dict[str, Any]


class CrudState:
    def __init__(
        self,
        store: TableStore,
        table_name: str,
        order_by: Optional[OrderBy] = None,
        search_fields: Optional[Sequence[str]] = None,
        fetch_on_mount: bool = True,
        id_field: str = "id",
        notifier: Optional[Notifier] = None,
        update_on_falsy_id: bool = False,
    ):
        self.store = store
        self.table_name = table_name
        self.order_by = order_by
        self.search_fields = list(search_fields or [])
        self.fetch_on_mount = fetch_on_mount
        self.id_field = id_field
        self.notifier = notifier or Notifier()
        # False keeps the historical rule: a selected row whose key is 0 or "" is inserted as new
        self.update_on_falsy_id = update_on_falsy_id

        self.items: List[Record] = []
        self.loading = True
        self.saving = False
        self.search_term = ""
        self.selected_item: Optional[Record] = None
        self.dialog_open = False
        self.delete_dialog_open = False

        self._alive = True

    # ── Lifecycle ─────────────────────────────────────────

    async def mount(self):
        if self.fetch_on_mount:
            await self.fetch_items()

    def unmount(self):
        """Responses that settle after this point no longer touch state."""
        self._alive = False

    @property
    def alive(self) -> bool:
        return self._alive

    # ── Setters ───────────────────────────────────────────

    def set_search_term(self, value: str):
        self.search_term = value

    def set_selected_item(self, item: Optional[Record]):
        self.selected_item = item

    def set_dialog_open(self, open_: bool):
        self.dialog_open = open_

    def set_delete_dialog_open(self, open_: bool):
        self.delete_dialog_open = open_

    # ── Derived ───────────────────────────────────────────

    @property
    def filtered_items(self) -> List[Record]:
        """Recomputed on every access, so in-place edits to loaded rows are seen."""
        return filter_records(self.items, self.search_term, self.search_fields)

    # ── Operations ────────────────────────────────────────

    async def fetch_items(self):
        self.loading = True
        try:
            rows = await self.store.list(self.table_name, self.order_by)
            if self._alive:
                self.items = list(rows or [])
        except DataServiceError as e:
            logger.error(f"Error fetching {self.table_name}: {e}")
            self._notify("Errore", "Impossibile caricare i dati", "destructive")
        finally:
            if self._alive:
                self.loading = False

    def _has_key(self) -> bool:
        if not self.selected_item:
            return False
        value = self.selected_item.get(self.id_field)
        if self.update_on_falsy_id:
            return value is not None
        return bool(value)

    async def handle_save(self, payload: Record, on_success: Optional[Callable[[], Any]] = None) -> bool:
        self.saving = True
        try:
            if self._has_key():
                key = self.selected_item[self.id_field]
                await self.store.update_by_key(self.table_name, payload, self.id_field, key)
                self._notify("Salvato", "Elemento aggiornato con successo")
            else:
                await self.store.insert(self.table_name, payload)
                self._notify("Creato", "Elemento creato con successo")

            await self.fetch_items()
            if self._alive:
                self.dialog_open = False
                self.selected_item = None
                if on_success:
                    on_success()
            return True
        except DataServiceError as e:
            logger.error(f"Error saving {self.table_name}: {e}")
            self._notify("Errore", "Impossibile salvare l'elemento", "destructive")
            return False
        finally:
            if self._alive:
                self.saving = False

    async def handle_delete(self, on_success: Optional[Callable[[], Any]] = None) -> bool:
        if not self.selected_item:
            return False

        self.saving = True
        try:
            key = self.selected_item.get(self.id_field)
            await self.store.delete_by_key(self.table_name, self.id_field, key)
            self._notify("Eliminato", "Elemento eliminato con successo")

            await self.fetch_items()
            if self._alive:
                self.delete_dialog_open = False
                self.selected_item = None
                if on_success:
                    on_success()
            return True
        except DataServiceError as e:
            logger.error(f"Error deleting {self.table_name}: {e}")
            self._notify("Errore", "Impossibile eliminare l'elemento", "destructive")
            return False
        finally:
            if self._alive:
                self.saving = False

    def _notify(self, title: str, description: str, variant: str = "default"):
        if self._alive:
            self.notifier.toast(title, description, variant)


def filter_records(items: List[Record], search_term: str, search_fields: Sequence[str]) -> List[Record]:
    """Case-insensitive substring match over the given fields; None never matches."""
    if not (search_term or "").strip() or not search_fields:
        return items
    needle = search_term.lower()
    result = []
    for item in items:
        for field in search_fields:
            value = item.get(field)
            if value is None:
                continue
            if needle in str(value).lower():
                result.append(item)
                break
    return result
