import pytest

from core.table_store import DataServiceError, TableStore


class FakeTableStore(TableStore):
    """In-memory TableStore that records calls and can be told to fail."""

    def __init__(self, tables=None):
        self.tables = {name: [dict(r) for r in rows] for name, rows in (tables or {}).items()}
        self.calls = []
        self.fail_on = set()

    def _check(self, op):
        if op in self.fail_on:
            raise DataServiceError(f"{op} failed")

    async def list(self, table, order_by=None, filters=None):
        self.calls.append(("list", table, order_by))
        self._check("list")
        rows = [dict(r) for r in self.tables.get(table, []) if all(r.get(k) == v for k, v in (filters or {}).items())]
        if order_by:
            rows.sort(key=lambda r: str(r.get(order_by.column) or ""), reverse=not order_by.ascending)
        return rows

    async def insert(self, table, record):
        self.calls.append(("insert", table, dict(record)))
        self._check("insert")
        self.tables.setdefault(table, []).append(dict(record))
        return dict(record)

    async def update_by_key(self, table, record, key_field, key_value):
        self.calls.append(("update", table, dict(record), key_field, key_value))
        self._check("update")
        matched = 0
        for row in self.tables.get(table, []):
            if row.get(key_field) == key_value:
                row.update(record)
                matched += 1
        return matched

    async def delete_by_key(self, table, key_field, key_value):
        self.calls.append(("delete", table, key_field, key_value))
        self._check("delete")
        rows = self.tables.get(table, [])
        kept = [r for r in rows if r.get(key_field) != key_value]
        self.tables[table] = kept
        return len(rows) - len(kept)

    def ops(self):
        return [c[0] for c in self.calls]


@pytest.fixture
def cities():
    return [
        {"id": "c1", "name": "Milano", "province": "MI", "region": "Lombardia"},
        {"id": "c2", "name": "Roma", "province": "RM", "region": "Lazio"},
        {"id": "c3", "name": "Torino", "province": None, "region": "Piemonte"},
    ]


@pytest.fixture
def store(cities):
    return FakeTableStore({"cities": cities})


@pytest.fixture
def make_store():
    return FakeTableStore
