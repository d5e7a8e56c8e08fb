"""
Generic table API tests: controller rules, super-admin gating of the routes,
the HTTP table store, and CrudState driving the API end to end.
"""
import asyncio

import httpx
import pytest
from fastapi import FastAPI, HTTPException
from fastapi.testclient import TestClient

from controllers import table_controller
from core.auth import get_current_user
from core.crud_state import CrudState
from core.table_store import DataServiceError, HttpTableStore, OrderBy
from database import get_table_store
from models.auth import Profile
from routes.tables import router as tables_router
from server import data_service_error_handler


def run(coro):
    return asyncio.run(coro)


def build_app(store, role="super_admin"):
    app = FastAPI()
    app.include_router(tables_router, prefix="/api")
    app.add_exception_handler(DataServiceError, data_service_error_handler)
    app.dependency_overrides[get_table_store] = lambda: store
    app.dependency_overrides[get_current_user] = lambda: Profile(id="admin", email="admin@acme.it", role=role)
    return app


# ═══════════════════════════════════════════════════════════════
# 1. CONTROLLER
# ═══════════════════════════════════════════════════════════════
class TestTableController:

    def test_unknown_table_is_404(self, store):
        with pytest.raises(HTTPException) as exc:
            run(table_controller.list_rows(store, "secrets"))
        assert exc.value.status_code == 404

    def test_default_order_from_config(self, store):
        rows = run(table_controller.list_rows(store, "cities"))
        assert store.calls[0][2] == OrderBy(column="name", ascending=True)
        assert [r["name"] for r in rows] == ["Milano", "Roma", "Torino"]

    def test_explicit_order_and_search(self, store):
        rows = run(table_controller.list_rows(store, "cities", order_by="region", ascending=False, search="LA"))
        assert store.calls[0][2] == OrderBy(column="region", ascending=False)
        assert [r["id"] for r in rows] == ["c1", "c2"]

    def test_equality_filters(self, store):
        rows = run(table_controller.list_rows(store, "cities", filters={"province": "RM"}))
        assert [r["id"] for r in rows] == ["c2"]

    def test_create_assigns_key_and_timestamps(self, store):
        row = run(table_controller.create_row(store, "cities", {"name": "Napoli"}))
        assert row["id"]
        assert row["created_at"] == row["updated_at"]
        assert store.tables["cities"][-1]["name"] == "Napoli"

    def test_create_keeps_given_key(self, store):
        row = run(table_controller.create_row(store, "cities", {"id": "nap", "name": "Napoli"}))
        assert row["id"] == "nap"

    def test_access_code_is_normalized(self, store):
        row = run(table_controller.create_row(store, "access_codes", {"code": "  abcd2345 ", "entity_id": "co1"}))
        assert row["code"] == "ABCD2345"

    def test_update_ignores_key_and_sets_updated_at(self, store):
        row = run(table_controller.update_row(store, "cities", "c1", {"id": "other", "name": "Milan"}))
        assert row["id"] == "c1"
        assert row["name"] == "Milan"
        assert "updated_at" in row

    def test_update_missing_row(self, store):
        with pytest.raises(HTTPException) as exc:
            run(table_controller.update_row(store, "cities", "nope", {"name": "x"}))
        assert exc.value.status_code == 404

    def test_update_nothing(self, store):
        with pytest.raises(HTTPException) as exc:
            run(table_controller.update_row(store, "cities", "c1", {"id": "c1"}))
        assert exc.value.status_code == 400

    def test_delete(self, store):
        assert run(table_controller.delete_row(store, "cities", "c2")) == {"message": "Eliminato"}
        with pytest.raises(HTTPException):
            run(table_controller.delete_row(store, "cities", "c2"))

    def test_logo_only_for_companies_and_associations(self, store):
        with pytest.raises(HTTPException) as exc:
            run(table_controller.update_logo(store, "cities", "c1", b"png", "image/png"))
        assert exc.value.status_code == 400

    def test_logo_stored_as_data_url(self, make_store):
        store = make_store({"companies": [{"id": "co1", "name": "Acme"}]})
        row = run(table_controller.update_logo(store, "companies", "co1", b"\x89PNG", "image/png"))
        assert row["logo_url"].startswith("data:image/png;base64,")
        row = run(table_controller.update_logo(store, "companies", "co1", None, None))
        assert row["logo_url"] is None

    def test_logo_rejects_non_images(self, make_store):
        store = make_store({"companies": [{"id": "co1", "name": "Acme"}]})
        with pytest.raises(HTTPException):
            run(table_controller.update_logo(store, "companies", "co1", b"%PDF", "application/pdf"))


# ═══════════════════════════════════════════════════════════════
# 2. ROUTES
# ═══════════════════════════════════════════════════════════════
class TestTableRoutes:

    def test_super_admin_can_list(self, store):
        client = TestClient(build_app(store))
        resp = client.get("/api/tables/cities", params={"search": "roma"})
        assert resp.status_code == 200
        assert [r["id"] for r in resp.json()] == ["c2"]

    @pytest.mark.parametrize("role", ["employee", "hr_admin", "association_admin"])
    def test_other_roles_forbidden(self, store, role):
        client = TestClient(build_app(store, role))
        assert client.get("/api/tables/cities").status_code == 403
        assert client.post("/api/tables/cities", json={"name": "x"}).status_code == 403
        assert store.calls == []

    def test_crud_cycle(self, store):
        client = TestClient(build_app(store))
        created = client.post("/api/tables/cities", json={"name": "Bari"}).json()
        resp = client.patch(f"/api/tables/cities/{created['id']}", json={"region": "Puglia"})
        assert resp.json()["region"] == "Puglia"
        assert client.get(f"/api/tables/cities/{created['id']}").json()["name"] == "Bari"
        assert client.delete(f"/api/tables/cities/{created['id']}").status_code == 200
        assert client.get(f"/api/tables/cities/{created['id']}").status_code == 404

    def test_store_failure_is_500(self, store):
        store.fail_on.add("list")
        client = TestClient(build_app(store))
        resp = client.get("/api/tables/cities")
        assert resp.status_code == 500
        assert resp.json() == {"detail": "Errore del servizio dati"}

    def test_unknown_table(self, store):
        client = TestClient(build_app(store))
        assert client.get("/api/tables/nope").status_code == 404


# ═══════════════════════════════════════════════════════════════
# 3. HTTP TABLE STORE
# ═══════════════════════════════════════════════════════════════
class TestHttpTableStore:

    def test_requests_are_shaped_for_the_table_api(self):
        seen = []

        def handler(request):
            seen.append((request.method, request.url.path, dict(request.url.params), request.headers.get("authorization")))
            if request.method == "GET":
                return httpx.Response(200, json=[{"id": "c1"}])
            return httpx.Response(200, json={"id": "c1"})

        async def scenario():
            store = HttpTableStore("http://api.test", access_token="tok", transport=httpx.MockTransport(handler))
            rows = await store.list("cities", OrderBy(column="name", ascending=False))
            await store.insert("cities", {"name": "x"})
            await store.update_by_key("cities", {"name": "y"}, "id", "c1")
            await store.delete_by_key("cities", "id", "c1")
            await store.aclose()
            return rows

        assert run(scenario()) == [{"id": "c1"}]
        assert seen[0] == ("GET", "/api/tables/cities", {"order_by": "name", "ascending": "false"}, "Bearer tok")
        assert [(m, p) for m, p, _, _ in seen[1:]] == [
            ("POST", "/api/tables/cities"),
            ("PATCH", "/api/tables/cities/c1"),
            ("DELETE", "/api/tables/cities/c1"),
        ]

    def test_error_status_becomes_data_service_error(self):
        def handler(request):
            return httpx.Response(403, json={"detail": "Insufficient permissions"})

        store = HttpTableStore("http://api.test", transport=httpx.MockTransport(handler))
        with pytest.raises(DataServiceError) as exc:
            run(store.list("cities"))
        assert exc.value.status_code == 403
        assert exc.value.message == "Insufficient permissions"

    def test_transport_error_becomes_data_service_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        store = HttpTableStore("http://api.test", transport=httpx.MockTransport(handler))
        with pytest.raises(DataServiceError):
            run(store.insert("cities", {"name": "x"}))

    def test_non_json_body_becomes_data_service_error(self):
        store = HttpTableStore("http://api.test", transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>proxy</html>")))
        with pytest.raises(DataServiceError):
            run(store.list("cities"))
        with pytest.raises(DataServiceError):
            run(store.insert("cities", {"name": "x"}))

    def test_non_json_body_is_notified_by_crud_state(self):
        store = HttpTableStore("http://api.test", transport=httpx.MockTransport(lambda r: httpx.Response(200, text="<html>proxy</html>")))
        state = CrudState(store, "cities")
        run(state.fetch_items())
        assert state.items == []
        assert state.loading is False
        assert state.notifier.last.description == "Impossibile caricare i dati"

        assert run(state.handle_save({"name": "x"})) is False
        assert state.notifier.last.description == "Impossibile salvare l'elemento"

    def test_rows_addressed_by_table_key_only(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={})

        store = HttpTableStore("http://api.test", transport=httpx.MockTransport(handler))
        with pytest.raises(DataServiceError):
            run(store.update_by_key("cities", {"name": "y"}, "name", "Roma"))
        with pytest.raises(DataServiceError):
            run(store.delete_by_key("cities", "name", "Roma"))
        assert seen == []

    def test_crud_state_with_wrong_id_field_reports_failure(self):
        store = HttpTableStore("http://api.test", transport=httpx.MockTransport(lambda r: httpx.Response(200, json={})))
        state = CrudState(store, "access_codes", id_field="code", fetch_on_mount=False)
        state.set_selected_item({"code": "ABCD2345"})
        assert run(state.handle_delete()) is False
        assert state.notifier.last.description == "Impossibile eliminare l'elemento"


class TestCrudStateOverHttp:
    """CrudState -> HttpTableStore -> table routes -> in-memory store."""

    def test_full_cycle(self, store):
        app = build_app(store)

        async def scenario():
            http_store = HttpTableStore("http://testserver", transport=httpx.ASGITransport(app=app))
            state = CrudState(http_store, "cities", order_by=OrderBy(column="name"), search_fields=["name"])
            await state.mount()
            assert [c["name"] for c in state.items] == ["Milano", "Roma", "Torino"]

            assert await state.handle_save({"name": "Ancona"}) is True
            assert state.items[0]["name"] == "Ancona"

            state.set_selected_item(state.items[0])
            assert await state.handle_save({"name": "Ancona AN"}) is True

            state.set_search_term("ancona")
            assert [c["name"] for c in state.filtered_items] == ["Ancona AN"]

            state.set_selected_item(state.filtered_items[0])
            assert await state.handle_delete() is True
            await http_store.aclose()
            return state

        state = run(scenario())
        assert [c["name"] for c in state.items] == ["Milano", "Roma", "Torino"]
        assert [n.title for n in state.notifier.notifications] == ["Creato", "Salvato", "Eliminato"]

    def test_forbidden_fetch_is_notified(self, store):
        app = build_app(store, role="employee")

        async def scenario():
            http_store = HttpTableStore("http://testserver", transport=httpx.ASGITransport(app=app))
            state = CrudState(http_store, "cities")
            await state.mount()
            await http_store.aclose()
            return state

        state = run(scenario())
        assert state.items == []
        assert state.loading is False
        assert state.notifier.last.description == "Impossibile caricare i dati"
