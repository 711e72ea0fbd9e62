import pytest
from fastapi.testclient import TestClient

import auth
import main
from database import get_db
from fakes import SlowLocalStore
from remote import SqlRemoteClient


@pytest.fixture
def client(db_session, store):
    def override_get_db():
        yield db_session

    main.app.dependency_overrides[get_db] = override_get_db
    main.app.dependency_overrides[main.get_local_store] = lambda: store
    try:
        yield TestClient(main.app)
    finally:
        main.app.dependency_overrides.clear()


def bearer(user_id):
    return {"Authorization": f"Bearer {auth.create_access_token({'sub': user_id})}"}


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_create_order_and_read_mirror(client):
    response = client.post("/orders", json={
        "order_name": "Ali",
        "table_no": "4",
        "items": [{"id": None, "name": "Tea", "price": "10", "qty": 2}, {"name": "Bread", "price": 5}],
    })

    assert response.status_code == 200
    assert response.json()["total"] == 25

    orders = client.get("/local/orders").json()
    assert orders[0]["id"] == response.json()["id"]
    assert orders[0]["itemCount"] == 3


def test_unknown_mirror_key(client):
    assert client.get("/local/secrets").status_code == 404


def test_catalog_sync_returns_available_items(client):
    response = client.post("/catalog/sync")

    assert response.status_code == 200
    assert response.json() == {"categories": [], "items": []}
    assert client.get("/local/menuItems").json() == []


def test_reservation_lifecycle(client, store):
    created = client.post("/reservations", json={"name": "Sara", "iso": "2026-11-01T19:00:00", "people": 2})
    assert created.status_code == 200
    reservation_id = created.json()["id"]
    assert created.json()["duration_minutes"] == 90

    updated = client.patch(f"/reservations/{reservation_id}", json={"people": 4})
    assert updated.status_code == 200
    assert store.get("reservations")[0]["people"] == 4

    deleted = client.delete(f"/reservations/{reservation_id}")
    assert deleted.status_code == 200
    assert store.get("reservations") == []


def test_reservation_validation(client):
    response = client.post("/reservations", json={"name": "Sara", "iso": "2026-11-01T19:00:00", "kind": "boat"})
    assert response.status_code == 422


def test_remote_error_maps_to_bad_gateway(client):
    response = client.patch("/reservations/404", json={"people": 4})

    assert response.status_code == 502
    assert response.json()["table"] == "reservations"


def test_rating_stars_are_validated(client):
    assert client.post("/ratings", json={"item_id": 1, "stars": 9}).status_code == 422


def test_admin_sync_redirects_without_session(client, store):
    response = client.post("/admin/sync", follow_redirects=False)

    assert response.status_code == 303
    assert response.headers["location"] == "login.html"
    assert store.get("notifications") is None


def test_admin_sync_redirects_non_admin(client):
    response = client.post("/admin/sync", headers=bearer("guest"), follow_redirects=False)

    assert response.status_code == 303


def test_admin_sync_for_admin(client, db_session, store):
    remote = SqlRemoteClient(db_session)
    remote.table("admins").insert([{"user_id": "admin-1"}]).execute()
    client.post("/orders", json={"order_name": "Ali", "items": [{"name": "Tea", "price": 3}]})

    session = client.get("/admin/session", headers=bearer("admin-1"), follow_redirects=False)
    assert session.status_code == 200
    assert session.json()["user_id"] == "admin-1"

    response = client.post("/admin/sync", headers=bearer("admin-1"), follow_redirects=False)
    assert response.status_code == 200
    assert response.json() == {"synced": True}
    assert store.get("notifications")[0]["type"] == "order"


def test_mirror_write_failure_maps_to_service_unavailable(client):
    main.app.dependency_overrides[main.get_local_store] = lambda: SlowLocalStore(delay=0, failing_keys=["orders"])

    response = client.post("/orders", json={"order_name": "Ali", "table_no": 4, "items": []})

    assert response.status_code == 503
    assert response.json()["key"] == "orders"
