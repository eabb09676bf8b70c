import pytest
from fastapi.testclient import TestClient

from oficina.app.api.deps import get_credential_store, get_exporter, get_session_factory
from oficina.app.db.models.models_v1 import Product
from oficina.app.main import app
from oficina.services.auth import Identity, StaticCredentialStore
from oficina.services.export import DeliveryReceipt, OrderExporter
from oficina.services.orders import OrderStore


class FakeRenderer:
    def render(self, order, items):
        return b"%PDF-fake"


class FakeDelivery:
    def send(self, document, destination, *, filename, caption=None):
        return DeliveryReceipt(success=True, message_id="m-1")


@pytest.fixture
def client(session_factory):
    store = StaticCredentialStore([(Identity(id="1", name="Ana", email="ana@oficina.com.br"), "pw")])

    app.dependency_overrides[get_session_factory] = lambda: session_factory
    app.dependency_overrides[get_credential_store] = lambda: store
    app.dependency_overrides[get_exporter] = lambda: OrderExporter(
        OrderStore(session_factory), FakeRenderer(), FakeDelivery()
    )
    try:
        with TestClient(app) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/v1/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_order_lifecycle(client, add):
    (pid,) = add(Product(name="Tela", sale_price=100, stock=10))

    r = client.post(
        "/v1/orders",
        json={"client_name": "Maria", "items": [{"product_id": pid, "price": 100, "quantity": 2}]},
    )
    assert r.status_code == 201, r.text
    body = r.json()
    assert body["success"] is True
    order = body["data"]
    assert (order["items_value"], order["total_value"]) == (200, 200)

    assert client.get(f"/v1/orders/{order['id']}").status_code == 200
    assert [o["id"] for o in client.get("/v1/orders").json()["data"]] == [order["id"]]

    r = client.put(
        f"/v1/orders/{order['id']}",
        json={"client_name": "Maria", "items": [{"product_id": pid, "price": "100", "quantity": "3"}]},
    )
    assert r.status_code == 200
    assert r.json()["data"]["total_value"] == 300

    r = client.post(f"/v1/orders/{order['id']}/convert", json={"created_by": "ana"})
    assert r.status_code == 200, r.text
    assert r.json()["data"]["stock"][0]["current_stock"] == 7

    r = client.post(f"/v1/orders/{order['id']}/export", json={"destination": "+55 11 95555-0000"})
    assert r.status_code == 200
    assert r.json()["message_id"] == "m-1"

    assert client.delete(f"/v1/orders/{order['id']}").status_code == 200
    r = client.get(f"/v1/orders/{order['id']}")
    assert r.status_code == 404
    assert r.json()["detail"]["code"] == "not_found"


def test_convert_missing_order_is_404(client):
    assert client.post("/v1/orders/999/convert").status_code == 404


def test_products_and_stock_movements(client):
    r = client.post("/v1/products", json={"name": "Filtro", "sale_price": "29,90", "stock": 4})
    assert r.status_code == 201, r.text
    pid = r.json()["data"]["id"]

    r = client.post(
        "/v1/products/stock-movements",
        json={"product_id": pid, "movement_type": "saida", "quantity": 1},
    )
    assert r.status_code == 201
    assert r.json()["data"]["current_stock"] == 3

    bad = client.post("/v1/products/stock-movements", json={"product_id": pid, "quantity": 1})
    assert bad.status_code == 400

    movements = client.get("/v1/products/stock-movements", params={"product_id": pid}).json()["data"]
    assert [m["movement_type"] for m in movements] == ["saida", "entrada"]

    ranking = client.get("/v1/products/ranking").json()["data"]
    assert ranking["total_exits"] == 1

    r = client.put(f"/v1/products/{pid}", json={"stock": 10})
    assert r.status_code == 200
    assert r.json()["data"]["stock"] == 10

    assert client.get("/v1/products").json()["data"][0]["name"] == "Filtro"


def test_finance_routes(client):
    bad = client.post("/v1/finance/movements", json={"type": "in", "value": 10})
    assert bad.status_code == 400
    assert bad.json()["detail"]["code"] == "validation_error"

    r = client.post("/v1/finance/movements", json={"title": "Venda", "type": "in", "value": 10})
    assert r.status_code == 201
    mid = r.json()["data"]["id"]

    assert client.get("/v1/finance/movements", params={"type": "xx"}).status_code == 400
    assert len(client.get("/v1/finance/movements", params={"type": "in"}).json()["data"]) == 1

    assert client.put(f"/v1/finance/movements/{mid}", json={"status": "Pendente"}).json()["data"]["status"] == (
        "Pendente"
    )
    assert client.delete(f"/v1/finance/movements/{mid}").status_code == 200
    assert client.delete(f"/v1/finance/movements/{mid}").status_code == 404


def test_login(client):
    ok = client.post("/v1/auth/login", json={"email": "ana@oficina.com.br", "password": "pw"})
    assert ok.status_code == 200
    assert ok.json()["data"]["name"] == "Ana"

    denied = client.post("/v1/auth/login", json={"email": "ana@oficina.com.br", "password": "no"})
    assert denied.status_code == 401


def test_report_routes(client, add):
    add(Product(name="Junta", sale_price=10, stock=1), Product(name="Pneu", sale_price=300, stock=20))

    critical = client.get("/v1/reports/critical-stock")
    assert critical.status_code == 200
    assert [p["name"] for p in critical.json()["data"]] == ["Junta"]

    monthly = client.get("/v1/reports/monthly-sales", params={"months": 3})
    assert monthly.status_code == 200
    assert len(monthly.json()["data"]["months"]) == 3
    assert client.get("/v1/reports/monthly-sales", params={"months": 13}).status_code == 422

    summary = client.get("/v1/reports/summary").json()["data"]
    assert summary["revenue"] == 0 and summary["revenue_change_pct"] is None

    assert client.get("/v1/reports/cost-vs-profit").json()["data"]["services"] == []
    assert client.get("/v1/reports/service-status").json()["data"]["completed"] == 0


def test_realized_service_routes_and_product_delete(client, add):
    (pid,) = add(Product(name="Tela", sale_price=100, stock=5))
    order = client.post(
        "/v1/orders",
        json={"client_name": "Maria", "items": [{"product_id": pid, "price": 100, "quantity": 1}]},
    ).json()["data"]
    service_id = client.post(f"/v1/orders/{order['id']}/convert").json()["data"]["service_realized"]["id"]

    listed = client.get("/v1/realized-services").json()["data"]
    assert [s["id"] for s in listed] == [service_id]

    r = client.put(f"/v1/realized-services/{service_id}", json={"status": "concluido", "service_cost": 20})
    assert r.status_code == 200
    assert r.json()["data"]["total_cost"] == 20
    assert client.get(f"/v1/realized-services/{service_id}").json()["data"]["status"] == "concluido"
    assert client.get("/v1/realized-services/999").status_code == 404

    deleted = client.delete(f"/v1/products/{pid}")
    assert deleted.status_code == 200
    assert deleted.json()["detached_movements"] == 1
    assert client.delete(f"/v1/products/{pid}").status_code == 404
