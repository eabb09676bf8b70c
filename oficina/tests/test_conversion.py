from datetime import date

from sqlalchemy import select

from oficina.app.db.models.models_v1 import (
    Order,
    OrderItem,
    Product,
    RealizedService,
    RealizedServiceItem,
    StockMovement,
)
from oficina.services.conversion import ConversionWorkflow
from oficina.services.inventory import StockLedger
from oficina.services.orders import OrderStore
from oficina.services.results import ServiceResult


class NoCatalog:
    def lookup(self, service_id):
        return None


class ExplodingLedger(StockLedger):
    """Écrit réellement les mouvements puis signale un échec."""

    def record_movements(self, items, **kwargs):
        written = super().record_movements(items, **kwargs)
        assert written.success
        return ServiceResult.fail("Ledger unavailable", code="internal_error")


def _seed_order(session_factory, add, items=None):
    p1, p2 = add(
        Product(name="Pastilha de freio", sale_price=90, stock=10),
        Product(name="Disco", sale_price=150, stock=5),
    )
    store = OrderStore(session_factory, catalog=NoCatalog())
    if items is None:
        items = [
            {"product_id": p1, "product_name": "Pastilha de freio", "price": 90, "quantity": 3},
            {"product_id": p2, "product_name": "Disco", "price": 150, "quantity": 1},
            {"product_name": "Fluido avulso", "price": 20, "quantity": 1},
        ]
    order = store.create(
        {
            "client_name": "Carlos",
            "client_contact": "+55 11 99999-0000",
            "equipment": "Gol 2012",
            "problem": "Freio rangendo",
            "service_description": "Troca de freio",
            "service_value": 120,
            "notes": "Cliente aguarda",
            "items": items,
        }
    ).data
    return order, p1, p2


def _stock(fetch, pid):
    return fetch(select(Product).where(Product.id == pid))[0].stock


def test_convert_creates_service_items_and_stock_exits(session_factory, add, fetch):
    order, p1, p2 = _seed_order(session_factory, add)

    result = ConversionWorkflow(session_factory).convert(order["id"], created_by="ana")

    assert result.success, result.message
    realized = result.data["service_realized"]
    assert realized["order_id"] == order["id"]
    assert realized["service_name"] == "Troca de freio"
    assert realized["description"] == "Freio rangendo"
    assert realized["status"] == "em_execucao"
    assert realized["service_date"] == date.today()
    assert realized["total_value"] == order["total_value"]
    assert realized["total_cost"] == 0
    assert len(realized["items"]) == 3

    # ligne sans produit : copiée, mais pas de mouvement
    assert [row["product_id"] for row in result.data["stock"]] == [p1, p2]
    assert _stock(fetch, p1) == 7
    assert _stock(fetch, p2) == 4

    movements = fetch(select(StockMovement).order_by(StockMovement.id))
    assert len(movements) == 2
    assert all(mv.movement_type.value == "saida" for mv in movements)
    assert all(mv.origin.value == "orcamento" for mv in movements)
    assert all(mv.reference_id == str(order["id"]) for mv in movements)
    assert all(mv.created_by == "ana" for mv in movements)

    assert fetch(select(Order))[0].status == "convertido"
    assert len(fetch(select(RealizedServiceItem))) == 3


def test_convert_without_items_skips_ledger(session_factory, add, fetch):
    order, p1, _ = _seed_order(session_factory, add, items=[])

    result = ConversionWorkflow(session_factory).convert(order["id"])

    assert result.success
    assert result.data["stock"] == []
    assert result.data["service_realized"]["items"] == []
    assert fetch(select(StockMovement)) == []
    assert _stock(fetch, p1) == 10


def test_convert_missing_order(session_factory):
    result = ConversionWorkflow(session_factory).convert(404)
    assert not result.success
    assert result.code == "not_found"


def test_ledger_failure_rolls_back_everything(session_factory, add, fetch):
    """
    GIVEN un devis ancien (écrit avant le contrôle des quantités) avec une
    ligne liée à quantité 0, rejetée par le ledger
    THEN aucun service réalisé, stock intact, devis toujours em_analise
    """
    p1, _ = add(Product(name="X", sale_price=1, stock=10), Product(name="Y", sale_price=1, stock=1))
    (order_id,) = add(
        Order(
            items=[
                OrderItem(product_id=p1, product_name="X", price=1, quantity=2, total=2),
                OrderItem(product_id=p1, product_name="X", price=1, quantity=0, total=0),
            ]
        )
    )

    result = ConversionWorkflow(session_factory).convert(order_id)

    assert not result.success
    assert result.code == "validation_error"
    assert fetch(select(RealizedService)) == []
    assert fetch(select(StockMovement)) == []
    assert _stock(fetch, p1) == 10
    assert fetch(select(Order))[0].status == "em_analise"


def test_failed_result_from_ledger_discards_written_movements(session_factory, add, fetch):
    order, p1, p2 = _seed_order(session_factory, add)
    workflow = ConversionWorkflow(session_factory, ledger=ExplodingLedger(session_factory))

    result = workflow.convert(order["id"])

    assert not result.success
    assert result.message == "Ledger unavailable"
    assert fetch(select(RealizedService)) == []
    assert fetch(select(StockMovement)) == []
    assert (_stock(fetch, p1), _stock(fetch, p2)) == (10, 5)
    assert fetch(select(Order))[0].status == "em_analise"


def test_converting_twice_is_not_guarded(session_factory, add, fetch):
    order, p1, _ = _seed_order(session_factory, add)
    workflow = ConversionWorkflow(session_factory)

    assert workflow.convert(order["id"]).success
    assert workflow.convert(order["id"]).success

    assert len(fetch(select(RealizedService))) == 2
    assert _stock(fetch, p1) == 4
