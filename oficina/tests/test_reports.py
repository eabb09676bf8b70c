from datetime import date, datetime

from oficina.app.db.models.core_types import FinanceType, StockMovementType, StockOrigin
from oficina.app.db.models.models_v1 import FinanceMovement, Product, RealizedService, StockMovement
from oficina.services.reports import DashboardReports, StockReports


def _mv(pid, name, qty, kind=StockMovementType.saida, when=datetime(2024, 4, 10, 12)):
    return StockMovement(
        product_id=pid,
        product_name=name,
        movement_type=kind,
        quantity=qty,
        previous_stock=0,
        current_stock=0,
        origin=StockOrigin.orcamento,
        created_at=when,
    )


def test_ranking_by_exits(session_factory, add):
    p1, p2, p3 = add(
        Product(name="Pneu", sale_price=300),
        Product(name="Câmara", sale_price=40),
        Product(name="Válvula", sale_price=5),
    )
    add(
        _mv(p1, "Pneu", 3),
        _mv(p1, "Pneu", 2),
        _mv(p2, "Câmara", 4),
        _mv(p3, "Válvula", 50, kind=StockMovementType.entrada),
    )
    reports = StockReports(session_factory)

    result = reports.rank_products_by_exits()

    assert result.success, result.message
    assert [(p["product_id"], p["quantity"]) for p in result.data["products"]] == [(p1, 5), (p2, 4)]
    assert result.data["total_exits"] == 9

    top1 = reports.rank_products_by_exits(limit=1)
    assert [p["product_name"] for p in top1.data["products"]] == ["Pneu"]
    assert top1.data["total_exits"] == 5


def test_ranking_respects_period(session_factory, add):
    (pid,) = add(Product(name="Óleo", sale_price=40))
    add(
        _mv(pid, "Óleo", 1, when=datetime(2024, 1, 5)),
        _mv(pid, "Óleo", 6, when=datetime(2024, 2, 5)),
    )

    result = StockReports(session_factory).rank_products_by_exits(start="2024-02-01", end="2024-02-28")

    assert result.data["products"] == [{"product_id": pid, "product_name": "Óleo", "quantity": 6.0}]


def test_ranking_empty(session_factory):
    result = StockReports(session_factory).rank_products_by_exits()
    assert result.success
    assert result.data == {"total_exits": 0, "products": []}


# ---------- stock critique ----------
def test_critical_stock_lists_products_at_or_below_threshold(session_factory, add):
    low, edge, _ok, negative = add(
        Product(name="Junta", sale_price=10, stock=2, unit="un"),
        Product(name="Anel", sale_price=3, stock=5),
        Product(name="Óleo", sale_price=40, stock=5.5),
        Product(name="Correia", sale_price=80, stock=-1),
    )

    result = StockReports(session_factory).critical_stock()

    assert result.success, result.message
    assert [p["id"] for p in result.data] == [negative, low, edge]
    assert result.data[1] == {"id": low, "name": "Junta", "stock": 2.0, "unit": "un"}
    assert result.extra["threshold"] == 5

    assert [p["id"] for p in StockReports(session_factory).critical_stock(threshold=0).data] == [negative]


# ---------- tableau de bord ----------
def _income(value, when, **kw):
    return FinanceMovement(title="Entrada", value=value, movement_date=when, type=FinanceType.income, **kw)


def _expense(value, when):
    return FinanceMovement(title="Saída", value=value, movement_date=when, type=FinanceType.expense)


def test_monthly_sales_sums_reconciled_income_per_month(session_factory, add):
    """
    GIVEN des entrées sur mars et mai 2024, une sortie en mai, une entrée hors fenêtre
    AND une entrée liée à un service enregistrée ×100
    WHEN monthly_sales(3) au 15/05/2024
    THEN mar 100, abr 0, mai 45 + 30 (la valeur ×100 est ramenée au total du service)
    """
    (service_id,) = add(RealizedService(client_name="Ana", total_value=45))
    add(
        _income(100, datetime(2024, 3, 2, 10)),
        _income(4500, datetime(2024, 5, 3, 10), service_realized_id=service_id),
        _income(30, datetime(2024, 5, 31, 23)),
        _expense(70, datetime(2024, 5, 10, 9)),
        _income(999, datetime(2024, 1, 10, 9)),
    )

    result = DashboardReports(session_factory).monthly_sales(3, today=date(2024, 5, 15))

    assert result.success, result.message
    assert [(m["id"], m["label"], m["value"]) for m in result.data["months"]] == [
        ("2024-03", "Mar", 100),
        ("2024-04", "Abr", 0),
        ("2024-05", "Mai", 75),
    ]
    assert result.data["total"] == 175


def test_monthly_sales_window_crosses_year_and_is_clamped(session_factory):
    reports = DashboardReports(session_factory)

    two = reports.monthly_sales(2, today=date(2024, 1, 20)).data["months"]
    assert [m["id"] for m in two] == ["2023-12", "2024-01"]

    assert len(reports.monthly_sales(40, today=date(2024, 1, 20)).data["months"]) == 12
    assert len(reports.monthly_sales("x", today=date(2024, 1, 20)).data["months"]) == 6


def test_summary_cards_for_current_year(session_factory, add):
    add(
        RealizedService(total_value=300, total_cost=120, service_date=date(2024, 2, 1)),
        RealizedService(total_value=100, total_cost=30, service_date=date(2024, 8, 1)),
        RealizedService(total_value=200, total_cost=50, service_date=date(2023, 6, 1)),
        _income(400, datetime(2024, 3, 1, 12)),
        _expense(150, datetime(2024, 4, 1, 12)),
        _expense(999, datetime(2023, 4, 1, 12)),
    )

    result = DashboardReports(session_factory).summary_cards(today=date(2024, 9, 1))

    assert result.success, result.message
    assert result.data == {
        "year": 2024,
        "revenue": 400,
        "cost": 150,
        "balance": 250,
        "revenue_change_pct": 100.0,
        "cost_pct": 37.5,
        "income": 400,
        "expenses": 150,
        "net": 250,
    }


def test_summary_cards_without_previous_year(session_factory):
    data = DashboardReports(session_factory).summary_cards(today=date(2024, 9, 1)).data
    assert data["revenue"] == 0
    assert data["revenue_change_pct"] is None
    assert data["cost_pct"] == 0


def test_cost_vs_profit_groups_by_service(session_factory, add):
    add(
        RealizedService(service_id=1, service_name="Troca de óleo", total_value=100, total_cost=40),
        RealizedService(service_id=1, service_name="Troca de óleo", total_value=120, total_cost=60),
        RealizedService(service_name="Avulso", total_value=50, total_cost=0),
    )

    result = DashboardReports(session_factory).cost_vs_profit()

    assert result.success, result.message
    data = result.data
    assert (data["total_value"], data["total_cost"], data["profit"], data["count"]) == (270, 100, 170, 3)
    oil, other = data["services"]
    assert (oil["service_name"], oil["count"], oil["profit"], oil["average_profit"]) == ("Troca de óleo", 2, 120, 60)
    assert (other["service_id"], other["profit"]) == (None, 50)


def test_service_status_folds_accents_and_period(session_factory, add):
    add(
        RealizedService(status="Concluído", service_date=date(2024, 5, 2)),
        RealizedService(status="concluida", service_date=date(2024, 5, 3)),
        RealizedService(status="em_execucao", service_date=date(2024, 5, 4)),
        RealizedService(status="Agendado", service_date=date(2024, 5, 5)),
        RealizedService(status="cancelado", service_date=date(2024, 5, 6)),
        RealizedService(status="concluido", service_date=date(2024, 4, 1)),
    )
    reports = DashboardReports(session_factory)

    result = reports.service_status(start="2024-05-01", end="2024-05-31")

    assert result.success, result.message
    assert result.data == {"completed": 2, "in_progress": 1, "scheduled": 1, "other": 1}
    assert reports.service_status().data["completed"] == 3
