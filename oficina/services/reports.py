"""
Indicateurs du tableau de bord.

- StockReports : journal de stock (classement des sorties, stock critique)
- DashboardReports : services réalisés + vue financière réconciliée
"""

from __future__ import annotations

import unicodedata
from collections import Counter
from datetime import date
from typing import Any

from sqlalchemy import func, select

from oficina.app.db.models.core_types import FinanceType, StockMovementType
from oficina.app.db.models.models_v1 import Product, RealizedService, StockMovement
from oficina.services.errors import ServiceError
from oficina.services.finance import FinanceService
from oficina.services.normalizer import normalize_date, normalize_datetime, normalize_int, normalize_number
from oficina.services.results import ServiceResult, guarded
from oficina.services.unit_of_work import SessionFactory, UnitOfWork

DEFAULT_RANKING_SIZE = 5
CRITICAL_STOCK_THRESHOLD = 5

DEFAULT_MONTHS = 6
MAX_MONTHS = 12
MONTH_LABELS = ("Jan", "Fev", "Mar", "Abr", "Mai", "Jun", "Jul", "Ago", "Set", "Out", "Nov", "Dez")


class StockReports:
    def __init__(self, session_factory: SessionFactory | None = None):
        self._session_factory = session_factory

    @guarded("rank products")
    def rank_products_by_exits(self, start: Any = None, end: Any = None, limit: Any = None) -> ServiceResult:
        """
        Top produits par quantité sortie (saida), toutes origines confondues.
        total_exits = somme du top renvoyé.
        """
        size = normalize_int(limit) or DEFAULT_RANKING_SIZE

        quantity = func.sum(StockMovement.quantity).label("total_quantity")
        stmt = (
            select(
                StockMovement.product_id,
                func.max(StockMovement.product_name).label("product_name"),
                quantity,
            )
            .where(StockMovement.movement_type == StockMovementType.saida)
            .group_by(StockMovement.product_id)
            .order_by(quantity.desc(), StockMovement.product_id)
            .limit(max(1, size))
        )

        start_at = normalize_datetime(start)
        if start_at is not None:
            stmt = stmt.where(StockMovement.created_at >= start_at)
        end_at = normalize_datetime(end)
        if end_at is not None:
            stmt = stmt.where(StockMovement.created_at <= end_at)

        with UnitOfWork(self._session_factory) as uow:
            products = [
                {
                    "product_id": row.product_id,
                    "product_name": row.product_name or "Produto sem nome",
                    "quantity": float(row.total_quantity or 0),
                }
                for row in uow.session.execute(stmt).all()
            ]

        data = {
            "total_exits": round(sum(p["quantity"] for p in products), 3),
            "products": products,
        }
        return ServiceResult.ok("Product ranking computed", data)

    @guarded("list critical stock")
    def critical_stock(self, threshold: Any = None) -> ServiceResult:
        """Produits dont le stock est <= seuil (5 par défaut), stock le plus bas d'abord."""
        limit = normalize_number(threshold)
        if limit is None:
            limit = CRITICAL_STOCK_THRESHOLD

        stmt = select(Product).where(Product.stock <= limit).order_by(Product.stock, Product.name, Product.id)
        with UnitOfWork(self._session_factory) as uow:
            data = [
                {"id": p.id, "name": p.name, "stock": float(p.stock or 0), "unit": p.unit}
                for p in uow.session.execute(stmt).scalars().all()
            ]
        return ServiceResult.ok("Critical stock listed", data, threshold=limit)


def _shift_month(year: int, month: int, back: int) -> tuple[int, int]:
    index = year * 12 + (month - 1) - back
    return index // 12, index % 12 + 1


def _fold_status(value: Any) -> str:
    # "Concluído" / "em_execucao" / "Em execução" -> même clé
    text = unicodedata.normalize("NFD", str(value or "").strip().lower())
    return "".join(ch for ch in text if not unicodedata.combining(ch)).replace("_", " ")


STATUS_BUCKETS = {
    "concluido": "completed",
    "concluida": "completed",
    "em execucao": "in_progress",
    "agendado": "scheduled",
    "agendada": "scheduled",
}


class DashboardReports:
    """
    Cartes et graphiques du tableau de bord.

    Les montants financiers sont lus via FinanceService.list_movements,
    donc déjà réconciliés (correction ×100 et lignes orphelines écartées).
    """

    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        finance: FinanceService | None = None,
    ):
        self._session_factory = session_factory
        self._finance = finance or FinanceService(session_factory)

    # ---------- sources ----------
    def _finance_rows(self) -> list[dict[str, Any]]:
        result = self._finance.list_movements()
        if not result.success:
            raise ServiceError(result.message, code=result.code)
        return result.data

    def _realized_rows(self) -> list[dict[str, Any]]:
        with UnitOfWork(self._session_factory) as uow:
            services = uow.session.execute(select(RealizedService).order_by(RealizedService.id)).scalars().all()
            return [
                {
                    # date du service, sinon date de création
                    "day": s.service_date or (s.created_at.date() if s.created_at else None),
                    "service_id": s.service_id,
                    "service_name": s.service_name,
                    "status": s.status,
                    "total_value": normalize_number(s.total_value, 0),
                    "total_cost": normalize_number(s.total_cost, 0),
                }
                for s in services
            ]

    # ---------- rapports ----------
    @guarded("compute summary cards")
    def summary_cards(self, today: Any = None) -> ServiceResult:
        """
        Année civile en cours :
            revenue / cost / balance        services réalisés
            income / expenses               mouvements financiers réconciliés
            revenue_change_pct              vs année précédente (None si 0 l'an dernier)
            cost_pct                        cost / revenue
        """
        year = (normalize_date(today) or date.today()).year

        realized = [r for r in self._realized_rows() if r["day"] is not None]
        current = [r for r in realized if r["day"].year == year]
        previous_revenue = sum(r["total_value"] for r in realized if r["day"].year == year - 1)
        revenue = sum(r["total_value"] for r in current)
        cost = sum(r["total_cost"] for r in current)

        income = expenses = 0.0
        for row in self._finance_rows():
            if row["date"] is None or row["date"].year != year:
                continue
            if row["type"] == FinanceType.income.value:
                income += row["value"]
            else:
                expenses += row["value"]

        data = {
            "year": year,
            "revenue": round(revenue, 2),
            "cost": round(cost, 2),
            "balance": round(revenue - cost, 2),
            "revenue_change_pct": (
                round((revenue - previous_revenue) / previous_revenue * 100, 2) if previous_revenue > 0 else None
            ),
            "cost_pct": round(cost / revenue * 100, 2) if revenue > 0 else 0.0,
            "income": round(income, 2),
            "expenses": round(expenses, 2),
            "net": round(income - expenses, 2),
        }
        return ServiceResult.ok("Summary cards computed", data)

    @guarded("compute monthly sales")
    def monthly_sales(self, months: Any = None, today: Any = None) -> ServiceResult:
        """Entrées ("in") par mois calendaire, les `months` derniers mois (1..12), plus ancien d'abord."""
        count = max(1, min(normalize_int(months) or DEFAULT_MONTHS, MAX_MONTHS))
        ref = normalize_date(today) or date.today()

        buckets: dict[tuple[int, int], float] = {
            _shift_month(ref.year, ref.month, back): 0.0 for back in range(count - 1, -1, -1)
        }
        for row in self._finance_rows():
            if row["type"] != FinanceType.income.value or row["date"] is None:
                continue
            key = (row["date"].year, row["date"].month)
            if key in buckets:
                buckets[key] += row["value"]

        series = [
            {
                "id": f"{year:04d}-{month:02d}",
                "label": MONTH_LABELS[month - 1],
                "year": year,
                "month": month,
                "value": round(value, 2),
            }
            for (year, month), value in buckets.items()
        ]
        data = {"months": series, "total": round(sum(m["value"] for m in series), 2)}
        return ServiceResult.ok("Monthly sales computed", data)

    @guarded("compute cost vs profit")
    def cost_vs_profit(self) -> ServiceResult:
        """Valeur, coût et marge des services réalisés, regroupés par service du catalogue."""
        groups: dict[str, dict[str, Any]] = {}
        for row in self._realized_rows():
            key = str(row["service_id"]) if row["service_id"] is not None else "outros"
            group = groups.setdefault(
                key,
                {
                    "service_id": row["service_id"],
                    "service_name": row["service_name"] or "Outros",
                    "total_value": 0.0,
                    "total_cost": 0.0,
                    "count": 0,
                },
            )
            group["total_value"] += row["total_value"]
            group["total_cost"] += row["total_cost"]
            group["count"] += 1

        services = []
        for group in groups.values():
            profit = group["total_value"] - group["total_cost"]
            services.append(
                {
                    **group,
                    "total_value": round(group["total_value"], 2),
                    "total_cost": round(group["total_cost"], 2),
                    "profit": round(profit, 2),
                    "average_profit": round(profit / group["count"], 2),
                }
            )
        services.sort(key=lambda s: (-s["total_value"], s["service_name"]))

        total_value = sum(s["total_value"] for s in services)
        total_cost = sum(s["total_cost"] for s in services)
        count = sum(s["count"] for s in services)
        data = {
            "total_value": round(total_value, 2),
            "total_cost": round(total_cost, 2),
            "profit": round(total_value - total_cost, 2),
            "average_profit": round((total_value - total_cost) / count, 2) if count else 0.0,
            "count": count,
            "services": services,
        }
        return ServiceResult.ok("Cost vs profit computed", data)

    @guarded("count service status")
    def service_status(self, start: Any = None, end: Any = None) -> ServiceResult:
        """Services réalisés par statut (concluído / em execução / agendado), bornes incluses."""
        start_day = normalize_date(start)
        end_day = normalize_date(end)

        counts: Counter[str] = Counter()
        for row in self._realized_rows():
            day = row["day"]
            if start_day is not None and (day is None or day < start_day):
                continue
            if end_day is not None and (day is None or day > end_day):
                continue
            counts[STATUS_BUCKETS.get(_fold_status(row["status"]), "other")] += 1

        data = {bucket: counts.get(bucket, 0) for bucket in ("completed", "in_progress", "scheduled", "other")}
        return ServiceResult.ok("Service status counted", data)
