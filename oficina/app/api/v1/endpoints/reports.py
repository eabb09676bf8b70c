from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from oficina.app.api.deps import get_dashboard, get_reports, unwrap
from oficina.services.reports import DashboardReports, StockReports

router = APIRouter(prefix="/reports")


@router.get("/critical-stock")
def critical_stock(
    threshold: float | None = None,
    reports: StockReports = Depends(get_reports),
):
    return unwrap(reports.critical_stock(threshold))


@router.get("/summary")
def summary_cards(dashboard: DashboardReports = Depends(get_dashboard)):
    return unwrap(dashboard.summary_cards())


@router.get("/monthly-sales")
def monthly_sales(
    months: int = Query(default=6, ge=1, le=12),
    dashboard: DashboardReports = Depends(get_dashboard),
):
    return unwrap(dashboard.monthly_sales(months))


@router.get("/cost-vs-profit")
def cost_vs_profit(dashboard: DashboardReports = Depends(get_dashboard)):
    return unwrap(dashboard.cost_vs_profit())


@router.get("/service-status")
def service_status(
    start: str | None = None,
    end: str | None = None,
    dashboard: DashboardReports = Depends(get_dashboard),
):
    return unwrap(dashboard.service_status(start, end))
