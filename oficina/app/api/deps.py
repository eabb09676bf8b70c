from __future__ import annotations

from typing import Any, Generator

from fastapi import Depends, HTTPException
from sqlalchemy.orm import Session

from oficina.app.core.config import Settings, get_settings
from oficina.services.auth import CredentialStore, StaticCredentialStore
from oficina.services.conversion import ConversionWorkflow
from oficina.services.export import OrderExporter
from oficina.services.finance import FinanceService
from oficina.services.inventory import StockLedger
from oficina.services.orders import OrderStore
from oficina.services.products import ProductRegistry
from oficina.services.realized import RealizedServiceStore
from oficina.services.reports import DashboardReports, StockReports
from oficina.services.results import ServiceResult
from oficina.services.unit_of_work import SessionFactory, default_session_factory

# code d'échec -> statut HTTP ; tout le reste : 400
STATUS_BY_CODE = {
    "validation_error": 400,
    "unauthorized": 401,
    "not_found": 404,
    "23505": 409,  # unique_violation
    "23503": 409,  # foreign_key_violation
    "delivery_failed": 502,
    "database_error": 500,
    "internal_error": 500,
}


def get_session_factory() -> SessionFactory:
    return default_session_factory


def get_db(factory: SessionFactory = Depends(get_session_factory)) -> Generator[Session, None, None]:
    db = factory()
    try:
        yield db
    finally:
        db.close()


# ---------- services ----------
def get_ledger(factory: SessionFactory = Depends(get_session_factory)) -> StockLedger:
    return StockLedger(factory)


def get_order_store(factory: SessionFactory = Depends(get_session_factory)) -> OrderStore:
    return OrderStore(factory)


def get_conversion(
    factory: SessionFactory = Depends(get_session_factory),
    ledger: StockLedger = Depends(get_ledger),
) -> ConversionWorkflow:
    return ConversionWorkflow(factory, ledger=ledger)


def get_exporter(orders: OrderStore = Depends(get_order_store)) -> OrderExporter:
    return OrderExporter(orders)


def get_product_registry(
    factory: SessionFactory = Depends(get_session_factory),
    ledger: StockLedger = Depends(get_ledger),
) -> ProductRegistry:
    return ProductRegistry(factory, ledger=ledger)


def get_reports(factory: SessionFactory = Depends(get_session_factory)) -> StockReports:
    return StockReports(factory)


def get_finance(factory: SessionFactory = Depends(get_session_factory)) -> FinanceService:
    return FinanceService(factory)


def get_dashboard(
    factory: SessionFactory = Depends(get_session_factory),
    finance: FinanceService = Depends(get_finance),
) -> DashboardReports:
    return DashboardReports(factory, finance=finance)


def get_realized_store(factory: SessionFactory = Depends(get_session_factory)) -> RealizedServiceStore:
    return RealizedServiceStore(factory)


def get_credential_store(settings: Settings = Depends(get_settings)) -> CredentialStore:
    return StaticCredentialStore.from_settings(settings)


# ---------- réponses ----------
def unwrap(result: ServiceResult) -> dict[str, Any]:
    """ServiceResult -> corps JSON, ou HTTPException sur échec."""
    if not result.success:
        raise HTTPException(
            status_code=STATUS_BY_CODE.get(result.code or "", 400),
            detail={"message": result.message, "code": result.code},
        )
    return result.as_dict()
