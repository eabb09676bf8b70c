from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel

from oficina.app.api.deps import get_ledger, get_product_registry, get_reports, unwrap
from oficina.services.inventory import StockLedger
from oficina.services.products import ProductRegistry
from oficina.services.reports import StockReports

router = APIRouter(prefix="/products")

Number = float | str | None


# ---------- Schemas ----------
class ProductIn(BaseModel):
    name: str | None = None
    code: str | None = None
    category: str | None = None
    sku: str | None = None
    sale_price: Number = None
    cost: Number = None
    stock: Number = None
    unit: str | None = None
    description: str | None = None
    active: bool | None = None
    created_by: str | None = None


class StockMovementIn(BaseModel):
    product_id: int | None = None
    movement_type: str | None = None
    quantity: Number = None
    description: str | None = None
    created_by: str | None = None


# ---------- Endpoints ----------
@router.get("")
def list_products(registry: ProductRegistry = Depends(get_product_registry)):
    return unwrap(registry.list_products())


@router.post("", status_code=201)
def create_product(payload: ProductIn, registry: ProductRegistry = Depends(get_product_registry)):
    return unwrap(registry.create_product(payload.model_dump(exclude_unset=True)))


@router.get("/stock-movements")
def list_stock_movements(
    product_id: int | None = None,
    limit: int | None = Query(default=None, ge=1),
    ledger: StockLedger = Depends(get_ledger),
):
    return unwrap(ledger.list_movements(product_id=product_id, limit=limit))


@router.post("/stock-movements", status_code=201)
def move_stock(payload: StockMovementIn, ledger: StockLedger = Depends(get_ledger)):
    return unwrap(ledger.move_stock_by_product(payload.model_dump()))


@router.get("/ranking")
def product_ranking(
    start: str | None = None,
    end: str | None = None,
    limit: int = Query(default=5, ge=1, le=50),
    reports: StockReports = Depends(get_reports),
):
    return unwrap(reports.rank_products_by_exits(start=start, end=end, limit=limit))


@router.put("/{product_id}")
def update_product(
    product_id: int,
    payload: ProductIn,
    registry: ProductRegistry = Depends(get_product_registry),
):
    return unwrap(registry.update_product(product_id, payload.model_dump(exclude_unset=True)))


@router.delete("/{product_id}")
def delete_product(product_id: int, registry: ProductRegistry = Depends(get_product_registry)):
    return unwrap(registry.delete_product(product_id))
