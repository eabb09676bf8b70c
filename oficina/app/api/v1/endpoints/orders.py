from __future__ import annotations

from datetime import date

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from oficina.app.api.deps import (
    get_conversion,
    get_exporter,
    get_order_store,
    unwrap,
)
from oficina.services.conversion import ConversionWorkflow
from oficina.services.export import OrderExporter
from oficina.services.orders import OrderStore

router = APIRouter(prefix="/orders")

# nombres en float | str : "12,50" est normalisé côté service
Number = float | str | None


# ---------- Schemas ----------
class OrderItemIn(BaseModel):
    product_id: int | None = None
    product_name: str | None = None
    quantity: Number = None
    price: Number = None


class OrderIn(BaseModel):
    client_id: str | None = None
    client_name: str | None = None
    client_contact: str | None = None
    equipment: str | None = None
    problem: str | None = None
    service_id: int | None = None
    service_description: str | None = None
    service_value: Number = None
    estimated_value: Number = None
    validity: date | str | None = None
    status: str | None = None
    notes: str | None = None
    items: list[OrderItemIn] = []


class ConvertIn(BaseModel):
    created_by: str | None = None


class ExportIn(BaseModel):
    destination: str | None = None


# ---------- Endpoints ----------
@router.get("")
def list_orders(store: OrderStore = Depends(get_order_store)):
    return unwrap(store.list_orders())


@router.get("/{order_id}")
def get_order(order_id: int, store: OrderStore = Depends(get_order_store)):
    return unwrap(store.get(order_id))


@router.post("", status_code=201)
def create_order(payload: OrderIn, store: OrderStore = Depends(get_order_store)):
    return unwrap(store.create(payload.model_dump(exclude_unset=True)))


@router.put("/{order_id}")
def update_order(order_id: int, payload: OrderIn, store: OrderStore = Depends(get_order_store)):
    return unwrap(store.update(order_id, payload.model_dump(exclude_unset=True)))


@router.delete("/{order_id}")
def delete_order(order_id: int, store: OrderStore = Depends(get_order_store)):
    return unwrap(store.delete(order_id))


@router.post("/{order_id}/convert")
def convert_order(
    order_id: int,
    payload: ConvertIn | None = None,
    workflow: ConversionWorkflow = Depends(get_conversion),
):
    created_by = payload.created_by if payload else None
    return unwrap(workflow.convert(order_id, created_by=created_by))


@router.post("/{order_id}/export")
def export_order(
    order_id: int,
    payload: ExportIn | None = None,
    exporter: OrderExporter = Depends(get_exporter),
):
    destination = payload.destination if payload else None
    return unwrap(exporter.export(order_id, destination))
