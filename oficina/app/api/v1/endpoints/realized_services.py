from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from oficina.app.api.deps import get_realized_store, unwrap
from oficina.services.realized import RealizedServiceStore

router = APIRouter(prefix="/realized-services")

Number = float | str | None


class RealizedServiceIn(BaseModel):
    status: str | None = None
    service_date: str | None = None
    client_name: str | None = None
    client_contact: str | None = None
    equipment: str | None = None
    description: str | None = None
    notes: str | None = None
    service_cost: Number = None
    products_cost: Number = None


@router.get("")
def list_realized_services(
    status: str | None = None,
    store: RealizedServiceStore = Depends(get_realized_store),
):
    return unwrap(store.list_services(status))


@router.get("/{service_id}")
def get_realized_service(service_id: int, store: RealizedServiceStore = Depends(get_realized_store)):
    return unwrap(store.get_service(service_id))


@router.put("/{service_id}")
def update_realized_service(
    service_id: int,
    payload: RealizedServiceIn,
    store: RealizedServiceStore = Depends(get_realized_store),
):
    return unwrap(store.update_service(service_id, payload.model_dump(exclude_unset=True)))
