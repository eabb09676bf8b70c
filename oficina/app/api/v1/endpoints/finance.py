from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from oficina.app.api.deps import get_finance, unwrap
from oficina.services.finance import FinanceService

router = APIRouter(prefix="/finance")

Number = float | str | None


class FinanceMovementIn(BaseModel):
    title: str | None = None
    category: str | None = None
    date: str | None = None
    value: Number = None
    status: str | None = None
    type: str | None = None
    channel: str | None = None
    notes: str | None = None
    service_realized_id: int | None = None


@router.get("/movements")
def list_movements(
    type: str | None = None,
    status: str | None = None,
    channel: str | None = None,
    category: str | None = None,
    date_from: str | None = None,
    date_to: str | None = None,
    service_realized_id: int | None = None,
    finance: FinanceService = Depends(get_finance),
):
    filters = {
        "type": type,
        "status": status,
        "channel": channel,
        "category": category,
        "date_from": date_from,
        "date_to": date_to,
        "service_realized_id": service_realized_id,
    }
    return unwrap(finance.list_movements(filters))


@router.post("/movements", status_code=201)
def create_movement(payload: FinanceMovementIn, finance: FinanceService = Depends(get_finance)):
    return unwrap(finance.create_movement(payload.model_dump(exclude_unset=True)))


@router.put("/movements/{movement_id}")
def update_movement(
    movement_id: int,
    payload: FinanceMovementIn,
    finance: FinanceService = Depends(get_finance),
):
    return unwrap(finance.update_movement(movement_id, payload.model_dump(exclude_unset=True)))


@router.delete("/movements/{movement_id}")
def delete_movement(movement_id: int, finance: FinanceService = Depends(get_finance)):
    return unwrap(finance.delete_movement(movement_id))
