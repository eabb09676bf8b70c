from datetime import datetime

from pydantic import BaseModel, ConfigDict

from oficina.app.db.models.core_types import FinanceStatus, FinanceType, PaymentChannel


class FinanceMovementRead(BaseModel):
    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int
    title: str
    category: str | None
    movement_date: datetime
    value: float
    status: FinanceStatus
    type: FinanceType
    channel: PaymentChannel | None
    notes: str | None
    service_realized_id: int | None
    created_at: datetime
    updated_at: datetime
