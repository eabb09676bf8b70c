from datetime import datetime

from pydantic import BaseModel, ConfigDict

from oficina.app.db.models.core_types import StockMovementType, StockOrigin


class StockMovementRead(BaseModel):
    """
    Journal de stock (READ ONLY)
    - append-only : jamais modifié ni supprimé
    - current_stock == previous_stock ± quantity
    """

    model_config = ConfigDict(from_attributes=True, use_enum_values=True)

    id: int
    product_id: int | None
    product_name: str | None
    movement_type: StockMovementType
    quantity: float
    previous_stock: float
    current_stock: float
    description: str | None
    origin: StockOrigin
    reference_id: str | None
    created_by: str | None
    created_at: datetime


class ProductRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str | None
    name: str
    category: str | None
    sku: str | None
    sale_price: float
    cost: float | None
    stock: float
    unit: str | None
    description: str | None
    active: bool
