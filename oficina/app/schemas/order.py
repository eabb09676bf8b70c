from datetime import date, datetime

from pydantic import BaseModel, ConfigDict


class OrderItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    product_id: int | None
    product_name: str
    quantity: float
    price: float
    total: float


class OrderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    client_id: str | None
    client_name: str | None
    client_contact: str | None
    equipment: str | None
    problem: str | None
    service_id: int | None
    service_description: str | None
    service_value: float
    items_value: float
    total_value: float  # figé à l'écriture, jamais recalculé en lecture
    validity: date | None
    status: str
    notes: str | None
    created_at: datetime
    updated_at: datetime
    items: list[OrderItemRead] = []


class RealizedServiceItemRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    service_id: int
    product_id: int | None
    product_name: str
    quantity: float
    price: float
    total: float
    unit_cost: float
    total_cost: float


class RealizedServiceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int | None
    client_id: str | None
    client_name: str | None
    client_contact: str | None
    service_id: int | None
    service_name: str | None
    equipment: str | None
    description: str | None
    service_date: date | None
    status: str
    service_value: float
    products_value: float
    total_value: float
    service_cost: float
    products_cost: float
    total_cost: float
    notes: str | None
    items: list[RealizedServiceItemRead] = []
