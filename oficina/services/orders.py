"""
Devis (orçamentos) : en-tête + lignes.

Règle métier :
    items_value = SUM(quantity * price) des lignes, à l'écriture
    total_value = valeur explicite de l'appelant, sinon service_value + items_value

Une mise à jour remplace TOUTES les lignes (delete puis insert, pas de diff).
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Mapping

from sqlalchemy import delete, select
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import set_committed_value

from oficina.app.db.models.core_types import ORDER_STATUS_DEFAULT
from oficina.app.db.models.models_v1 import Order, OrderItem
from oficina.app.schemas.order import OrderRead
from oficina.services.catalog import DatabaseServiceCatalog, ServiceCatalog
from oficina.services.errors import NotFound, ValidationFailed
from oficina.services.normalizer import (
    normalize_date,
    normalize_int,
    normalize_number,
    normalize_text,
)
from oficina.services.results import ServiceResult, guarded
from oficina.services.unit_of_work import SessionFactory, UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_ITEM_NAME = "Produto"


def build_item(item: Mapping[str, Any]) -> dict[str, Any]:
    quantity = normalize_number(item.get("quantity"), 0)
    price = normalize_number(item.get("price"), 0)
    return {
        "product_id": normalize_int(item.get("product_id")),
        "product_name": normalize_text(item.get("product_name")) or DEFAULT_ITEM_NAME,
        "quantity": quantity,
        "price": price,
        "total": round(quantity * price, 2),
    }


def _is_supplied(value: Any) -> bool:
    return value is not None and not (isinstance(value, str) and not value.strip())


def serialize_order(order: Order) -> dict[str, Any]:
    return OrderRead.model_validate(order).model_dump()


def require_order_id(order_id: Any) -> int:
    oid = normalize_int(order_id)
    if oid is None:
        raise ValidationFailed("Order id is required")
    return oid


class OrderStore:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        catalog: ServiceCatalog | None = None,
    ):
        self._session_factory = session_factory
        self._catalog = catalog or DatabaseServiceCatalog(session_factory)

    # ---------- helpers ----------
    def _resolve_service(self, payload: Mapping[str, Any]) -> tuple[float, str | None]:
        description = normalize_text(payload.get("service_description"))
        explicit = payload.get("service_value")
        if _is_supplied(explicit):
            return normalize_number(explicit, 0), description

        service_id = payload.get("service_id")
        if not _is_supplied(service_id):
            return 0.0, description

        entry = self._catalog.lookup(service_id)
        if entry is None:
            logger.info("order.catalog_miss", extra={"service_id": service_id})
            return 0.0, description
        return entry.price, description or entry.name

    def _prepare(self, payload: Mapping[str, Any]) -> tuple[dict[str, Any], list[dict[str, Any]]]:
        raw_items = payload.get("items")
        if not isinstance(raw_items, (list, tuple)):
            raw_items = []
        items = [build_item(it) for it in raw_items if isinstance(it, Mapping)]
        for it in items:
            # une ligne liée devra sortir du stock à la conversion
            if it["product_id"] is not None and round(it["quantity"], 3) <= 0:
                raise ValidationFailed(f"Quantity must be greater than zero (product {it['product_id']})")

        items_value = round(sum(it["total"] for it in items), 2)
        service_value, service_description = self._resolve_service(payload)

        explicit_total = next(
            (payload.get(key) for key in ("estimated_value", "total_value") if _is_supplied(payload.get(key))),
            None,
        )
        if explicit_total is not None:
            total_value = normalize_number(explicit_total, 0)
        else:
            total_value = round(service_value + items_value, 2)

        header = {
            "client_id": normalize_text(payload.get("client_id")),
            "client_name": normalize_text(payload.get("client_name")),
            "client_contact": normalize_text(payload.get("client_contact")),
            "equipment": normalize_text(payload.get("equipment")),
            "problem": normalize_text(payload.get("problem")),
            "service_id": normalize_int(payload.get("service_id")),
            "service_description": service_description,
            "service_value": service_value,
            "items_value": items_value,
            "total_value": total_value,
            "validity": normalize_date(payload.get("validity")),
            "status": normalize_text(payload.get("status")) or ORDER_STATUS_DEFAULT,
            "notes": normalize_text(payload.get("notes")),
        }
        return header, items

    @staticmethod
    def _insert_items(session: Session, order_id: int, items: list[dict[str, Any]]) -> None:
        for it in items:
            session.add(OrderItem(order_id=order_id, **it))
        session.flush()

    # ---------- public ----------
    @guarded("create order")
    def create(self, payload: Mapping[str, Any]) -> ServiceResult:
        # lecture catalogue AVANT d'ouvrir la transaction
        header, items = self._prepare(payload)

        with UnitOfWork(self._session_factory) as uow:
            # flush : INSERT en-tête puis lignes
            order = Order(**header, items=[OrderItem(**it) for it in items])
            uow.session.add(order)
            uow.session.flush()

            data = serialize_order(order)
            uow.commit()

        logger.info(
            "order.created",
            extra={"order_id": data["id"], "items": len(items), "total_value": data["total_value"]},
        )
        return ServiceResult.ok("Order created", data)

    @guarded("update order")
    def update(self, order_id: Any, payload: Mapping[str, Any]) -> ServiceResult:
        oid = require_order_id(order_id)
        header, items = self._prepare(payload)

        with UnitOfWork(self._session_factory) as uow:
            order = uow.session.get(Order, oid)
            if order is None:
                raise NotFound("Order not found")

            for key, value in header.items():
                setattr(order, key, value)

            uow.session.execute(delete(OrderItem).where(OrderItem.order_id == oid))
            self._insert_items(uow.session, oid, items)

            uow.session.refresh(order)
            data = serialize_order(order)
            uow.commit()

        logger.info("order.updated", extra={"order_id": oid, "items": len(items)})
        return ServiceResult.ok("Order updated", data)

    @guarded("delete order")
    def delete(self, order_id: Any) -> ServiceResult:
        oid = require_order_id(order_id)

        with UnitOfWork(self._session_factory) as uow:
            order = uow.session.get(Order, oid)
            if order is None:
                raise NotFound("Order not found")
            data = serialize_order(order)

            # les lignes partent par ON DELETE CASCADE
            uow.session.execute(delete(Order).where(Order.id == oid))
            uow.commit()

        logger.info("order.deleted", extra={"order_id": oid})
        return ServiceResult.ok("Order deleted", data)

    @guarded("get order")
    def get(self, order_id: Any) -> ServiceResult:
        oid = require_order_id(order_id)
        with UnitOfWork(self._session_factory) as uow:
            order = uow.session.get(Order, oid)
            if order is None:
                raise NotFound("Order not found")
            data = serialize_order(order)
        return ServiceResult.ok("Order found", data)

    @guarded("list orders")
    def list_orders(self) -> ServiceResult:
        with UnitOfWork(self._session_factory) as uow:
            orders = (
                uow.session.execute(select(Order).order_by(Order.created_at.desc(), Order.id.desc()))
                .scalars()
                .all()
            )
            if not orders:
                return ServiceResult.ok("Orders listed", [])

            items = (
                uow.session.execute(
                    select(OrderItem)
                    .where(OrderItem.order_id.in_([o.id for o in orders]))
                    .order_by(OrderItem.id)
                )
                .scalars()
                .all()
            )
            by_order: dict[int, list[OrderItem]] = defaultdict(list)
            for it in items:
                by_order[it.order_id].append(it)

            data = []
            for order in orders:
                set_committed_value(order, "items", by_order.get(order.id, []))
                data.append(serialize_order(order))

        return ServiceResult.ok("Orders listed", data)
