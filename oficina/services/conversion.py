"""
Conversion devis -> service réalisé.

Une seule UnitOfWork couvre les quatre tables :
    realized_services, realized_service_items, products/stock_movements, orders

Séquence :
    1. lire le devis (absent -> not_found, rollback)
    2. lire ses lignes
    3. créer le service réalisé (coûts à zéro, statut em_execucao, date du jour)
    4. copier les lignes 1:1
    5. sortie de stock (saida / orcamento) dans la MÊME transaction
    6. échec du ledger -> rollback complet, message du ledger renvoyé
    7. devis -> convertido, commit

Pas de garde d'idempotence : deux appels = deux services réalisés
et double sortie de stock.
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import select

from oficina.app.db.models.core_types import (
    ORDER_STATUS_CONVERTED,
    REALIZED_STATUS_DEFAULT,
    StockMovementType,
    StockOrigin,
)
from oficina.app.db.models.models_v1 import (
    Order,
    OrderItem,
    RealizedService,
    RealizedServiceItem,
)
from oficina.app.schemas.order import RealizedServiceRead
from oficina.services.errors import NotFound, ServiceError
from oficina.services.inventory import StockLedger
from oficina.services.normalizer import normalize_number
from oficina.services.orders import DEFAULT_ITEM_NAME, require_order_id
from oficina.services.results import ServiceResult, guarded
from oficina.services.unit_of_work import SessionFactory, UnitOfWork

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "Serviço realizado"


def _realized_from_order(order: Order, items: list[OrderItem]) -> RealizedService:
    return RealizedService(
        order_id=order.id,
        client_id=order.client_id,
        client_name=order.client_name,
        client_contact=order.client_contact,
        service_id=order.service_id,
        service_name=order.service_description or DEFAULT_SERVICE_NAME,
        equipment=order.equipment,
        description=order.problem,
        service_date=date.today(),
        status=REALIZED_STATUS_DEFAULT,
        service_value=normalize_number(order.service_value, 0),
        products_value=normalize_number(order.items_value, 0),
        total_value=normalize_number(order.total_value, 0),
        service_cost=0,
        products_cost=0,
        total_cost=0,
        notes=order.notes,
        items=[
            RealizedServiceItem(
                product_id=it.product_id,
                product_name=it.product_name or DEFAULT_ITEM_NAME,
                quantity=normalize_number(it.quantity, 0),
                price=normalize_number(it.price, 0),
                total=normalize_number(it.total, 0),
                unit_cost=0,
                total_cost=0,
            )
            for it in items
        ],
    )


class ConversionWorkflow:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        ledger: StockLedger | None = None,
    ):
        self._session_factory = session_factory
        self._ledger = ledger or StockLedger(session_factory)

    @guarded("convert order")
    def convert(self, order_id: Any, *, created_by: Any = None) -> ServiceResult:
        oid = require_order_id(order_id)

        with UnitOfWork(self._session_factory) as uow:
            session = uow.session

            order = session.get(Order, oid)
            if order is None:
                raise NotFound("Order not found")

            items = list(
                session.execute(
                    select(OrderItem).where(OrderItem.order_id == oid).order_by(OrderItem.id)
                )
                .scalars()
                .all()
            )

            realized = _realized_from_order(order, items)
            session.add(realized)
            session.flush()  # get realized.id

            stock: list[dict[str, Any]] = []
            if items:
                result = self._ledger.record_movements(
                    [
                        {
                            "product_id": it.product_id,
                            "product_name": it.product_name,
                            "quantity": it.quantity,
                            "description": f"Orçamento {oid} convertido",
                        }
                        for it in items
                    ],
                    movement_type=StockMovementType.saida,
                    origin=StockOrigin.orcamento,
                    reference_id=oid,
                    created_by=created_by,
                    uow=uow,
                )
                if not result.success:
                    # sortie du `with` -> rollback de tout ce qui précède
                    raise ServiceError(result.message, code=result.code)
                stock = result.data

            order.status = ORDER_STATUS_CONVERTED
            session.flush()

            data = {
                "service_realized": RealizedServiceRead.model_validate(realized).model_dump(),
                "stock": stock,
            }
            uow.commit()

        logger.info(
            "order.converted",
            extra={
                "order_id": oid,
                "service_realized_id": data["service_realized"]["id"],
                "items": len(items),
            },
        )
        return ServiceResult.ok("Order converted to realized service", data)
