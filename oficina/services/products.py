"""
Produits.

Le stock n'est JAMAIS écrit directement ici : le stock initial et les
corrections passent par le ledger (origine `ajuste_sistema`), dans la
même UnitOfWork que la création / mise à jour.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import func, select

from oficina.app.db.models.core_types import StockMovementType, StockOrigin
from oficina.app.db.models.models_v1 import Product, StockMovement
from oficina.app.schemas.stock_movement import ProductRead
from oficina.services.errors import NotFound, ServiceError, ValidationFailed
from oficina.services.inventory import StockLedger, lock_product
from oficina.services.normalizer import normalize_int, normalize_number, normalize_text
from oficina.services.results import ServiceResult, guarded
from oficina.services.unit_of_work import SessionFactory, UnitOfWork

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("code", "category", "sku", "unit", "description")


def _serialize(product: Product) -> dict[str, Any]:
    return ProductRead.model_validate(product).model_dump()


def _raise_on_failure(result: ServiceResult) -> ServiceResult:
    if not result.success:
        raise ServiceError(result.message, code=result.code)
    return result


class ProductRegistry:
    def __init__(
        self,
        session_factory: SessionFactory | None = None,
        ledger: StockLedger | None = None,
    ):
        self._session_factory = session_factory
        self._ledger = ledger or StockLedger(session_factory)

    @guarded("create product")
    def create_product(self, payload: Mapping[str, Any]) -> ServiceResult:
        name = normalize_text(payload.get("name"))
        if not name:
            raise ValidationFailed("Product name is required")

        sale_price = normalize_number(payload.get("sale_price"))
        if sale_price is None:
            raise ValidationFailed("Sale price is required")

        initial_stock = normalize_number(payload.get("stock"), 0)
        if initial_stock < 0:
            raise ValidationFailed("Initial stock cannot be negative")

        active = payload.get("active")

        with UnitOfWork(self._session_factory) as uow:
            product = Product(
                name=name,
                sale_price=sale_price,
                cost=normalize_number(payload.get("cost")),
                stock=0,
                active=active if isinstance(active, bool) else True,
                **{field: normalize_text(payload.get(field)) for field in TEXT_FIELDS},
            )
            uow.session.add(product)
            uow.session.flush()  # get product.id

            if initial_stock > 0:
                _raise_on_failure(
                    self._ledger.record_movements(
                        [{"product_id": product.id, "quantity": initial_stock, "description": "Estoque inicial"}],
                        movement_type=StockMovementType.entrada,
                        origin=StockOrigin.ajuste_sistema,
                        reference_id=product.id,
                        created_by=payload.get("created_by"),
                        uow=uow,
                    )
                )

            data = _serialize(product)
            uow.commit()

        logger.info("product.created", extra={"product_id": data["id"], "initial_stock": initial_stock})
        return ServiceResult.ok("Product created", data)

    @guarded("update product")
    def update_product(self, product_id: Any, payload: Mapping[str, Any]) -> ServiceResult:
        pid = normalize_int(product_id)
        if pid is None:
            raise ValidationFailed("Product id is required")

        with UnitOfWork(self._session_factory) as uow:
            # verrou AVANT lecture : le delta d'ajustement part du stock réel
            product = lock_product(uow.session, pid)
            if product is None:
                raise NotFound("Product not found")

            product.name = normalize_text(payload.get("name")) or product.name
            sale_price = normalize_number(payload.get("sale_price"))
            if sale_price is not None:
                product.sale_price = sale_price
            if "cost" in payload:
                product.cost = normalize_number(payload.get("cost"))
            for field in TEXT_FIELDS:
                if field in payload:
                    setattr(product, field, normalize_text(payload.get(field)))
            if isinstance(payload.get("active"), bool):
                product.active = payload["active"]
            uow.session.flush()

            if normalize_number(payload.get("stock")) is not None:
                _raise_on_failure(
                    self._ledger.adjust_stock(
                        pid,
                        payload.get("stock"),
                        created_by=payload.get("created_by"),
                        uow=uow,
                    )
                )

            uow.session.refresh(product)
            data = _serialize(product)
            uow.commit()

        logger.info("product.updated", extra={"product_id": pid})
        return ServiceResult.ok("Product updated", data)

    @guarded("list products")
    def list_products(self) -> ServiceResult:
        with UnitOfWork(self._session_factory) as uow:
            rows = uow.session.execute(select(Product).order_by(Product.name, Product.id)).scalars().all()
            data = [_serialize(p) for p in rows]
        return ServiceResult.ok("Products listed", data)

    @guarded("delete product")
    def delete_product(self, product_id: Any) -> ServiceResult:
        """
        Suppression définitive du produit.

        Le journal n'est pas effacé : les mouvements gardent product_name et
        perdent seulement le lien (FK ON DELETE SET NULL), comme les lignes
        de devis et de services réalisés.
        """
        pid = normalize_int(product_id)
        if pid is None:
            raise ValidationFailed("Product id is required")

        with UnitOfWork(self._session_factory) as uow:
            product = lock_product(uow.session, pid)
            if product is None:
                raise NotFound("Product not found")

            detached = uow.session.execute(
                select(func.count()).select_from(StockMovement).where(StockMovement.product_id == pid)
            ).scalar_one()
            data = _serialize(product)
            uow.session.delete(product)
            uow.commit()

        logger.info("product.deleted", extra={"product_id": pid, "detached_movements": detached})
        return ServiceResult.ok("Product deleted", data, detached_movements=detached)
