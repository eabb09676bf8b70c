"""
Journal de stock (ledger).

Toute écriture de Product.stock passe par ici. Chaque mouvement :
- relit le stock courant sous verrou (SELECT ... FOR UPDATE)
- calcule le nouveau stock (entrada : +, saida : -)
- met à jour le produit puis ajoute une ligne stock_movements

Peut tourner seul (sa propre UnitOfWork) ou dans l'UnitOfWork d'un
appelant (conversion de devis) : dans ce cas il ne commit/rollback jamais.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from sqlalchemy import Select, select
from sqlalchemy.orm import Session

from oficina.app.core.config import get_settings
from oficina.app.db.models.core_types import StockMovementType, StockOrigin, enum_values
from oficina.app.db.models.models_v1 import Product, StockMovement
from oficina.app.schemas.stock_movement import StockMovementRead
from oficina.services.errors import NotFound, ValidationFailed
from oficina.services.normalizer import (
    normalize_enum,
    normalize_int,
    normalize_movement_type,
    normalize_number,
    normalize_text,
)
from oficina.services.results import ServiceResult, guarded
from oficina.services.unit_of_work import SessionFactory, UnitOfWork

logger = logging.getLogger(__name__)

STOCK_ORIGINS = frozenset(enum_values(StockOrigin))

DEFAULT_MOVEMENTS_LIMIT = 50
MAX_MOVEMENTS_LIMIT = 500


def product_lock_stmt(product_id: int) -> Select:
    # populate_existing : le verrou relit la ligne même si le Product est déjà dans la session
    return (
        select(Product)
        .where(Product.id == product_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )


def lock_product(session: Session, product_id: int) -> Product | None:
    return session.execute(product_lock_stmt(product_id)).scalar_one_or_none()


class StockLedger:
    def __init__(self, session_factory: SessionFactory | None = None):
        self._session_factory = session_factory

    # ---------- core ----------
    def _apply(
        self,
        session: Session,
        items: Iterable[Mapping[str, Any]],
        *,
        movement_type: Any,
        origin: Any,
        reference_id: Any,
        created_by: Any,
    ) -> list[dict[str, Any]]:
        direction = normalize_movement_type(
            movement_type.value if isinstance(movement_type, StockMovementType) else movement_type
        )
        if direction is None:
            raise ValidationFailed("Movement type must be 'entrada' or 'saida'")

        origin_value = normalize_enum(
            origin.value if isinstance(origin, StockOrigin) else origin,
            STOCK_ORIGINS,
        )
        if origin_value is None:
            raise ValidationFailed("Invalid stock movement origin")

        items = list(items or [])
        if not items:
            raise ValidationFailed("No items to move")

        actor = normalize_text(created_by) or get_settings().default_actor
        reference = normalize_text(reference_id)

        summaries: list[dict[str, Any]] = []
        for item in items:
            product_id = normalize_int(item.get("product_id"))
            if product_id is None:
                # ligne texte libre : rien à mouvementer
                logger.debug(
                    "stock.skip_unlinked_item",
                    extra={"product_name": normalize_text(item.get("product_name"))},
                )
                continue

            # arrondi à la précision de la colonne avant tout contrôle
            quantity = round(normalize_number(item.get("quantity"), 0), 3)
            if quantity <= 0:
                raise ValidationFailed(f"Quantity must be greater than zero (product {product_id})")

            product = lock_product(session, product_id)
            if product is None:
                raise NotFound(f"Product {product_id} not found")

            previous = float(product.stock or 0)
            if direction == StockMovementType.entrada.value:
                current = round(previous + quantity, 3)
            else:
                # pas de plancher à zéro : le stock négatif est accepté
                current = round(previous - quantity, 3)

            product.stock = current
            session.add(
                StockMovement(
                    product_id=product.id,
                    product_name=product.name,
                    movement_type=StockMovementType(direction),
                    quantity=quantity,
                    previous_stock=previous,
                    current_stock=current,
                    description=normalize_text(item.get("description")),
                    origin=StockOrigin(origin_value),
                    reference_id=reference,
                    created_by=actor,
                )
            )
            session.flush()

            logger.info(
                "stock.%s",
                direction,
                extra={
                    "product_id": product.id,
                    "qty": quantity,
                    "previous_stock": previous,
                    "current_stock": current,
                    "origin": origin_value,
                    "reference_id": reference,
                },
            )
            summaries.append(
                {
                    "product_id": product.id,
                    "product_name": product.name,
                    "previous_stock": previous,
                    "quantity": quantity,
                    "current_stock": current,
                }
            )

        return summaries

    # ---------- public ----------
    @guarded("record stock movements")
    def record_movements(
        self,
        items: Iterable[Mapping[str, Any]],
        *,
        movement_type: Any,
        origin: Any = StockOrigin.manual,
        reference_id: Any = None,
        created_by: Any = None,
        uow: UnitOfWork | None = None,
    ) -> ServiceResult:
        """
        Mouvemente un lot de lignes, dans l'ordre reçu.

        Avec `uow` : participe à la transaction de l'appelant, qui reste
        seul maître du commit/rollback (un échec est renvoyé, pas annulé ici).
        Sans `uow` : tout le lot ou rien.
        """
        kwargs = dict(
            movement_type=movement_type,
            origin=origin,
            reference_id=reference_id,
            created_by=created_by,
        )
        if uow is not None:
            data = self._apply(uow.session, items, **kwargs)
        else:
            with UnitOfWork(self._session_factory) as own:
                data = self._apply(own.session, items, **kwargs)
                own.commit()

        return ServiceResult.ok("Stock updated", data)

    @guarded("move stock")
    def move_stock_by_product(self, payload: Mapping[str, Any]) -> ServiceResult:
        product_id = normalize_int(payload.get("product_id"))
        if product_id is None:
            raise ValidationFailed("Product id is required")

        movement_type = normalize_movement_type(payload.get("movement_type"))
        if movement_type is None:
            raise ValidationFailed("Movement type must be 'entrada' or 'saida'")

        quantity = round(normalize_number(payload.get("quantity"), 0), 3)
        if quantity <= 0:
            raise ValidationFailed("Quantity must be greater than zero")

        description = normalize_text(payload.get("description"))

        with UnitOfWork(self._session_factory) as uow:
            data = self._apply(
                uow.session,
                [{"product_id": product_id, "quantity": quantity, "description": description}],
                movement_type=movement_type,
                origin=StockOrigin.manual,
                reference_id=None,
                created_by=payload.get("created_by"),
            )
            uow.commit()

        return ServiceResult.ok("Stock movement recorded", {**data[0], "description": description})

    @guarded("adjust stock")
    def adjust_stock(
        self,
        product_id: Any,
        new_stock: Any,
        *,
        description: str | None = None,
        created_by: Any = None,
        uow: UnitOfWork | None = None,
    ) -> ServiceResult:
        """
        Ajustement d'inventaire : le delta est calculé et passé comme
        entrada/saida d'origine `ajuste_sistema`.
        """
        pid = normalize_int(product_id)
        if pid is None:
            raise ValidationFailed("Product id is required")
        target = normalize_number(new_stock)
        if target is None:
            raise ValidationFailed("New stock value is required")

        def _adjust(session: Session) -> list[dict[str, Any]]:
            product = lock_product(session, pid)
            if product is None:
                raise NotFound(f"Product {pid} not found")

            delta = round(target - float(product.stock or 0), 3)
            if delta == 0:
                return []

            return self._apply(
                session,
                [{"product_id": pid, "quantity": abs(delta), "description": description or "Ajuste de estoque"}],
                movement_type=StockMovementType.entrada if delta > 0 else StockMovementType.saida,
                origin=StockOrigin.ajuste_sistema,
                reference_id=pid,
                created_by=created_by,
            )

        if uow is not None:
            data = _adjust(uow.session)
        else:
            with UnitOfWork(self._session_factory) as own:
                data = _adjust(own.session)
                own.commit()

        message = "Stock adjusted" if data else "Stock unchanged"
        return ServiceResult.ok(message, data)

    @guarded("list stock movements")
    def list_movements(self, product_id: Any = None, limit: Any = None) -> ServiceResult:
        safe_limit = normalize_int(limit) or DEFAULT_MOVEMENTS_LIMIT
        safe_limit = max(1, min(safe_limit, MAX_MOVEMENTS_LIMIT))

        stmt = select(StockMovement).order_by(StockMovement.created_at.desc(), StockMovement.id.desc())

        pid = normalize_int(product_id)
        if pid is not None:
            stmt = stmt.where(StockMovement.product_id == pid)

        with UnitOfWork(self._session_factory) as uow:
            rows = uow.session.execute(stmt.limit(safe_limit)).scalars().all()
            movements = [StockMovementRead.model_validate(mv).model_dump() for mv in rows]

        return ServiceResult.ok("Stock movements listed", movements)
