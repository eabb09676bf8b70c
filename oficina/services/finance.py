"""
Mouvements financiers + vue de réconciliation.

Règle de lecture (aucune migration, la base n'est jamais modifiée) :
- un mouvement lié à un service réalisé prend le total du service comme
  référence ; si le lien ne se résout pas, la ligne est écartée
- valeur stockée ≈ 100 × total du service (ancien bug d'échelle,
  centimes enregistrés comme reais) -> on renvoie le total du service
"""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta
from typing import Any, Iterable, Mapping

from sqlalchemy import select

from oficina.app.db.models.core_types import FinanceStatus, FinanceType, PaymentChannel
from oficina.app.db.models.models_v1 import FinanceMovement, RealizedService, utcnow
from oficina.app.schemas.finance import FinanceMovementRead
from oficina.services.errors import NotFound, ValidationFailed
from oficina.services.normalizer import (
    normalize_channel,
    normalize_datetime,
    normalize_int,
    normalize_number,
    normalize_status,
    normalize_text,
    normalize_type,
)
from oficina.services.results import ServiceResult, guarded
from oficina.services.unit_of_work import SessionFactory, UnitOfWork

logger = logging.getLogger(__name__)

SCALE_FACTOR = 100
RECONCILE_EPSILON = 0.01


def reconcile_movement_rows(rows: Iterable[Mapping[str, Any]]) -> list[dict[str, Any]]:
    reconciled: list[dict[str, Any]] = []
    for row in rows:
        raw_total = row.get("service_total")
        if row.get("service_realized_id") is not None and raw_total is None:
            # lien vers un service introuvable : intégrité douteuse, on n'affiche pas
            continue

        value = normalize_number(row.get("value"), 0)
        service_total = normalize_number(raw_total)
        if (
            service_total is not None
            and service_total > 0
            and value > 0
            and abs(value - service_total * SCALE_FACTOR) < RECONCILE_EPSILON
        ):
            value = service_total

        reconciled.append({**row, "value": value})
    return reconciled


def _serialize(movement: FinanceMovement) -> dict[str, Any]:
    return FinanceMovementRead.model_validate(movement).model_dump()


def _enum_filter(filters: Mapping[str, Any], key: str, normalizer) -> str | None:
    raw = filters.get(key)
    if normalize_text(raw) is None:
        return None
    value = normalizer(raw)
    if value is None:
        raise ValidationFailed(f"Invalid {key} filter")
    return value


def _is_date_only(raw: Any) -> bool:
    if isinstance(raw, datetime):
        return False
    if isinstance(raw, date):
        return True
    text = normalize_text(raw)
    return text is not None and len(text) == 10


class FinanceService:
    def __init__(self, session_factory: SessionFactory | None = None):
        self._session_factory = session_factory

    @guarded("list finance movements")
    def list_movements(self, filters: Mapping[str, Any] | None = None) -> ServiceResult:
        filters = filters or {}

        stmt = (
            select(FinanceMovement, RealizedService.total_value.label("service_total"))
            .outerjoin(RealizedService, RealizedService.id == FinanceMovement.service_realized_id)
            .order_by(FinanceMovement.movement_date.desc(), FinanceMovement.id.desc())
        )

        type_ = _enum_filter(filters, "type", normalize_type)
        if type_ is not None:
            stmt = stmt.where(FinanceMovement.type == FinanceType(type_))

        status = _enum_filter(filters, "status", normalize_status)
        if status is not None:
            stmt = stmt.where(FinanceMovement.status == FinanceStatus(status))

        channel = _enum_filter(filters, "channel", normalize_channel)
        if channel is not None:
            stmt = stmt.where(FinanceMovement.channel == PaymentChannel(channel))

        category = normalize_text(filters.get("category"))
        if category is not None:
            stmt = stmt.where(FinanceMovement.category == category)

        date_from = normalize_datetime(filters.get("date_from"))
        if date_from is not None:
            stmt = stmt.where(FinanceMovement.movement_date >= date_from)

        date_to = normalize_datetime(filters.get("date_to"))
        if date_to is not None:
            if _is_date_only(filters.get("date_to")):
                # borne inclusive : toute la journée
                stmt = stmt.where(FinanceMovement.movement_date < date_to + timedelta(days=1))
            else:
                stmt = stmt.where(FinanceMovement.movement_date <= date_to)

        service_id = normalize_int(filters.get("service_realized_id"))
        if service_id is not None:
            stmt = stmt.where(FinanceMovement.service_realized_id == service_id)

        with UnitOfWork(self._session_factory) as uow:
            rows = [
                {**_serialize(mv), "date": mv.movement_date, "service_total": service_total}
                for mv, service_total in uow.session.execute(stmt).all()
            ]

        return ServiceResult.ok("Finance movements listed", reconcile_movement_rows(rows))

    @guarded("create finance movement")
    def create_movement(self, payload: Mapping[str, Any]) -> ServiceResult:
        title = normalize_text(payload.get("title"))
        type_ = normalize_type(payload.get("type"))
        value = normalize_number(payload.get("value"))

        if not title:
            raise ValidationFailed("Title is required")
        if not type_:
            raise ValidationFailed("Movement type is required")
        if value is None:
            raise ValidationFailed("Value is required")

        movement_date = utcnow()
        if normalize_text(payload.get("date")) is not None or isinstance(payload.get("date"), date):
            movement_date = normalize_datetime(payload.get("date"))
            if movement_date is None:
                raise ValidationFailed("Invalid movement date")

        with UnitOfWork(self._session_factory) as uow:
            movement = FinanceMovement(
                title=title,
                category=normalize_text(payload.get("category")),
                movement_date=movement_date,
                value=value,
                status=FinanceStatus(normalize_status(payload.get("status")) or FinanceStatus.paid.value),
                type=FinanceType(type_),
                channel=PaymentChannel(ch) if (ch := normalize_channel(payload.get("channel"))) else None,
                notes=normalize_text(payload.get("notes")),
                service_realized_id=normalize_int(payload.get("service_realized_id")),
            )
            uow.session.add(movement)
            uow.session.flush()
            data = _serialize(movement)
            uow.commit()

        logger.info("finance.created", extra={"movement_id": data["id"], "type": type_, "value": value})
        return ServiceResult.ok("Finance movement recorded", data)

    @guarded("update finance movement")
    def update_movement(self, movement_id: Any, payload: Mapping[str, Any]) -> ServiceResult:
        mid = normalize_int(movement_id)
        if mid is None:
            raise ValidationFailed("Movement id is required")

        with UnitOfWork(self._session_factory) as uow:
            movement = uow.session.get(FinanceMovement, mid)
            if movement is None:
                raise NotFound("Finance movement not found")

            if "value" in payload:
                value = normalize_number(payload.get("value"))
                if value is None:
                    raise ValidationFailed("Value is required")
                movement.value = value

            movement.title = normalize_text(payload.get("title")) or movement.title
            movement.category = normalize_text(payload.get("category")) or movement.category
            movement.movement_date = normalize_datetime(payload.get("date")) or movement.movement_date
            movement.notes = normalize_text(payload.get("notes")) or movement.notes

            if (type_ := normalize_type(payload.get("type"))) is not None:
                movement.type = FinanceType(type_)
            if (status := normalize_status(payload.get("status"))) is not None:
                movement.status = FinanceStatus(status)
            if (channel := normalize_channel(payload.get("channel"))) is not None:
                movement.channel = PaymentChannel(channel)

            uow.session.flush()
            data = _serialize(movement)
            uow.commit()

        logger.info("finance.updated", extra={"movement_id": mid})
        return ServiceResult.ok("Finance movement updated", data)

    @guarded("delete finance movement")
    def delete_movement(self, movement_id: Any) -> ServiceResult:
        mid = normalize_int(movement_id)
        if mid is None:
            raise ValidationFailed("Movement id is required")

        with UnitOfWork(self._session_factory) as uow:
            movement = uow.session.get(FinanceMovement, mid)
            if movement is None:
                raise NotFound("Finance movement not found")
            data = _serialize(movement)
            uow.session.delete(movement)
            uow.commit()

        logger.info("finance.deleted", extra={"movement_id": mid})
        return ServiceResult.ok("Finance movement deleted", data)
