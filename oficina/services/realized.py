"""
Services réalisés : lecture et suivi.

Créés uniquement par la conversion d'un devis. Ici on ne touche qu'à
l'en-tête (statut, date, notes...) : les lignes et les totaux restent
ceux de la conversion, le stock est déjà sorti.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from sqlalchemy import select
from sqlalchemy.orm import selectinload

from oficina.app.db.models.models_v1 import RealizedService
from oficina.app.schemas.order import RealizedServiceRead
from oficina.services.errors import NotFound, ValidationFailed
from oficina.services.normalizer import normalize_date, normalize_int, normalize_number, normalize_text
from oficina.services.results import ServiceResult, guarded
from oficina.services.unit_of_work import SessionFactory, UnitOfWork

logger = logging.getLogger(__name__)

TEXT_FIELDS = ("client_name", "client_contact", "equipment", "description", "notes")
COST_FIELDS = ("service_cost", "products_cost")


def serialize_realized(service: RealizedService) -> dict[str, Any]:
    return RealizedServiceRead.model_validate(service).model_dump()


def _require_id(service_id: Any) -> int:
    sid = normalize_int(service_id)
    if sid is None:
        raise ValidationFailed("Realized service id is required")
    return sid


class RealizedServiceStore:
    def __init__(self, session_factory: SessionFactory | None = None):
        self._session_factory = session_factory

    @guarded("list realized services")
    def list_services(self, status: Any = None) -> ServiceResult:
        stmt = (
            select(RealizedService)
            .options(selectinload(RealizedService.items))
            .order_by(RealizedService.created_at.desc(), RealizedService.id.desc())
        )
        wanted = normalize_text(status)
        if wanted is not None:
            stmt = stmt.where(RealizedService.status == wanted)

        with UnitOfWork(self._session_factory) as uow:
            data = [serialize_realized(s) for s in uow.session.execute(stmt).scalars().all()]
        return ServiceResult.ok("Realized services listed", data)

    @guarded("get realized service")
    def get_service(self, service_id: Any) -> ServiceResult:
        sid = _require_id(service_id)
        with UnitOfWork(self._session_factory) as uow:
            service = uow.session.get(RealizedService, sid)
            if service is None:
                raise NotFound("Realized service not found")
            data = serialize_realized(service)
        return ServiceResult.ok("Realized service found", data)

    @guarded("update realized service")
    def update_service(self, service_id: Any, payload: Mapping[str, Any]) -> ServiceResult:
        """
        Mise à jour partielle de l'en-tête. Les coûts saisis après coup
        recalculent total_cost ; total_value n'est jamais modifié.
        """
        sid = _require_id(service_id)

        with UnitOfWork(self._session_factory) as uow:
            service = uow.session.get(RealizedService, sid)
            if service is None:
                raise NotFound("Realized service not found")

            status = normalize_text(payload.get("status"))
            if status is not None:
                service.status = status
            if "service_date" in payload:
                service.service_date = normalize_date(payload.get("service_date"))
            for field in TEXT_FIELDS:
                if field in payload:
                    setattr(service, field, normalize_text(payload.get(field)))

            for field in COST_FIELDS:
                if field not in payload:
                    continue
                cost = normalize_number(payload.get(field))
                if cost is None or cost < 0:
                    raise ValidationFailed(f"{field} must be a non-negative number")
                setattr(service, field, cost)
            service.total_cost = round(float(service.service_cost or 0) + float(service.products_cost or 0), 2)

            uow.session.flush()
            data = serialize_realized(service)
            uow.commit()

        logger.info("realized_service.updated", extra={"service_id": sid, "status": data["status"]})
        return ServiceResult.ok("Realized service updated", data)
