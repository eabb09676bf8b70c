"""
Catalogue de services (lecture seule, collaborateur externe du devis).

Un échec de lecture n'est jamais fatal : on renvoie None et l'appelant
dégrade ses champs dérivés (valeur du service = 0).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from sqlalchemy.exc import SQLAlchemyError

from oficina.app.db.models.models_v1 import CatalogService
from oficina.services.normalizer import normalize_int, normalize_number
from oficina.services.unit_of_work import SessionFactory, UnitOfWork

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CatalogEntry:
    id: int
    name: str
    price: float


class ServiceCatalog(Protocol):
    def lookup(self, service_id: Any) -> CatalogEntry | None: ...


class DatabaseServiceCatalog:
    def __init__(self, session_factory: SessionFactory | None = None):
        self._session_factory = session_factory

    def lookup(self, service_id: Any) -> CatalogEntry | None:
        sid = normalize_int(service_id)
        if sid is None:
            return None

        # session courte, hors transaction du devis
        try:
            with UnitOfWork(self._session_factory) as uow:
                row = uow.session.get(CatalogService, sid)
                if row is None:
                    return None
                return CatalogEntry(id=row.id, name=row.name, price=normalize_number(row.price, 0))
        except SQLAlchemyError:
            logger.warning("catalog.lookup_failed", extra={"service_id": sid}, exc_info=True)
            return None
