"""
Unit of Work : une Session SQLAlchemy = une transaction.

Propriétés :
- commit OU rollback, exactement une fois
- passée par référence (ledger, conversion) : les participants
  n'ouvrent jamais de transaction imbriquée
- sortie du `with` sur exception -> rollback puis close
"""

from __future__ import annotations

from typing import Callable

from sqlalchemy.orm import Session

SessionFactory = Callable[[], Session]


def default_session_factory() -> Session:
    # import tardif : l'engine n'est créé qu'au premier usage réel
    from oficina.app.db.session import SessionLocal

    return SessionLocal()


class UnitOfWork:
    def __init__(self, session_factory: SessionFactory | None = None):
        self._session_factory = session_factory or default_session_factory
        self._session: Session | None = None
        self._finished = False

    @property
    def session(self) -> Session:
        if self._session is None:
            raise RuntimeError("UnitOfWork is not active")
        return self._session

    @property
    def finished(self) -> bool:
        return self._finished

    def __enter__(self) -> "UnitOfWork":
        self._session = self._session_factory()
        self._finished = False
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            if not self._finished:
                self.rollback()
        finally:
            self.session.close()
            self._session = None

    def commit(self) -> None:
        if self._finished:
            raise RuntimeError("UnitOfWork already finished")
        self.session.commit()
        self._finished = True

    def rollback(self) -> None:
        if self._finished:
            return
        self.session.rollback()
        self._finished = True
