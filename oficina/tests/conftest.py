import os

# avant tout import oficina : jamais de Postgres en test
os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from oficina.app.db.base import Base
from oficina.app.db.models import models_v1  # noqa: F401  (enregistre les tables)


@pytest.fixture(scope="function")
def engine():
    """
    Base SQLite en mémoire, neuve pour chaque test.

    StaticPool : une seule connexion partagée, sinon chaque session
    verrait une base vide.
    """
    eng = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    @event.listens_for(eng, "connect")
    def _enable_fk(dbapi_connection, connection_record):
        # ON DELETE CASCADE / SET NULL
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=eng)
    try:
        yield eng
    finally:
        Base.metadata.drop_all(bind=eng)
        eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def add(session_factory):
    """Insère des objets dans une session courte et renvoie leurs ids."""

    def _add(*objs):
        with session_factory() as session:
            session.add_all(objs)
            session.commit()
            return [obj.id for obj in objs]

    return _add


@pytest.fixture
def fetch(session_factory):
    """Lecture fraîche (nouvelle session) : voit uniquement ce qui est commité."""

    def _fetch(stmt):
        with session_factory() as session:
            return session.execute(stmt).scalars().all()

    return _fetch
