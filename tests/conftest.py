"""
Configuration partagée pour les tests.

Les tests unitaires passent par le vrai Unit of Work branché sur un
stockage en mémoire (FakeStore), avec une horloge fixe et un tirage
de codes déterministe. Les tests d'intégration utilisent SQLite en mémoire.
"""

from __future__ import annotations

import itertools
import json
from datetime import datetime, timedelta
from typing import Optional

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from tagit.adapters import orm
from tagit.adapters.store import AbstractStore
from tagit.domain.erreurs import ErreurStockage
from tagit.service_layer import bootstrap, unit_of_work


class FakeStore(AbstractStore):
    """
    Stockage clé-valeur en mémoire.

    `échecs` contient les clés dont l'écriture échoue, pour simuler
    une panne au milieu d'une séquence d'écritures.
    """

    def __init__(self, données: Optional[dict[str, str]] = None):
        self.données = dict(données or {})
        self.échecs: set[str] = set()
        self.écritures: list[str] = []

    def get(self, clé: str) -> Optional[str]:
        return self.données.get(clé)

    def set(self, clé: str, valeur: str) -> None:
        if clé in self.échecs:
            raise ErreurStockage("écriture", clé)
        self.données[clé] = valeur
        self.écritures.append(clé)

    def remove(self, clé: str) -> None:
        if clé in self.échecs:
            raise ErreurStockage("suppression", clé)
        self.données.pop(clé, None)
        self.écritures.append(clé)

    def json(self, clé: str) -> list:
        return json.loads(self.données.get(clé, "[]"))


class FakeHorloge:
    """Horloge contrôlée par le test."""

    def __init__(self, maintenant: datetime):
        self.maintenant = maintenant

    def __call__(self) -> datetime:
        return self.maintenant

    def avancer(self, secondes: float) -> None:
        self.maintenant += timedelta(seconds=secondes)


@pytest.fixture
def store():
    return FakeStore()


@pytest.fixture
def horloge():
    return FakeHorloge(datetime(2024, 10, 12, 9, 30, 0))


@pytest.fixture
def uow(store):
    return unit_of_work.StoreUnitOfWork(store)


@pytest.fixture
def bus(uow, horloge):
    """Bus câblé comme en production, sur le stockage en mémoire."""
    return bootstrap.bootstrap(
        start_orm=False,
        uow=uow,
        horloge=horloge,
        tirage=itertools.cycle(range(10)).__next__,
        max_tentatives=10,
    )


@pytest.fixture
def session_factory():
    """Sessions SQLite en mémoire partageant une seule connexion."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    orm.créer_tables(engine)
    return sessionmaker(bind=engine)
