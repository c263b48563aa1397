"""
Pattern Unit of Work.

Le Unit of Work (UoW) coordonne l'accès aux cinq collections
persistées et la collecte des événements émis par les agrégats.

Le stockage n'a pas de transaction entre clés : commit() réécrit
une à une les collections modifiées, dans un ordre fixe. Si une
écriture échoue, les écritures précédentes restent acquises ; c'est
au handler d'ordonner ses commits quand l'ordre compte (voir
l'encaissement d'une vente).

Le UoW agit comme un context manager :
    with uow:
        # ... opérations sur les repositories ...
        uow.commit()
"""

from __future__ import annotations

import abc
from typing import Iterator, Optional

from tagit.adapters import repository
from tagit.adapters.store import AbstractStore, SqlAlchemyStore
from tagit.domain import events


class AbstractUnitOfWork(abc.ABC):
    """
    Interface abstraite du Unit of Work.

    Les modifications non écrites sont abandonnées à la sortie du
    context manager (grâce au __exit__), si commit() n'a pas été appelé.
    """

    encaissement: repository.AbstractRepository
    ventes: repository.AbstractRepository
    articles: repository.AbstractRepository
    panier: repository.AbstractRepository
    déposants: repository.AbstractRepository

    def __enter__(self) -> AbstractUnitOfWork:
        return self

    def __exit__(self, *args: object) -> None:
        self.rollback()

    def commit(self) -> None:
        self._commit()

    def repositories(self) -> tuple[repository.AbstractRepository, ...]:
        """Les repositories dans l'ordre d'écriture : journal avant articles avant panier."""
        return (self.encaissement, self.ventes, self.articles, self.panier, self.déposants)

    def collect_new_events(self) -> Iterator[events.Event]:
        """
        Collecte tous les événements émis par les agrégats vus
        pendant cette transaction.
        """
        for repo in self.repositories():
            for agrégat in repo.seen:
                while agrégat.événements:
                    yield agrégat.événements.pop(0)

    @abc.abstractmethod
    def _commit(self) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def rollback(self) -> None:
        raise NotImplementedError


class StoreUnitOfWork(AbstractUnitOfWork):
    """
    Implémentation concrète du UoW sur un stockage clé-valeur.

    Des repositories neufs sont créés à chaque entrée dans le context
    manager : chaque transaction relit l'état persisté.
    """

    def __init__(self, store: Optional[AbstractStore] = None):
        self.store = store if store is not None else SqlAlchemyStore()

    def __enter__(self) -> StoreUnitOfWork:
        self.encaissement = repository.EncaissementRepository(self.store)
        self.ventes = repository.JournalRepository(self.store)
        self.articles = repository.CatalogueRepository(self.store)
        self.panier = repository.PanierRepository(self.store)
        self.déposants = repository.AnnuaireRepository(self.store)
        return super().__enter__()

    def _commit(self) -> None:
        for repo in self.repositories():
            repo.sauvegarder()

    def rollback(self) -> None:
        for repo in self.repositories():
            repo.abandonner()
