"""
Adapter pour le stockage clé-valeur.

Le stockage est un service externe qui n'offre que trois opérations
(get, set, remove) sur des textes sérialisés indexés par une clé.
Il n'y a ni transaction entre clés ni verrouillage partiel :
chaque collection est lue et réécrite en entier.

Tout échec d'accès est converti en ErreurStockage.
"""

from __future__ import annotations

import abc
from typing import Optional

from sqlalchemy import create_engine, delete, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from tagit import config
from tagit.adapters import orm
from tagit.domain.erreurs import ErreurStockage

DEFAULT_ENGINE = create_engine(config.get_database_uri())
DEFAULT_SESSION_FACTORY = sessionmaker(bind=DEFAULT_ENGINE)


class AbstractStore(abc.ABC):
    """Interface abstraite du stockage clé-valeur."""

    @abc.abstractmethod
    def get(self, clé: str) -> Optional[str]:
        """Retourne le texte stocké sous `clé`, ou None si la clé est absente."""
        raise NotImplementedError

    @abc.abstractmethod
    def set(self, clé: str, valeur: str) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def remove(self, clé: str) -> None:
        raise NotImplementedError


class SqlAlchemyStore(AbstractStore):
    """
    Stockage clé-valeur sur une table SQL.

    Chaque appel ouvre sa propre session : un set() est une
    écriture indépendante, jamais regroupée avec une autre clé.
    """

    def __init__(self, session_factory: sessionmaker = DEFAULT_SESSION_FACTORY):
        self.session_factory = session_factory

    def get(self, clé: str) -> Optional[str]:
        try:
            with self.session_factory() as session:
                return session.execute(
                    select(orm.stockage.c.valeur).where(orm.stockage.c.cle == clé)
                ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise ErreurStockage("lecture", clé) from e

    def set(self, clé: str, valeur: str) -> None:
        try:
            with self.session_factory() as session, session.begin():
                session.execute(delete(orm.stockage).where(orm.stockage.c.cle == clé))
                session.execute(insert(orm.stockage).values(cle=clé, valeur=valeur))
        except SQLAlchemyError as e:
            raise ErreurStockage("écriture", clé) from e

    def remove(self, clé: str) -> None:
        try:
            with self.session_factory() as session, session.begin():
                session.execute(delete(orm.stockage).where(orm.stockage.c.cle == clé))
        except SQLAlchemyError as e:
            raise ErreurStockage("suppression", clé) from e
