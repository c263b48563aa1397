"""
Events du domaine.

Les events représentent des faits qui se sont produits dans le système.
Ils sont immuables et nommés au passé (quelque chose s'est passé).
"""

from dataclasses import dataclass
from decimal import Decimal


class Event:
    """Classe de base pour tous les events du domaine."""
    pass


@dataclass(frozen=True)
class DéposantSupprimé(Event):
    """Un déposant a été retiré de l'annuaire (sans cascade sur ses articles)."""

    id: str
    code: str


@dataclass(frozen=True)
class DéposantArrivé(Event):
    """Un déposant a fait son check-in sur le lieu de la vente."""

    code: str


@dataclass(frozen=True)
class VenteEnregistrée(Event):
    """Une vente a été ajoutée au journal des ventes."""

    id: str
    numéro_ticket: str
    total: Decimal
