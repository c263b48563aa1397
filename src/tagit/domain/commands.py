"""
Commands du domaine.

Les commands représentent des intentions : quelque chose que
le système doit faire. Contrairement aux events (faits passés),
les commands sont des demandes qui peuvent échouer.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


class Command:
    """Classe de base pour toutes les commands."""
    pass


# --- Déposants ---


@dataclass(frozen=True)
class CréerDéposant(Command):
    prénom: str
    nom: str
    téléphone: str


@dataclass(frozen=True)
class ModifierDéposant(Command):
    """Seuls les champs renseignés (non None) sont modifiés."""

    id: str
    prénom: Optional[str] = None
    nom: Optional[str] = None
    téléphone: Optional[str] = None


@dataclass(frozen=True)
class SupprimerDéposant(Command):
    id: str


@dataclass(frozen=True)
class EnregistrerArrivée(Command):
    """Check-in d'un déposant à partir de son code scanné."""

    code: str


# --- Articles ---


@dataclass(frozen=True)
class CréerArticle(Command):
    déposant_code: str
    taille: str
    sexe: str
    prix: Any
    photo: str = ""
    emplacement: Optional[str] = None


@dataclass(frozen=True)
class ModifierArticle(Command):
    id: str
    changements: dict = field(default_factory=dict)


@dataclass(frozen=True)
class SupprimerArticle(Command):
    id: str


# --- Panier et caisse ---


@dataclass(frozen=True)
class AjouterAuPanier(Command):
    """Ajoute une unité de l'article scanné au panier."""

    code: str


@dataclass(frozen=True)
class ModifierQuantitéPanier(Command):
    code: str
    delta: int


@dataclass(frozen=True)
class RetirerDuPanier(Command):
    code: str


@dataclass(frozen=True)
class ViderPanier(Command):
    pass


@dataclass(frozen=True)
class EncaisserVente(Command):
    """Transforme le panier en vente et marque ses articles comme vendus."""
    pass


@dataclass(frozen=True)
class RéconcilierVentes(Command):
    """Termine un encaissement interrompu et recalcule l'état vendu depuis le journal."""
    pass
