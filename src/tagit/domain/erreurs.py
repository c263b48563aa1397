"""
Erreurs métier de TagIt.

Chaque erreur porte un message distinct, directement affichable
par la couche de présentation. Les erreurs de validation et
d'immuabilité sont levées avant toute modification d'une collection.
"""

from __future__ import annotations

from typing import Iterable, Optional


class ErreurTagit(Exception):
    """Classe de base de toutes les erreurs de TagIt."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class DonnéesInvalides(ErreurTagit):
    """Levée quand un champ obligatoire manque ou qu'une valeur est invalide."""
    pass


class ChampImmuable(ErreurTagit):
    """Levée quand on tente de modifier le prix ou le code d'un article vendu."""

    def __init__(self, code: str, champs: Iterable[str]):
        self.code = code
        self.champs = sorted(champs)
        super().__init__(
            f"L'article {code} est vendu : {', '.join(self.champs)} ne peut plus être modifié"
        )


class CodesÉpuisés(ErreurTagit):
    """Levée quand aucun code déposant libre n'a été trouvé en un nombre borné de tirages."""

    def __init__(self, préfixe: str, tentatives: int):
        self.préfixe = préfixe
        self.tentatives = tentatives
        super().__init__(
            f"Aucun code libre pour le préfixe {préfixe} après {tentatives} tentatives"
        )


class PanierVide(ErreurTagit):
    def __init__(self) -> None:
        super().__init__("Le panier est vide")


class Introuvable(ErreurTagit):
    """Levée par les commandes quand l'entité référencée n'existe pas."""
    pass


class ErreurStockage(ErreurTagit):
    """Levée quand un appel au stockage clé-valeur échoue."""

    def __init__(self, opération: str, clé: str, message: Optional[str] = None):
        self.opération = opération
        self.clé = clé
        super().__init__(message or f"Échec de {opération} de la collection '{clé}'")


class CollectionIllisible(ErreurStockage):
    """
    Levée quand on tente de réécrire une collection durable qui n'a pas
    pu être décodée : la réécrire effacerait les enregistrements illisibles.
    """

    def __init__(self, clé: str):
        super().__init__(
            "écriture", clé, f"La collection '{clé}' est illisible et ne peut pas être réécrite"
        )
