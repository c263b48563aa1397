"""
Registre des codes.

Les déposants et les articles sont identifiés par des codes courts,
imprimés en QR code sur les étiquettes :

- code déposant : deux lettres du prénom + une lettre du nom + un chiffre (ex. ABC7)
- code article  : code déposant + "-" + numéro de séquence sur 3 chiffres (ex. ABC7-001)

La présence du séparateur est le seul critère qui distingue un code
article d'un code déposant. Les codes déposant ne contiennent que des
lettres et un chiffre, ils ne peuvent donc jamais contenir le séparateur.
"""

from __future__ import annotations

import enum
import logging
import random
from typing import Callable, Collection, Optional

from tagit.domain.erreurs import CodesÉpuisés, DonnéesInvalides

logger = logging.getLogger(__name__)

SÉPARATEUR = "-"

Tirage = Callable[[], int]


class TypeCode(str, enum.Enum):
    DÉPOSANT = "deposant"
    ARTICLE = "article"


def tirage_aléatoire() -> int:
    """Tire un chiffre décimal au hasard (0 à 9)."""
    return random.randint(0, 9)


def _lettres(texte: str) -> str:
    return "".join(c for c in texte if c.isalpha()).upper()


def préfixe_déposant(prénom: str, nom: str) -> str:
    """
    Préfixe alphabétique d'un code déposant.

    Seules les lettres sont retenues (tirets, espaces et apostrophes
    sont ignorés). Un prénom d'une seule lettre donne un préfixe de
    deux lettres : les noms courts sont tronqués, jamais complétés.
    """
    lettres_prénom = _lettres(prénom)
    lettres_nom = _lettres(nom)
    if not lettres_prénom or not lettres_nom:
        raise DonnéesInvalides("Le prénom et le nom doivent contenir au moins une lettre")
    return lettres_prénom[:2] + lettres_nom[:1]


def générer_code_déposant(prénom: str, nom: str, tirage: Optional[Tirage] = None) -> str:
    """
    Génère un code déposant, sans vérifier son unicité.

    Voir générer_code_unique() pour la version avec vérification.
    """
    tirage = tirage or tirage_aléatoire
    return f"{préfixe_déposant(prénom, nom)}{tirage() % 10}"


def générer_code_unique(
    prénom: str,
    nom: str,
    codes_existants: Collection[str],
    tirage: Optional[Tirage] = None,
    max_tentatives: int = 10,
) -> str:
    """
    Génère un code déposant absent de `codes_existants`.

    Chaque candidat est vérifié avant d'être accepté ; au-delà de
    `max_tentatives` tirages en collision, lève CodesÉpuisés.
    """
    for tentative in range(1, max_tentatives + 1):
        code = générer_code_déposant(prénom, nom, tirage)
        if code not in codes_existants:
            return code
        logger.debug("Code %s déjà attribué (tentative %d/%d)", code, tentative, max_tentatives)
    raise CodesÉpuisés(préfixe_déposant(prénom, nom), max_tentatives)


def composer_code_article(code_déposant: str, séquence: int) -> str:
    if séquence < 1:
        raise DonnéesInvalides(f"Numéro de séquence invalide : {séquence}")
    return f"{code_déposant}{SÉPARATEUR}{séquence:03d}"


def décomposer_code_article(code: str) -> tuple[str, int]:
    """Retourne (code_déposant, séquence) ; lève DonnéesInvalides si le code est mal formé."""
    code_déposant, séparateur, séquence = code.rpartition(SÉPARATEUR)
    if not séparateur or not code_déposant or not séquence.isdecimal():
        raise DonnéesInvalides(f"Code article mal formé : {code!r}")
    return code_déposant, int(séquence)


def classifier(texte: str) -> TypeCode:
    if SÉPARATEUR in texte:
        return TypeCode.ARTICLE
    return TypeCode.DÉPOSANT
