"""
Views (lecture) pour le pattern CQRS.

Les views sont des fonctions de lecture pure : elles ne passent pas
par le message bus, ne modifient rien et ne sauvegardent rien.
Elles sont recalculées à chaque appel, sans index ni cache.

- résoudre_scan : ce que désigne un QR code scanné
- rechercher_articles : recherche textuelle et filtres sur le catalogue
- panier, ventes, déposants, statistiques : écrans de caisse et d'accueil
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable, Optional, Union

from tagit.domain import codes, model
from tagit.domain.erreurs import ErreurStockage
from tagit.service_layer import unit_of_work

logger = logging.getLogger(__name__)


# --- Scan ---


@dataclass(frozen=True)
class RésultatScan:
    """
    Résultat d'un scan : le type de code, le code lu et l'entité trouvée.

    Une entité absente n'est pas une erreur : c'est l'état « non trouvé »
    affiché à l'utilisateur.
    """

    type: codes.TypeCode
    code: str
    entité: Union[model.Déposant, model.Article, None] = None

    @property
    def trouvé(self) -> bool:
        return self.entité is not None


def résoudre_scan(texte: str, uow: unit_of_work.AbstractUnitOfWork) -> RésultatScan:
    """
    Classe le texte décodé et cherche l'entité correspondante.

    N'échoue jamais : un texte quelconque, une collection vide,
    corrompue ou inaccessible donnent simplement une entité absente.
    """
    code = str(texte).strip()
    type_code = codes.classifier(code)
    entité: Union[model.Déposant, model.Article, None] = None
    try:
        with uow:
            if type_code is codes.TypeCode.ARTICLE:
                entité = uow.articles.get().get_par_code(code)
            else:
                entité = uow.déposants.get().get_par_code(code)
    except ErreurStockage as e:
        logger.warning("Scan de %r : collection inaccessible, traitée comme vide (%s)", code, e)
    return RésultatScan(type=type_code, code=code, entité=entité)


# --- Recherche dans le catalogue ---


class StatutVente(str, enum.Enum):
    TOUS = "tous"
    VENDU = "vendu"
    DISPONIBLE = "disponible"


@dataclass(frozen=True)
class Critères:
    """
    Critères de recherche, tels que saisis dans l'écran de recherche.

    Les bornes de prix sont des saisies libres : une borne qui ne
    se lit pas comme un nombre est ignorée.
    """

    texte: str = ""
    taille: str = ""
    sexe: str = ""
    prix_min: Any = ""
    prix_max: Any = ""
    vendu: StatutVente = StatutVente.TOUS


def _borne(valeur: Any) -> Optional[Decimal]:
    if valeur is None or isinstance(valeur, bool):
        return None
    try:
        borne = Decimal(str(valeur).strip())
    except InvalidOperation:
        return None
    return borne if borne.is_finite() else None


def filtrer_articles(articles: Iterable[model.Article], critères: Critères) -> list[model.Article]:
    """Applique les critères (tous cumulés) en conservant l'ordre du catalogue."""
    requête = critères.texte.strip().lower()
    prix_min = _borne(critères.prix_min)
    prix_max = _borne(critères.prix_max)
    statut = StatutVente(critères.vendu)

    def correspond(article: model.Article) -> bool:
        if requête and not any(
            requête in champ.lower()
            for champ in (
                article.code,
                article.déposant_code,
                article.déposant_nom,
                article.taille,
                article.sexe,
            )
        ):
            return False
        if critères.taille and article.taille != critères.taille:
            return False
        if critères.sexe and article.sexe != critères.sexe:
            return False
        if prix_min is not None and article.prix < prix_min:
            return False
        if prix_max is not None and article.prix > prix_max:
            return False
        if statut is StatutVente.VENDU and not article.vendu:
            return False
        if statut is StatutVente.DISPONIBLE and article.vendu:
            return False
        return True

    return [article for article in articles if correspond(article)]


def rechercher_articles(
    critères: Critères, uow: unit_of_work.AbstractUnitOfWork
) -> list[model.Article]:
    with uow:
        articles = uow.articles.get().lister()
    return filtrer_articles(articles, critères)


def valeurs_distinctes(champ: str, uow: unit_of_work.AbstractUnitOfWork) -> list[str]:
    """Tailles ou sexes renseignés au catalogue, dans l'ordre de première apparition."""
    if champ not in ("taille", "sexe"):
        raise ValueError(f"Champ de filtre inconnu : {champ}")
    with uow:
        articles = uow.articles.get().lister()
    valeurs = (getattr(article, champ) for article in articles)
    return list(dict.fromkeys(v for v in valeurs if v))


# --- Caisse ---


@dataclass(frozen=True)
class VuePanier:
    lignes: list[model.LignePanier]
    total: Decimal


def panier(uow: unit_of_work.AbstractUnitOfWork) -> VuePanier:
    with uow:
        courant = uow.panier.get()
        return VuePanier(lignes=courant.lignes(), total=courant.total())


def ventes(uow: unit_of_work.AbstractUnitOfWork) -> list[model.Vente]:
    """Journal des ventes, la plus récente en premier."""
    with uow:
        return list(reversed(uow.ventes.get().ventes))


# --- Accueil ---


@dataclass(frozen=True)
class DéposantAvecArticles:
    """Déposant et nombre réel de ses articles au catalogue."""

    déposant: model.Déposant
    nb_articles: int


def déposants(uow: unit_of_work.AbstractUnitOfWork) -> list[DéposantAvecArticles]:
    with uow:
        catalogue = uow.articles.get()
        return [
            DéposantAvecArticles(d, len(catalogue.articles_du_déposant(d.code)))
            for d in uow.déposants.get().lister()
        ]


@dataclass(frozen=True)
class Statistiques:
    déposants: int
    articles: int
    ventes: int
    chiffre: Decimal


def statistiques(uow: unit_of_work.AbstractUnitOfWork) -> Statistiques:
    with uow:
        journal = uow.ventes.get()
        return Statistiques(
            déposants=len(uow.déposants.get().déposants),
            articles=len(uow.articles.get().articles),
            ventes=len(journal.ventes),
            chiffre=journal.chiffre_affaires(),
        )
