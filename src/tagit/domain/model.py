"""
Modèle de domaine de TagIt.

Ce module contient les entités et les agrégats d'une vente en dépôt :
les déposants confient des articles étiquetés, les articles sont vendus
en caisse, et chaque vente est consignée dans un journal.

Chaque collection persistée (annuaire, catalogue, panier, journal) est
un agrégat : elle est lue et réécrite d'un bloc, et son numéro de
version indique au Unit of Work qu'elle doit être sauvegardée.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Collection, Iterable, Optional

from tagit.domain import codes, events
from tagit.domain.erreurs import ChampImmuable, DonnéesInvalides, Introuvable


def nouvel_id() -> str:
    return uuid.uuid4().hex


def lire_prix(valeur: Any) -> Decimal:
    """Convertit une saisie en prix décimal positif ou nul."""
    if isinstance(valeur, bool):
        raise DonnéesInvalides(f"Prix invalide : {valeur!r}")
    try:
        prix = Decimal(str(valeur).strip())
    except InvalidOperation:
        raise DonnéesInvalides(f"Prix invalide : {valeur!r}") from None
    if not prix.is_finite() or prix < 0:
        raise DonnéesInvalides(f"Prix invalide : {valeur!r}")
    return prix


def numéro_ticket(maintenant: datetime) -> str:
    """
    Numéro de ticket dérivé de l'horodatage (T + AAAAMMJJ + HHMMSS).

    Unique à la seconde près seulement : deux encaissements dans
    la même seconde produisent le même numéro.
    """
    return maintenant.strftime("T%Y%m%d%H%M%S")


# --- Entités ---


@dataclass
class Déposant:
    """
    Personne qui confie des articles à la vente.

    `nb_articles` est un compteur dérivé qui n'est jamais resynchronisé
    avec le catalogue : le nombre réel d'articles s'obtient par une vue.
    """

    id: str
    code: str
    prénom: str
    nom: str
    téléphone: str
    date_création: Optional[datetime] = None
    nb_articles: int = 0
    arrivé: bool = False
    date_arrivée: Optional[datetime] = None

    @property
    def nom_complet(self) -> str:
        return f"{self.prénom} {self.nom}"


@dataclass
class Article:
    """
    Article mis en vente.

    `déposant_nom` est une copie figée au moment de la création :
    renommer ou supprimer le déposant ne la modifie pas, et l'article
    reste consultable même sans déposant.
    """

    id: str
    code: str
    déposant_code: str
    déposant_nom: str
    taille: str
    sexe: str
    prix: Decimal
    photo: str = ""
    emplacement: Optional[str] = None
    vendu: bool = False
    date_vente: Optional[datetime] = None


@dataclass(frozen=True)
class LignePanier:
    """Vue groupée du panier : un instantané d'article et sa quantité."""

    article: Article
    quantité: int

    @property
    def code(self) -> str:
        return self.article.code

    @property
    def sous_total(self) -> Decimal:
        return self.article.prix * self.quantité


@dataclass(frozen=True)
class Vente:
    """Vente encaissée. Le journal des ventes est en ajout seul."""

    id: str
    numéro_ticket: str
    lignes: tuple[LignePanier, ...]
    total: Decimal
    date: datetime

    def codes(self) -> list[str]:
        return [ligne.code for ligne in self.lignes]

    @property
    def nb_articles(self) -> int:
        return sum(ligne.quantité for ligne in self.lignes)


def créer_vente(lignes: Iterable[LignePanier], maintenant: datetime) -> Vente:
    lignes = tuple(LignePanier(replace(l.article), l.quantité) for l in lignes)
    return Vente(
        id=nouvel_id(),
        numéro_ticket=numéro_ticket(maintenant),
        lignes=lignes,
        total=sum((l.sous_total for l in lignes), Decimal(0)),
        date=maintenant,
    )


# --- Regroupement du panier ---


def grouper(entrées: Iterable[Article]) -> list[LignePanier]:
    """
    Regroupe les entrées à plat du panier par code article.

    L'ordre est celui de la première apparition de chaque code,
    c'est l'ordre d'affichage du panier.
    """
    premiers: dict[str, Article] = {}
    quantités: dict[str, int] = {}
    for article in entrées:
        if article.code in premiers:
            quantités[article.code] += 1
        else:
            premiers[article.code] = article
            quantités[article.code] = 1
    return [LignePanier(premiers[code], quantités[code]) for code in premiers]


def aplatir(lignes: Iterable[LignePanier]) -> list[Article]:
    """Inverse de grouper() : une entrée par unité, l'instantané dupliqué `quantité` fois."""
    return [replace(ligne.article) for ligne in lignes for _ in range(ligne.quantité)]


# --- Agrégats ---


class Agrégat:
    """
    Base commune des collections persistées.

    Toute mutation incrémente `numéro_version`, ce qui permet au
    repository de savoir s'il doit réécrire la collection.
    """

    def __init__(self, numéro_version: int = 0):
        self.numéro_version = numéro_version
        self.événements: list[events.Event] = []

    def _modifié(self) -> None:
        self.numéro_version += 1


class Annuaire(Agrégat):
    """Annuaire des déposants."""

    CHAMPS_MODIFIABLES = frozenset({"prénom", "nom", "téléphone"})

    def __init__(self, déposants: Optional[list[Déposant]] = None, numéro_version: int = 0):
        super().__init__(numéro_version)
        self.déposants = déposants or []

    def lister(self) -> list[Déposant]:
        return list(self.déposants)

    def codes(self) -> set[str]:
        return {d.code for d in self.déposants}

    def get(self, id: str) -> Déposant:
        try:
            return next(d for d in self.déposants if d.id == id)
        except StopIteration:
            raise Introuvable(f"Déposant introuvable : {id}") from None

    def get_par_code(self, code: str) -> Optional[Déposant]:
        return next((d for d in self.déposants if d.code == code), None)

    def créer(
        self,
        prénom: str,
        nom: str,
        téléphone: str,
        maintenant: datetime,
        tirage: Optional[codes.Tirage] = None,
        max_tentatives: int = 10,
        codes_réservés: Collection[str] = (),
    ) -> Déposant:
        """
        Inscrit un nouveau déposant.

        Le code est tiré puis vérifié contre les codes déjà attribués
        dans l'annuaire et contre `codes_réservés` (codes encore portés
        par des articles dont le déposant a été supprimé) ;
        CodesÉpuisés si aucun code libre n'est trouvé.
        """
        prénom, nom, téléphone = (v.strip() for v in (prénom or "", nom or "", téléphone or ""))
        if not prénom or not nom or not téléphone:
            raise DonnéesInvalides("Tous les champs sont obligatoires")
        code = codes.générer_code_unique(
            prénom,
            nom,
            self.codes() | set(codes_réservés),
            tirage=tirage,
            max_tentatives=max_tentatives,
        )
        déposant = Déposant(
            id=nouvel_id(),
            code=code,
            prénom=prénom,
            nom=nom,
            téléphone=téléphone,
            date_création=maintenant,
        )
        self.déposants.append(déposant)
        self._modifié()
        return déposant

    def modifier(self, id: str, **changements: str) -> Déposant:
        inconnus = set(changements) - self.CHAMPS_MODIFIABLES
        if inconnus:
            raise DonnéesInvalides(f"Champs non modifiables : {', '.join(sorted(inconnus))}")
        valeurs = {champ: (valeur or "").strip() for champ, valeur in changements.items()}
        if not all(valeurs.values()):
            raise DonnéesInvalides("Tous les champs sont obligatoires")
        déposant = self.get(id)
        for champ, valeur in valeurs.items():
            setattr(déposant, champ, valeur)
        self._modifié()
        return déposant

    def supprimer(self, id: str) -> None:
        """
        Retire un déposant de l'annuaire.

        Pas de cascade : ses articles restent au catalogue avec
        leur code et leur nom de déposant figés.
        """
        déposant = self.get(id)
        self.déposants.remove(déposant)
        self._modifié()
        self.événements.append(events.DéposantSupprimé(id=déposant.id, code=déposant.code))

    def enregistrer_arrivée(self, code: str, maintenant: datetime) -> Déposant:
        """Check-in du déposant ; idempotent, la première date d'arrivée est conservée."""
        déposant = self.get_par_code(code)
        if déposant is None:
            raise Introuvable(f"Déposant introuvable : {code}")
        if not déposant.arrivé:
            déposant.arrivé = True
            déposant.date_arrivée = maintenant
            self._modifié()
            self.événements.append(events.DéposantArrivé(code=code))
        return déposant


class Catalogue(Agrégat):
    """Catalogue des articles en dépôt."""

    CHAMPS_MODIFIABLES = frozenset({"photo", "taille", "sexe", "prix", "emplacement", "code"})
    # Une fois l'article vendu, ces champs sont figés
    CHAMPS_FIGÉS = frozenset({"prix", "code"})

    def __init__(self, articles: Optional[list[Article]] = None, numéro_version: int = 0):
        super().__init__(numéro_version)
        self.articles = articles or []

    def lister(self) -> list[Article]:
        return list(self.articles)

    def get(self, id: str) -> Article:
        try:
            return next(a for a in self.articles if a.id == id)
        except StopIteration:
            raise Introuvable(f"Article introuvable : {id}") from None

    def get_par_code(self, code: str) -> Optional[Article]:
        return next((a for a in self.articles if a.code == code), None)

    def articles_du_déposant(self, code_déposant: str) -> list[Article]:
        return [a for a in self.articles if a.déposant_code == code_déposant]

    def _prochaine_séquence(self, code_déposant: str) -> int:
        séquences = [0]
        for article in self.articles_du_déposant(code_déposant):
            try:
                séquences.append(codes.décomposer_code_article(article.code)[1])
            except DonnéesInvalides:
                continue
        return max(séquences) + 1

    def créer(
        self,
        déposant_code: str,
        déposant_nom: str,
        taille: str,
        sexe: str,
        prix: Any,
        photo: str = "",
        emplacement: Optional[str] = None,
    ) -> Article:
        taille, sexe = (taille or "").strip(), (sexe or "").strip()
        if not taille or not sexe:
            raise DonnéesInvalides("La taille et le sexe sont obligatoires")
        article = Article(
            id=nouvel_id(),
            code=codes.composer_code_article(
                déposant_code, self._prochaine_séquence(déposant_code)
            ),
            déposant_code=déposant_code,
            déposant_nom=déposant_nom,
            taille=taille,
            sexe=sexe,
            prix=lire_prix(prix),
            photo=photo or "",
            emplacement=emplacement or None,
        )
        self.articles.append(article)
        self._modifié()
        return article

    def modifier(self, id: str, **changements: Any) -> Article:
        """
        Modifie un article.

        Toutes les valeurs sont validées avant la première écriture ;
        sur un article vendu, changer le prix ou le code lève ChampImmuable.
        """
        inconnus = set(changements) - self.CHAMPS_MODIFIABLES
        if inconnus:
            raise DonnéesInvalides(f"Champs non modifiables : {', '.join(sorted(inconnus))}")
        article = self.get(id)

        valeurs = dict(changements)
        if "prix" in valeurs:
            valeurs["prix"] = lire_prix(valeurs["prix"])
        for champ in ("taille", "sexe"):
            if champ in valeurs:
                valeurs[champ] = (valeurs[champ] or "").strip()
                if not valeurs[champ]:
                    raise DonnéesInvalides("La taille et le sexe sont obligatoires")
        if "emplacement" in valeurs:
            valeurs["emplacement"] = valeurs["emplacement"] or None

        if article.vendu:
            figés = {c for c in self.CHAMPS_FIGÉS & set(valeurs) if valeurs[c] != getattr(article, c)}
            if figés:
                raise ChampImmuable(article.code, figés)

        if "code" in valeurs and valeurs["code"] != article.code:
            self._vérifier_nouveau_code(article, valeurs["code"])

        for champ, valeur in valeurs.items():
            setattr(article, champ, valeur)
        self._modifié()
        return article

    def _vérifier_nouveau_code(self, article: Article, code: str) -> None:
        code_déposant, _ = codes.décomposer_code_article(code)
        if code_déposant != article.déposant_code:
            raise DonnéesInvalides(
                f"Le code {code} n'appartient pas au déposant {article.déposant_code}"
            )
        if self.get_par_code(code) is not None:
            raise DonnéesInvalides(f"Le code {code} est déjà attribué")

    def marquer_vendus(self, codes_vendus: Iterable[str], maintenant: datetime) -> list[Article]:
        """
        Passe les articles des codes donnés à l'état vendu.

        Idempotent : un article déjà vendu est laissé tel quel (sa date
        de vente d'origine est conservée). Retourne les articles
        effectivement passés à l'état vendu.
        """
        codes_vendus = set(codes_vendus)
        marqués = []
        for article in self.articles:
            if article.code in codes_vendus and not article.vendu:
                article.vendu = True
                article.date_vente = maintenant
                marqués.append(article)
        if marqués:
            self._modifié()
        return marqués

    def supprimer(self, id: str) -> None:
        self.articles.remove(self.get(id))
        self._modifié()


class Panier(Agrégat):
    """
    Panier de la vente en cours.

    Stocké à plat (une entrée par unité, doublons compris) ; la vue
    groupée par code est recalculée à chaque lecture.
    """

    def __init__(self, entrées: Optional[list[Article]] = None, numéro_version: int = 0):
        super().__init__(numéro_version)
        self.entrées = entrées or []

    def est_vide(self) -> bool:
        return not self.entrées

    def lignes(self) -> list[LignePanier]:
        return grouper(self.entrées)

    def codes(self) -> list[str]:
        return [ligne.code for ligne in self.lignes()]

    def total(self) -> Decimal:
        return sum((ligne.sous_total for ligne in self.lignes()), Decimal(0))

    def ajouter(self, article: Article) -> None:
        self.entrées.append(replace(article))
        self._modifié()

    def modifier_quantité(self, code: str, delta: int) -> None:
        """Ajuste la quantité d'une ligne ; à zéro ou moins, la ligne disparaît."""
        lignes = self.lignes()
        if not any(ligne.code == code for ligne in lignes):
            return
        nouvelles = []
        for ligne in lignes:
            if ligne.code == code:
                ligne = LignePanier(ligne.article, ligne.quantité + delta)
            if ligne.quantité > 0:
                nouvelles.append(ligne)
        self.entrées = aplatir(nouvelles)
        self._modifié()

    def retirer(self, code: str) -> None:
        restantes = [a for a in self.entrées if a.code != code]
        if len(restantes) != len(self.entrées):
            self.entrées = restantes
            self._modifié()

    def vider(self) -> None:
        if self.entrées:
            self.entrées = []
            self._modifié()


class Journal(Agrégat):
    """Journal des ventes, en ajout seul."""

    def __init__(self, ventes: Optional[list[Vente]] = None, numéro_version: int = 0):
        super().__init__(numéro_version)
        self.ventes = ventes or []

    def contient(self, id: str) -> bool:
        return any(v.id == id for v in self.ventes)

    def chiffre_affaires(self) -> Decimal:
        return sum((v.total for v in self.ventes), Decimal(0))

    def ajouter(self, vente: Vente) -> None:
        self.ventes.append(vente)
        self._modifié()
        self.événements.append(
            events.VenteEnregistrée(id=vente.id, numéro_ticket=vente.numéro_ticket, total=vente.total)
        )


class EncaissementEnCours(Agrégat):
    """
    Marqueur d'encaissement en cours.

    Écrit avant l'ajout au journal et effacé après le vidage du
    panier : s'il est présent au démarrage, un encaissement a été
    interrompu et doit être réconcilié.
    """

    def __init__(self, vente: Optional[Vente] = None, numéro_version: int = 0):
        super().__init__(numéro_version)
        self.vente = vente

    def ouvrir(self, vente: Vente) -> None:
        self.vente = vente
        self._modifié()

    def fermer(self) -> None:
        if self.vente is not None:
            self.vente = None
            self._modifié()
