"""
Sérialisation JSON des collections.

Chaque clé du stockage contient un tableau JSON d'enregistrements.
Les noms de champs sont ceux de l'application mobile d'origine
(prenom, deposantCode, vendu, ticketNumber...) pour que les données
existantes restent lisibles.

Les prix sont écrits comme des nombres JSON (en texte quand un flottant
perdrait des chiffres) et relus en Decimal, positifs et finis.
Les dates sont écrites en ISO 8601 ; une date illisible est relue comme None.
"""

from __future__ import annotations

import json
import math
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Iterable, Optional, TypeVar

from tagit.domain import model

T = TypeVar("T")


class EnregistrementInvalide(ValueError):
    """Le texte stocké n'est pas un tableau JSON d'enregistrements valides."""
    pass


# --- Valeurs simples ---


def _prix_vers_json(prix: Decimal) -> int | float | str:
    if prix == prix.to_integral_value():
        return int(prix)
    nombre = float(prix)
    if math.isfinite(nombre) and Decimal(repr(nombre)) == prix:
        return nombre
    # Trop de chiffres pour un flottant : écrit en texte, relu sans perte
    return str(prix)


def _prix_depuis_json(valeur: Any) -> Decimal:
    if isinstance(valeur, bool) or not isinstance(valeur, (int, float, str)):
        raise EnregistrementInvalide(f"Prix invalide : {valeur!r}")
    try:
        prix = Decimal(str(valeur))
    except ArithmeticError:
        raise EnregistrementInvalide(f"Prix invalide : {valeur!r}") from None
    if not prix.is_finite() or prix < 0:
        raise EnregistrementInvalide(f"Prix invalide : {valeur!r}")
    return prix


def _texte(valeur: Any) -> str:
    """Champ texte facultatif : null ou absent vaut une chaîne vide."""
    return "" if valeur is None else str(valeur)


def _date_vers_json(date: Optional[datetime]) -> Optional[str]:
    return date.isoformat() if date is not None else None


def _date_depuis_json(valeur: Any) -> Optional[datetime]:
    if not isinstance(valeur, str) or not valeur:
        return None
    try:
        return datetime.fromisoformat(valeur.replace("Z", "+00:00"))
    except ValueError:
        return None


# --- Déposants ---


def déposant_vers_dict(déposant: model.Déposant) -> dict:
    return {
        "id": déposant.id,
        "code": déposant.code,
        "prenom": déposant.prénom,
        "nom": déposant.nom,
        "telephone": déposant.téléphone,
        "dateCreation": _date_vers_json(déposant.date_création),
        "nbArticles": déposant.nb_articles,
        "checkIn": déposant.arrivé,
        "checkInDate": _date_vers_json(déposant.date_arrivée),
    }


def déposant_depuis_dict(données: dict) -> model.Déposant:
    return model.Déposant(
        id=str(données["id"]),
        code=str(données["code"]),
        prénom=_texte(données["prenom"]),
        nom=_texte(données["nom"]),
        téléphone=_texte(données.get("telephone")),
        date_création=_date_depuis_json(données.get("dateCreation")),
        nb_articles=int(données.get("nbArticles", 0)),
        arrivé=bool(données.get("checkIn", False)),
        date_arrivée=_date_depuis_json(données.get("checkInDate")),
    )


# --- Articles ---


def article_vers_dict(article: model.Article) -> dict:
    return {
        "id": article.id,
        "code": article.code,
        "deposantCode": article.déposant_code,
        "deposantNom": article.déposant_nom,
        "photo": article.photo,
        "taille": article.taille,
        "sexe": article.sexe,
        "prix": _prix_vers_json(article.prix),
        "emplacement": article.emplacement,
        "vendu": article.vendu,
        "dateVente": _date_vers_json(article.date_vente),
    }


def article_depuis_dict(données: dict) -> model.Article:
    return model.Article(
        id=str(données["id"]),
        code=str(données["code"]),
        déposant_code=str(données["deposantCode"]),
        déposant_nom=_texte(données.get("deposantNom")),
        taille=_texte(données.get("taille")),
        sexe=_texte(données.get("sexe")),
        prix=_prix_depuis_json(données["prix"]),
        photo=données.get("photo") or "",
        emplacement=données.get("emplacement") or None,
        vendu=bool(données.get("vendu", False)),
        date_vente=_date_depuis_json(données.get("dateVente")),
    )


# --- Ventes ---


def vente_vers_dict(vente: model.Vente) -> dict:
    return {
        "id": vente.id,
        "ticketNumber": vente.numéro_ticket,
        "articles": [
            {**article_vers_dict(ligne.article), "quantite": ligne.quantité}
            for ligne in vente.lignes
        ],
        "total": _prix_vers_json(vente.total),
        "date": _date_vers_json(vente.date),
    }


def vente_depuis_dict(données: dict) -> model.Vente:
    date = _date_depuis_json(données["date"])
    if date is None:
        raise EnregistrementInvalide(f"Date de vente illisible : {données['date']!r}")
    return model.Vente(
        id=str(données["id"]),
        numéro_ticket=données["ticketNumber"],
        lignes=tuple(
            model.LignePanier(article_depuis_dict(ligne), int(ligne["quantite"]))
            for ligne in données["articles"]
        ),
        total=_prix_depuis_json(données["total"]),
        date=date,
    )


# --- Tableaux ---


def encoder_liste(enregistrements: Iterable[T], encodeur: Callable[[T], dict]) -> str:
    return json.dumps([encodeur(e) for e in enregistrements], ensure_ascii=False)


def décoder_liste(texte: str, décodeur: Callable[[dict], T]) -> list[T]:
    """
    Décode un tableau JSON d'enregistrements.

    Toute anomalie (JSON invalide, champ manquant, valeur illisible)
    est signalée par EnregistrementInvalide.
    """
    try:
        données = json.loads(texte)
    except ValueError as e:
        raise EnregistrementInvalide(f"JSON invalide : {e}") from e
    if not isinstance(données, list):
        raise EnregistrementInvalide("Un tableau JSON est attendu")
    try:
        return [décodeur(d) for d in données]
    except (KeyError, TypeError, ValueError, ArithmeticError) as e:
        raise EnregistrementInvalide(f"Enregistrement illisible : {e!r}") from e
