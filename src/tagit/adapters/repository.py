"""
Pattern Repository.

Chaque repository donne accès à une collection persistée sous une clé
du stockage, chargée en un seul agrégat (Annuaire, Catalogue, Panier,
Journal). Le stockage n'offrant aucune écriture partielle, sauvegarder
revient à réécrire toute la collection.

Une collection absente vaut une collection vide ; une collection
illisible (JSON corrompu, enregistrement incomplet) aussi, avec un
avertissement dans les logs. Une collection durable (déposants,
articles, ventes) relue ainsi reste consultable mais n'est jamais
réécrite : sauvegarder() lève CollectionIllisible.
"""

from __future__ import annotations

import abc
import logging
from typing import Callable, Generic, Optional, TypeVar

from tagit.adapters import serialisation
from tagit.adapters.store import AbstractStore
from tagit.domain import model
from tagit.domain.erreurs import CollectionIllisible

logger = logging.getLogger(__name__)

A = TypeVar("A", bound=model.Agrégat)


class AbstractRepository(abc.ABC, Generic[A]):
    """
    Interface abstraite du repository.

    Le pattern Template Method est utilisé : get() et sauvegarder()
    gèrent le cache et le suivi des versions, puis délèguent aux
    méthodes abstraites _charger() et _écrire().
    """

    def __init__(self) -> None:
        # `seen` trace les agrégats consultés pendant la transaction,
        # ce qui permet au Unit of Work de collecter leurs événements.
        self.seen: set[model.Agrégat] = set()
        self._agrégat: Optional[A] = None
        self._version_écrite = 0

    def get(self) -> A:
        """Charge la collection (une seule fois par transaction) et la marque comme vue."""
        if self._agrégat is None:
            self._agrégat = self._charger()
            self._version_écrite = self._agrégat.numéro_version
            self.seen.add(self._agrégat)
        return self._agrégat

    @property
    def modifié(self) -> bool:
        return self._agrégat is not None and self._agrégat.numéro_version != self._version_écrite

    def sauvegarder(self) -> bool:
        """Réécrit la collection si elle a changé depuis la dernière écriture."""
        if not self.modifié:
            return False
        self._vérifier_réécriture()
        self._écrire(self._agrégat)
        self._version_écrite = self._agrégat.numéro_version
        return True

    def abandonner(self) -> None:
        """Oublie l'agrégat chargé : le prochain get() relira le stockage."""
        self._agrégat = None

    def _vérifier_réécriture(self) -> None:
        pass

    @abc.abstractmethod
    def _charger(self) -> A:
        raise NotImplementedError

    @abc.abstractmethod
    def _écrire(self, agrégat: A) -> None:
        raise NotImplementedError


class JsonRepository(AbstractRepository[A]):
    """Repository d'une collection stockée comme tableau JSON sous `clé`."""

    clé: str
    décodeur: Callable[[dict], object]
    encodeur: Callable[[object], dict]
    # Faux pour le panier et le marqueur, réécrits même illisibles
    durable = True

    def __init__(self, store: AbstractStore):
        super().__init__()
        self.store = store
        self.illisible = False

    def _lire_enregistrements(self) -> list:
        self.illisible = False
        texte = self.store.get(self.clé)
        if texte is None:
            return []
        try:
            return serialisation.décoder_liste(texte, type(self).décodeur)
        except serialisation.EnregistrementInvalide as e:
            logger.warning("Collection '%s' illisible, traitée comme vide : %s", self.clé, e)
            self.illisible = True
            return []

    def _vérifier_réécriture(self) -> None:
        if self.durable and self.illisible:
            raise CollectionIllisible(self.clé)

    def _écrire_enregistrements(self, enregistrements: list) -> None:
        self.store.set(self.clé, serialisation.encoder_liste(enregistrements, type(self).encodeur))


class AnnuaireRepository(JsonRepository[model.Annuaire]):
    clé = "depositors"
    décodeur = staticmethod(serialisation.déposant_depuis_dict)
    encodeur = staticmethod(serialisation.déposant_vers_dict)

    def _charger(self) -> model.Annuaire:
        return model.Annuaire(self._lire_enregistrements())

    def _écrire(self, agrégat: model.Annuaire) -> None:
        self._écrire_enregistrements(agrégat.déposants)


class CatalogueRepository(JsonRepository[model.Catalogue]):
    clé = "articles"
    décodeur = staticmethod(serialisation.article_depuis_dict)
    encodeur = staticmethod(serialisation.article_vers_dict)

    def _charger(self) -> model.Catalogue:
        return model.Catalogue(self._lire_enregistrements())

    def _écrire(self, agrégat: model.Catalogue) -> None:
        self._écrire_enregistrements(agrégat.articles)


class PanierRepository(JsonRepository[model.Panier]):
    """Le panier vidé est retiré du stockage plutôt qu'écrit comme tableau vide."""

    clé = "panier_temporaire"
    durable = False
    décodeur = staticmethod(serialisation.article_depuis_dict)
    encodeur = staticmethod(serialisation.article_vers_dict)

    def _charger(self) -> model.Panier:
        return model.Panier(self._lire_enregistrements())

    def _écrire(self, agrégat: model.Panier) -> None:
        if agrégat.est_vide():
            self.store.remove(self.clé)
        else:
            self._écrire_enregistrements(agrégat.entrées)


class JournalRepository(JsonRepository[model.Journal]):
    clé = "ventes"
    décodeur = staticmethod(serialisation.vente_depuis_dict)
    encodeur = staticmethod(serialisation.vente_vers_dict)

    def _charger(self) -> model.Journal:
        return model.Journal(self._lire_enregistrements())

    def _écrire(self, agrégat: model.Journal) -> None:
        self._écrire_enregistrements(agrégat.ventes)


class EncaissementRepository(JsonRepository[model.EncaissementEnCours]):
    """Marqueur d'encaissement : un tableau d'au plus une vente, clé retirée quand il est fermé."""

    clé = "vente_en_cours"
    durable = False
    décodeur = staticmethod(serialisation.vente_depuis_dict)
    encodeur = staticmethod(serialisation.vente_vers_dict)

    def _charger(self) -> model.EncaissementEnCours:
        ventes = self._lire_enregistrements()
        return model.EncaissementEnCours(ventes[0] if ventes else None)

    def _écrire(self, agrégat: model.EncaissementEnCours) -> None:
        if agrégat.vente is None:
            self.store.remove(self.clé)
        else:
            self._écrire_enregistrements([agrégat.vente])
