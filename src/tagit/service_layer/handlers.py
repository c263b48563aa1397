"""
Handlers pour les commands et events.

Les handlers sont les fonctions qui traitent les commands et events
transitant par le message bus.

- Command handlers : exécutent une action (peuvent échouer)
- Event handlers : réagissent à un fait passé (ne doivent pas échouer)

Les dépendances `horloge` (datetime courant), `tirage` (chiffre aléatoire)
et `max_tentatives` sont injectées par le bus.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import TYPE_CHECKING, Callable

from tagit.domain import codes, commands, events, model
from tagit.domain.erreurs import Introuvable, PanierVide

if TYPE_CHECKING:
    from tagit.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

Horloge = Callable[[], datetime]


# --- Déposants ---


def créer_déposant(
    cmd: commands.CréerDéposant,
    uow: AbstractUnitOfWork,
    horloge: Horloge,
    tirage: codes.Tirage,
    max_tentatives: int,
) -> model.Déposant:
    """
    Inscrit un déposant et lui attribue un code libre.

    Les codes portés par des articles du catalogue restent réservés,
    même après la suppression de leur déposant.
    """
    with uow:
        réservés = {a.déposant_code for a in uow.articles.get().articles}
        déposant = uow.déposants.get().créer(
            cmd.prénom,
            cmd.nom,
            cmd.téléphone,
            maintenant=horloge(),
            tirage=tirage,
            max_tentatives=max_tentatives,
            codes_réservés=réservés,
        )
        uow.commit()
    logger.info("Déposant %s créé avec le code %s", déposant.nom_complet, déposant.code)
    return déposant


def modifier_déposant(cmd: commands.ModifierDéposant, uow: AbstractUnitOfWork) -> model.Déposant:
    changements = {
        champ: valeur
        for champ, valeur in (("prénom", cmd.prénom), ("nom", cmd.nom), ("téléphone", cmd.téléphone))
        if valeur is not None
    }
    with uow:
        déposant = uow.déposants.get().modifier(cmd.id, **changements)
        uow.commit()
    return déposant


def supprimer_déposant(cmd: commands.SupprimerDéposant, uow: AbstractUnitOfWork) -> None:
    with uow:
        uow.déposants.get().supprimer(cmd.id)
        uow.commit()


def enregistrer_arrivée(
    cmd: commands.EnregistrerArrivée,
    uow: AbstractUnitOfWork,
    horloge: Horloge,
) -> model.Déposant:
    with uow:
        déposant = uow.déposants.get().enregistrer_arrivée(cmd.code.strip(), horloge())
        uow.commit()
    return déposant


# --- Articles ---


def créer_article(cmd: commands.CréerArticle, uow: AbstractUnitOfWork) -> model.Article:
    """
    Ajoute un article au catalogue pour un déposant existant.

    Le nom du déposant est recopié dans l'article au moment de la création.
    """
    with uow:
        déposant = uow.déposants.get().get_par_code(cmd.déposant_code)
        if déposant is None:
            raise Introuvable(f"Déposant inconnu : {cmd.déposant_code}")
        article = uow.articles.get().créer(
            déposant_code=déposant.code,
            déposant_nom=déposant.nom_complet,
            taille=cmd.taille,
            sexe=cmd.sexe,
            prix=cmd.prix,
            photo=cmd.photo,
            emplacement=cmd.emplacement,
        )
        uow.commit()
    return article


def modifier_article(cmd: commands.ModifierArticle, uow: AbstractUnitOfWork) -> model.Article:
    with uow:
        article = uow.articles.get().modifier(cmd.id, **cmd.changements)
        uow.commit()
    return article


def supprimer_article(cmd: commands.SupprimerArticle, uow: AbstractUnitOfWork) -> None:
    with uow:
        uow.articles.get().supprimer(cmd.id)
        uow.commit()


# --- Panier ---


def ajouter_au_panier(
    cmd: commands.AjouterAuPanier, uow: AbstractUnitOfWork
) -> list[model.LignePanier]:
    """
    Ajoute une unité de l'article scanné au panier.

    Le panier reçoit un instantané de l'article tel qu'il est au catalogue.
    """
    with uow:
        article = uow.articles.get().get_par_code(cmd.code.strip())
        if article is None:
            raise Introuvable(f"Article introuvable : {cmd.code}")
        if article.vendu:
            logger.warning("L'article %s est déjà vendu, ajouté au panier malgré tout", article.code)
        panier = uow.panier.get()
        panier.ajouter(article)
        uow.commit()
    return panier.lignes()


def modifier_quantité_panier(
    cmd: commands.ModifierQuantitéPanier, uow: AbstractUnitOfWork
) -> list[model.LignePanier]:
    with uow:
        panier = uow.panier.get()
        panier.modifier_quantité(cmd.code, cmd.delta)
        uow.commit()
    return panier.lignes()


def retirer_du_panier(
    cmd: commands.RetirerDuPanier, uow: AbstractUnitOfWork
) -> list[model.LignePanier]:
    with uow:
        panier = uow.panier.get()
        panier.retirer(cmd.code)
        uow.commit()
    return panier.lignes()


def vider_panier(cmd: commands.ViderPanier, uow: AbstractUnitOfWork) -> None:
    with uow:
        uow.panier.get().vider()
        uow.commit()


# --- Encaissement ---


def encaisser_vente(
    cmd: commands.EncaisserVente,
    uow: AbstractUnitOfWork,
    horloge: Horloge,
) -> model.Vente:
    """
    Transforme le panier en vente.

    Le stockage n'ayant pas de transaction entre collections, chaque
    étape est une écriture séparée, dans cet ordre :

    1. marqueur d'encaissement en cours
    2. ajout de la vente au journal
    3. passage des articles à l'état vendu
    4. vidage du panier
    5. effacement du marqueur

    Une ErreurStockage interrompt la séquence sans annuler les étapes
    déjà écrites : la vente enregistrée fait foi, et le marqueur laissé
    en place permet à réconcilier_ventes() de terminer le travail.
    """
    with uow:
        précédente = uow.encaissement.get().vente
        if précédente is not None:
            logger.warning("Encaissement %s interrompu, reprise", précédente.numéro_ticket)
            reprise = _même_contenu(uow.panier.get(), précédente)
            _terminer_encaissement(uow, précédente)
            if reprise:
                # Le panier était celui de la vente interrompue : on la termine, sans en créer une autre
                return précédente

        panier = uow.panier.get()
        if panier.est_vide():
            raise PanierVide()

        maintenant = horloge()
        vente = model.créer_vente(panier.lignes(), maintenant)

        uow.encaissement.get().ouvrir(vente)
        uow.commit()

        uow.ventes.get().ajouter(vente)
        uow.commit()

        uow.articles.get().marquer_vendus(vente.codes(), maintenant)
        uow.commit()

        panier.vider()
        uow.commit()

        uow.encaissement.get().fermer()
        uow.commit()
    return vente


def _même_contenu(panier: model.Panier, vente: model.Vente) -> bool:
    return [(l.code, l.quantité) for l in panier.lignes()] == [
        (l.code, l.quantité) for l in vente.lignes
    ]


def _terminer_encaissement(uow: AbstractUnitOfWork, vente: model.Vente) -> list[model.Article]:
    """Rejoue les étapes d'un encaissement interrompu ; chaque étape est idempotente."""
    journal = uow.ventes.get()
    if not journal.contient(vente.id):
        journal.ajouter(vente)
        uow.commit()

    marqués = uow.articles.get().marquer_vendus(vente.codes(), vente.date)
    uow.commit()

    panier = uow.panier.get()
    if _même_contenu(panier, vente):
        panier.vider()
        uow.commit()

    uow.encaissement.get().fermer()
    uow.commit()
    return marqués


def réconcilier_ventes(cmd: commands.RéconcilierVentes, uow: AbstractUnitOfWork) -> list[str]:
    """
    Rétablit la cohérence entre le journal des ventes et le catalogue.

    Termine l'encaissement interrompu s'il y en a un, puis marque
    vendu tout article dont le code figure dans une vente.
    Retourne les codes des articles passés à l'état vendu.
    """
    codes_marqués: list[str] = []
    with uow:
        vente_en_cours = uow.encaissement.get().vente
        if vente_en_cours is not None:
            logger.warning("Reprise de l'encaissement interrompu %s", vente_en_cours.numéro_ticket)
            codes_marqués.extend(a.code for a in _terminer_encaissement(uow, vente_en_cours))

        catalogue = uow.articles.get()
        for vente in uow.ventes.get().ventes:
            marqués = catalogue.marquer_vendus(vente.codes(), vente.date)
            codes_marqués.extend(a.code for a in marqués)
        uow.commit()

    if codes_marqués:
        logger.warning("Articles marqués vendus par réconciliation : %s", ", ".join(codes_marqués))
    return codes_marqués


# --- Event Handlers ---


def signaler_articles_orphelins(event: events.DéposantSupprimé, uow: AbstractUnitOfWork) -> None:
    """
    Signale les articles d'un déposant supprimé.

    La suppression ne cascade pas : les articles restent au catalogue,
    avec le code et le nom du déposant recopiés à leur création.
    """
    with uow:
        orphelins = uow.articles.get().articles_du_déposant(event.code)
    if orphelins:
        logger.warning(
            "Déposant %s supprimé : %d article(s) restent sans déposant (%s)",
            event.code,
            len(orphelins),
            ", ".join(a.code for a in orphelins),
        )


def journaliser_arrivée(event: events.DéposantArrivé) -> None:
    logger.info("Check-in du déposant %s", event.code)


def journaliser_vente(event: events.VenteEnregistrée) -> None:
    logger.info("Vente %s enregistrée, total %s", event.numéro_ticket, event.total)
