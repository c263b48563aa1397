"""
Bootstrap : assemblage de l'application (Composition Root).

Ce module construit le message bus avec toutes ses dépendances :
le Unit of Work sur le stockage, l'horloge, le tirage des codes.
En test, on injecte un stockage en mémoire, une horloge fixe et
un tirage déterministe.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Callable, Optional

from tagit import config
from tagit.adapters import orm, store
from tagit.domain import codes, commands, events
from tagit.service_layer import handlers, messagebus, unit_of_work


def bootstrap(
    start_orm: bool = True,
    uow: Optional[unit_of_work.AbstractUnitOfWork] = None,
    horloge: Optional[Callable[[], datetime]] = None,
    tirage: Optional[codes.Tirage] = None,
    max_tentatives: Optional[int] = None,
    **extra_dependencies: Any,
) -> messagebus.MessageBus:
    """
    Construit et retourne un MessageBus configuré.

    `start_orm` crée la table du stockage SQL par défaut ;
    à désactiver quand on injecte un autre stockage.
    """
    if start_orm:
        orm.créer_tables(store.DEFAULT_ENGINE)

    if uow is None:
        uow = unit_of_work.StoreUnitOfWork()

    dependencies: dict[str, Any] = {
        "horloge": horloge or datetime.now,
        "tirage": tirage or codes.tirage_aléatoire,
        "max_tentatives": (
            max_tentatives if max_tentatives is not None else config.get_max_tentatives_code()
        ),
        **extra_dependencies,
    }

    return messagebus.MessageBus(
        uow=uow,
        event_handlers=EVENT_HANDLERS,
        command_handlers=COMMAND_HANDLERS,
        dependencies=dependencies,
    )


# --- Routage des messages vers les handlers ---

EVENT_HANDLERS: dict[type[events.Event], list] = {
    events.DéposantSupprimé: [handlers.signaler_articles_orphelins],
    events.DéposantArrivé: [handlers.journaliser_arrivée],
    events.VenteEnregistrée: [handlers.journaliser_vente],
}

COMMAND_HANDLERS: dict[type[commands.Command], Any] = {
    commands.CréerDéposant: handlers.créer_déposant,
    commands.ModifierDéposant: handlers.modifier_déposant,
    commands.SupprimerDéposant: handlers.supprimer_déposant,
    commands.EnregistrerArrivée: handlers.enregistrer_arrivée,
    commands.CréerArticle: handlers.créer_article,
    commands.ModifierArticle: handlers.modifier_article,
    commands.SupprimerArticle: handlers.supprimer_article,
    commands.AjouterAuPanier: handlers.ajouter_au_panier,
    commands.ModifierQuantitéPanier: handlers.modifier_quantité_panier,
    commands.RetirerDuPanier: handlers.retirer_du_panier,
    commands.ViderPanier: handlers.vider_panier,
    commands.EncaisserVente: handlers.encaisser_vente,
    commands.RéconcilierVentes: handlers.réconcilier_ventes,
}
