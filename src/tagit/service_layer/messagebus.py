"""
Message Bus.

Le message bus est le point d'entrée unique de la couche de présentation :
chaque action de l'utilisateur (inscrire un déposant, scanner un article
en caisse, encaisser) devient une command envoyée au bus.

Fonctionnement :
1. Une command entre dans le bus et est confiée à son unique handler
2. Les events émis par les agrégats pendant le traitement sont collectés
3. Chaque event est distribué à ses handlers, qui peuvent en émettre d'autres

Une erreur de command remonte à l'appelant ; une erreur d'event est
loggée et n'interrompt pas le traitement.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable, Union

from tagit.domain import commands, events
from tagit.service_layer import unit_of_work

logger = logging.getLogger(__name__)

Message = Union[commands.Command, events.Event]


class MessageBus:
    """
    Message Bus avec injection de dépendances.

    Les dépendances (uow, horloge, tirage...) sont résolues une fois
    pour toutes à la construction, d'après la signature de chaque
    handler : une dépendance manquante est signalée dès le démarrage
    plutôt qu'au premier scan.
    """

    def __init__(
        self,
        uow: unit_of_work.AbstractUnitOfWork,
        event_handlers: dict[type[events.Event], list[Callable]],
        command_handlers: dict[type[commands.Command], Callable],
        dependencies: dict[str, Any] | None = None,
    ):
        self.uow = uow
        self.event_handlers = event_handlers
        self.command_handlers = command_handlers
        self.dependencies = dependencies or {}
        self.queue: list[Message] = []
        self._injections: dict[Callable, dict[str, Any]] = {}
        tous = list(command_handlers.values())
        for handlers in event_handlers.values():
            tous.extend(handlers)
        for handler in tous:
            self._injections[handler] = self._résoudre(handler)

    def handle(self, message: Message) -> list[Any]:
        """
        Traite un message et tous les événements qui en découlent.

        Retourne les résultats des commands traitées (en pratique,
        le résultat de la command initiale en première position).
        """
        self.queue = [message]
        results: list[Any] = []
        while self.queue:
            message = self.queue.pop(0)
            if isinstance(message, events.Event):
                self._handle_event(message)
            elif isinstance(message, commands.Command):
                results.append(self._handle_command(message))
            else:
                raise ValueError(f"Message de type inconnu : {type(message)}")
        return results

    def _handle_event(self, event: events.Event) -> None:
        for handler in self.event_handlers.get(type(event), []):
            try:
                logger.debug("Traitement de l'event %s avec %s", event, handler.__name__)
                self._call_handler(handler, event)
                self.queue.extend(self.uow.collect_new_events())
            except Exception:
                logger.exception("Erreur lors du traitement de l'event %s", event)

    def _handle_command(self, command: commands.Command) -> Any:
        logger.debug("Traitement de la command %s", command)
        handler = self.command_handlers.get(type(command))
        if handler is None:
            raise ValueError(f"Aucun handler pour la command {type(command)}")
        result = self._call_handler(handler, command)
        self.queue.extend(self.uow.collect_new_events())
        return result

    def _résoudre(self, handler: Callable) -> dict[str, Any]:
        """
        Associe chaque paramètre du handler, après le message, à une dépendance.

        `uow` désigne le Unit of Work du bus ; les autres noms sont
        cherchés dans les dépendances.
        """
        kwargs: dict[str, Any] = {}
        for name in list(inspect.signature(handler).parameters)[1:]:
            if name == "uow":
                kwargs[name] = self.uow
            elif name in self.dependencies:
                kwargs[name] = self.dependencies[name]
            else:
                raise ValueError(f"Dépendance manquante pour {handler.__name__} : {name}")
        return kwargs

    def _call_handler(self, handler: Callable, message: Message) -> Any:
        return handler(message, **self._injections[handler])
