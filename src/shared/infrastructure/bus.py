"""In-memory event bus implementation."""

from __future__ import annotations

from typing import Dict, Iterable, List, Type

import structlog
from django.db import transaction

from shared.domain.bus import IEventBus, IEventHandler
from shared.domain.events import DomainEvent

logger = structlog.get_logger(__name__)


class InMemoryEventBus(IEventBus):
    """Simple in-process event bus."""

    def __init__(self) -> None:
        self._handlers: Dict[Type[DomainEvent], List[IEventHandler]] = {}

    def subscribe(self, event_class: Type[DomainEvent], handler: IEventHandler) -> None:
        handlers = self._handlers.setdefault(event_class, [])
        if handler not in handlers:
            handlers.append(handler)

    def publish(self, event: DomainEvent) -> None:
        for handler in self._handlers.get(type(event), []):
            handler.handle(event)

    def publish_on_commit(self, events: Iterable[DomainEvent]) -> None:
        """Publish *events* once the surrounding transaction commits.

        Handlers never observe an event whose state change was rolled back.
        Outside a transaction Django runs the callback immediately.
        """
        pending = list(events)
        if not pending:
            return

        def _publish() -> None:
            for event in pending:
                self.publish(event)
            logger.debug("event_bus.published", count=len(pending))

        transaction.on_commit(_publish)


# Global bus instance (singleton)

event_bus = InMemoryEventBus()
