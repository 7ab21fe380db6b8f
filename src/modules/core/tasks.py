"""Asynchronous tasks of the core module."""

import structlog
from celery import shared_task
from django.db import DatabaseError, transaction

from modules.core.models import OutboxEvent

logger = structlog.get_logger(__name__)

OUTBOX_RELAY_BATCH_SIZE = 100


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = OUTBOX_RELAY_BATCH_SIZE) -> dict:
    """Hand pending outbox events to the log stream and mark them published.

    Events are taken oldest first.  A failure on one event marks only that
    event as failed; the rest of the batch continues.
    """
    relayed = failed = 0
    with transaction.atomic():
        pending = list(
            OutboxEvent.objects.pending().select_for_update()[:batch_size]
        )
        for event in pending:
            try:
                with transaction.atomic():
                    logger.info(
                        "outbox.event_relayed",
                        event_type=event.event_type,
                        aggregate_id=event.aggregate_id,
                        topic=event.topic,
                        payload=event.payload,
                    )
                    event.mark_as_published()
                relayed += 1
            except DatabaseError as exc:
                event.mark_as_failed(str(exc))
                failed += 1

    logger.info("outbox.relay_finished", relayed=relayed, failed=failed)
    return {"relayed": relayed, "failed": failed}
