"""Asynchronous garment tasks."""

from __future__ import annotations

import structlog
from celery import shared_task

logger = structlog.get_logger(__name__)


@shared_task(name="garments.generate_labels")
def generate_garment_labels(order_item_id: str, count: int) -> list[str]:
    """Generate a batch of pre-printed labels for one order item.

    Used for large print runs.  Domain errors (``GenerationExhausted``,
    ``InvalidOrderStatus`` ...) propagate so the task is marked failed and
    nothing is persisted.
    """
    from modules.orders.views import build_garment_registry, build_order_service

    registry = build_garment_registry(build_order_service())
    garments = registry.generate_batch_tokens(order_item_id, count)
    tokens = [garment.qr_code for garment in garments]
    logger.info("garment.labels_task_finished", order_item_id=order_item_id, count=len(tokens))
    return tokens
