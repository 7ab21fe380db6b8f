"""Writes aggregate domain events into the transactional outbox.

Called by repositories from inside the unit of work that mutated the
aggregate: the ``OutboxEvent`` rows commit or roll back together with the
state change, and the in-process bus only sees the events after commit.
"""

from __future__ import annotations

import json
from dataclasses import asdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List
from uuid import UUID

from modules.core.middleware import get_correlation_id
from modules.core.models import OutboxEvent
from shared.domain.events import DomainEvent, DomainEventMixin
from shared.infrastructure.bus import event_bus


def flush_domain_events(entity: DomainEventMixin, topic: str) -> List[DomainEvent]:
    """Persist and schedule publication of *entity*'s pending events."""
    events = entity.domain_events
    correlation_id = get_correlation_id()
    for event in events:
        payload = _serialize_event_payload(event)
        if correlation_id:
            payload["correlation_id"] = correlation_id
        OutboxEvent.objects.create(
            event_type=event.event_name,
            aggregate_id=str(event.aggregate_id),
            payload=payload,
            topic=topic,
        )
    entity.clear_domain_events()
    event_bus.publish_on_commit(events)
    return events


def _serialize_event_payload(event: Any) -> Dict[str, Any]:
    data = asdict(event)
    normalized = _normalize_for_json(data)
    return json.loads(json.dumps(normalized))


def _normalize_for_json(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, list):
        return [_normalize_for_json(item) for item in value]
    if isinstance(value, dict):
        return {key: _normalize_for_json(val) for key, val in value.items()}
    return value
