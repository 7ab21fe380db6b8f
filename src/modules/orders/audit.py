"""Audit log codec.

An order's history is stored as typed ``OrderAuditEntry`` rows.  The text
form below is kept for display and for the legacy format, where each
order carried one newline-joined blob of lines::

    [2024-05-01T10:00:00.000Z] Status changed: PENDING → PROCESSING
    [2024-05-02T09:12:44.310Z] Placed on rack: A1
    [2024-05-03T16:40:02.001Z] Reassigned on rack: B2

Existing blobs must stay parseable, so ``parse_line`` accepts every line
``render_line`` produces plus the legacy variants: ``->`` arrows, lowercase
statuses, lines without a timestamp, and the browser locale stamps the old
counter app wrote::

    [3/16/2024, 9:12:44 AM] Placed on rack: A1

Locale stamps carry no zone and are read as UTC.  Rack events are found
anywhere in the line text.  Lines that match no grammar are kept as ``Note``
events rather than dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Union

from modules.orders.constants import UNASSIGNED_RACK, AuditEventType, parse_status

if TYPE_CHECKING:
    from modules.orders.models import OrderAuditEntry

ARROW = "→"

_LINE = re.compile(r"^\[(?P<timestamp>[^\]]+)\]\s?(?P<text>.*)$")
_STATUS_CHANGE = re.compile(
    r"^Status changed:\s*(?P<old>[A-Za-z_]+)\s*(?:→|->|\u00e2\u2020\u2019)\s*(?P<new>[A-Za-z_]+)\s*$"
)
_RACK = re.compile(r"\b(?P<verb>Placed|Reassigned) on rack:\s*(?P<rack>[A-Za-z0-9-]+)")
_QUANTITY = re.compile(r"^(?:Quantity adjusted:|Service: .+ adjusted from )")
_GARMENT = re.compile(r"^Garment\s")


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class StatusChange:
    old_status: str
    new_status: str
    occurred_at: Optional[datetime] = None

    event_type = AuditEventType.STATUS_CHANGE

    @property
    def text(self) -> str:
        return f"Status changed: {self.old_status} {ARROW} {self.new_status}"


@dataclass(frozen=True)
class RackPlacement:
    rack_id: str
    reassigned: bool = False
    occurred_at: Optional[datetime] = None

    @property
    def event_type(self) -> AuditEventType:
        if self.reassigned:
            return AuditEventType.RACK_REASSIGNMENT
        return AuditEventType.RACK_PLACEMENT

    @property
    def text(self) -> str:
        verb = "Reassigned" if self.reassigned else "Placed"
        return f"{verb} on rack: {self.rack_id}"


@dataclass(frozen=True)
class QuantityAdjustment:
    text: str
    occurred_at: Optional[datetime] = None

    event_type = AuditEventType.QUANTITY_ADJUSTMENT


@dataclass(frozen=True)
class GarmentEvent:
    text: str
    occurred_at: Optional[datetime] = None

    event_type = AuditEventType.GARMENT


@dataclass(frozen=True)
class Note:
    text: str
    occurred_at: Optional[datetime] = None

    event_type = AuditEventType.NOTE


AuditEvent = Union[StatusChange, RackPlacement, QuantityAdjustment, GarmentEvent, Note]


# ---------------------------------------------------------------------------
# Text messages
# ---------------------------------------------------------------------------


def quantity_adjusted_message(name: str, old: int, new: int) -> str:
    return f"Quantity adjusted: {name} {old} {ARROW} {new} ({new - old:+d})"


def service_adjusted_message(service_name: str, old_total: int, new_total: int) -> str:
    return f"Service: {service_name} adjusted from {old_total} to {new_total}"


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def format_timestamp(value: datetime) -> str:
    """ISO-8601 in UTC with millisecond precision and a ``Z`` suffix."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    utc = value.astimezone(timezone.utc)
    return utc.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def render_line(event: AuditEvent) -> str:
    if event.occurred_at is None:
        return event.text
    return f"[{format_timestamp(event.occurred_at)}] {event.text}"


def render_log(events: Iterable[AuditEvent]) -> str:
    return "\n".join(render_line(event) for event in events)


# ---------------------------------------------------------------------------
# Decoding
# ---------------------------------------------------------------------------


_LOCALE_FORMATS = (
    "%m/%d/%Y, %I:%M:%S %p",
    "%m/%d/%Y, %H:%M:%S",
    "%d/%m/%Y, %H:%M:%S",
)


def _parse_timestamp(value: str) -> Optional[datetime]:
    # Newer browsers put a narrow no-break space before AM/PM.
    value = value.replace("\u202f", " ").replace("\u00a0", " ").strip()
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        parsed = _parse_locale_timestamp(value)
    if parsed is None:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _parse_locale_timestamp(value: str) -> Optional[datetime]:
    for fmt in _LOCALE_FORMATS:
        try:
            return datetime.strptime(value, fmt)
        except ValueError:
            continue
    return None


def _parse_text(text: str, occurred_at: Optional[datetime]) -> AuditEvent:
    match = _STATUS_CHANGE.match(text)
    if match:
        try:
            old = parse_status(match.group("old"))
            new = parse_status(match.group("new"))
        except ValueError:
            return Note(text=text, occurred_at=occurred_at)
        return StatusChange(old_status=old.value, new_status=new.value, occurred_at=occurred_at)

    match = _RACK.search(text)
    if match:
        return RackPlacement(
            rack_id=match.group("rack"),
            reassigned=match.group("verb") == "Reassigned",
            occurred_at=occurred_at,
        )

    if _QUANTITY.match(text):
        return QuantityAdjustment(text=text, occurred_at=occurred_at)
    if _GARMENT.match(text):
        return GarmentEvent(text=text, occurred_at=occurred_at)
    return Note(text=text, occurred_at=occurred_at)


def parse_line(line: str) -> AuditEvent:
    """Decode one log line into a typed event."""
    line = line.strip()
    match = _LINE.match(line)
    if not match:
        return _parse_text(line, None)

    occurred_at = _parse_timestamp(match.group("timestamp"))
    event = _parse_text(match.group("text").strip(), occurred_at)
    if occurred_at is None and isinstance(event, Note):
        # Unreadable stamp on free text: keep the line as written.
        return Note(text=line)
    return event


def parse_log(blob: str) -> List[AuditEvent]:
    """Decode a newline-joined blob, skipping blank lines."""
    return [parse_line(line) for line in (blob or "").splitlines() if line.strip()]


def current_rack(events: Union[str, Iterable[AuditEvent]]) -> str:
    """Rack the order currently sits on.

    The whole history is scanned and the **last** placement or
    reassignment wins; ``"unassigned"`` when there is none.
    """
    if isinstance(events, str):
        events = parse_log(events)
    rack = UNASSIGNED_RACK
    for event in events:
        if isinstance(event, RackPlacement):
            rack = event.rack_id
    return rack


# ---------------------------------------------------------------------------
# Row mapping
# ---------------------------------------------------------------------------


def event_from_entry(entry: OrderAuditEntry) -> AuditEvent:
    """Typed event for a persisted audit row."""
    event_type = entry.event_type
    if event_type == AuditEventType.STATUS_CHANGE:
        return StatusChange(
            old_status=entry.old_status or "",
            new_status=entry.new_status or "",
            occurred_at=entry.occurred_at,
        )
    if event_type in (AuditEventType.RACK_PLACEMENT, AuditEventType.RACK_REASSIGNMENT):
        return RackPlacement(
            rack_id=entry.rack_id,
            reassigned=event_type == AuditEventType.RACK_REASSIGNMENT,
            occurred_at=entry.occurred_at,
        )
    if event_type == AuditEventType.QUANTITY_ADJUSTMENT:
        return QuantityAdjustment(text=entry.message, occurred_at=entry.occurred_at)
    if event_type == AuditEventType.GARMENT:
        return GarmentEvent(text=entry.message, occurred_at=entry.occurred_at)
    return Note(text=entry.message, occurred_at=entry.occurred_at)


def entry_fields(event: AuditEvent) -> Dict[str, Any]:
    """Column values that persist *event* as an ``OrderAuditEntry``."""
    fields: Dict[str, Any] = {
        "event_type": event.event_type,
        "message": event.text,
    }
    if isinstance(event, StatusChange):
        fields["old_status"] = event.old_status
        fields["new_status"] = event.new_status
    elif isinstance(event, RackPlacement):
        fields["rack_id"] = event.rack_id
    if event.occurred_at is not None:
        fields["occurred_at"] = event.occurred_at
    return fields
