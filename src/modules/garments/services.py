"""Garment registry: scan reconciliation and label generation.

Business rules enforced:
- Intake (order PENDING): an unseen token creates an IN_PROGRESS garment
  under the designated item, or the order's first item.  A token
  pre-printed for this order is activated.  A token already counted for
  this order is a ``DuplicateScan``.  A token owned by another order is a
  ``CrossOrderConflict`` unless the operator confirms with ``use_anyway``,
  in which case the garment is moved to this order.
  A token inserted by a concurrent scan on another order surfaces as the
  same conflict.
- Every accepted intake scan increments ``scanned_count``; the scan that
  reaches ``total_expected_units`` moves the order to PROCESSING.
- Processing (order PROCESSING): a scan toggles the garment between
  IN_PROGRESS and COMPLETED.  Once every garment of the order is COMPLETED
  the order moves to CLEANED; an order without garments or expected units
  never does.
- ``scanned_count`` always equals the number of the order's garments that
  are not PENDING.
- Each scan runs under the order row lock (both orders, in id order, when
  a garment changes hands) and appends a GARMENT audit entry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, List, Optional

import structlog
from django.conf import settings
from django.db import IntegrityError
from django.utils import timezone

from modules.core.exceptions import PersistenceError, atomic_operation
from modules.garments.constants import OWNER_LOCK_RETRIES, GarmentStatus
from modules.garments.dtos import ScanResult
from modules.garments.events import (
    GarmentLabelsGenerated,
    GarmentReassociated,
    GarmentScanned,
)
from modules.garments.exceptions import (
    CrossOrderConflict,
    DuplicateScan,
    GarmentNotFound,
    InvalidToken,
    TokenCollision,
    UnknownGarment,
)
from modules.garments.tokens import TokenGenerator
from modules.orders import audit
from modules.orders.constants import OrderStatus
from modules.orders.exceptions import (
    InvalidOrderStatus,
    InvalidQuantity,
    OrderItemNotFound,
    OrderNotFound,
)

if TYPE_CHECKING:
    from modules.garments.dtos import UpdateGarmentDTO
    from modules.garments.models import Garment
    from modules.garments.repositories.interfaces import IGarmentRepository
    from modules.orders.models import Order, OrderItem
    from modules.orders.repositories.interfaces import IOrderRepository
    from modules.orders.services import OrderService

logger = structlog.get_logger(__name__)


class GarmentRegistry:
    """Application service owning token → garment reconciliation."""

    def __init__(
        self,
        garment_repository: IGarmentRepository,
        order_repository: IOrderRepository,
        order_service: OrderService,
        token_generator: Optional[TokenGenerator] = None,
        batch_max_size: Optional[int] = None,
    ) -> None:
        self._garment_repo = garment_repository
        self._order_repo = order_repository
        self._orders = order_service
        self._tokens = token_generator or TokenGenerator(
            exists=garment_repository.token_exists,
            max_attempts=settings.GARMENT_TOKEN_MAX_ATTEMPTS,
        )
        self._batch_max_size = batch_max_size or settings.GARMENT_BATCH_MAX_SIZE

    # ------------------------------------------------------------------
    # Intake phase
    # ------------------------------------------------------------------

    @atomic_operation
    def reconcile_intake_scan(
        self,
        order_id: str,
        token: str,
        order_item_id: Optional[str] = None,
        use_anyway: bool = False,
    ) -> ScanResult:
        """Count one physical garment in at drop-off.

        Raises:
            InvalidToken: *token* is blank.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is not PENDING.
            OrderItemNotFound: the order has no items, or *order_item_id*
                is not one of them.
            DuplicateScan: the token is already counted for this order.
            CrossOrderConflict: the token belongs to another order and
                *use_anyway* is not set.
        """
        token = self._clean_token(token)
        order_id = str(order_id)
        log = logger.bind(order_id=order_id, qr_code=token)

        locked, garment = self._lock_token_owners(order_id, token)
        order = locked.get(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.", order_id=order_id)
        self._require_status(order, OrderStatus.PENDING)
        item = self._target_item(order, order_item_id)
        now = timezone.now()

        if garment is None:
            try:
                garment = self._garment_repo.create(
                    {
                        "order_item": item,
                        "qr_code": token,
                        "description": f"{item.name} - {now.isoformat()}",
                        "status": GarmentStatus.IN_PROGRESS,
                        "last_scanned_at": now,
                    }
                )
            except IntegrityError:
                # A concurrent scan registered the token on another order first.
                owner = self._garment_repo.get_by_token(token)
                if owner is None or str(owner.order_item.order_id) == order_id:
                    raise
                log.info(
                    "garment.cross_order_conflict",
                    owning_order_id=str(owner.order_item.order_id),
                    stage="insert",
                )
                raise self._conflict(order_id, token, owner.order_item.order)
            message = f"Garment {token} scanned in"
        elif str(garment.order_item.order_id) == order_id:
            if garment.status != GarmentStatus.PENDING:
                log.info("garment.duplicate_scan", garment_id=str(garment.id))
                raise DuplicateScan(
                    f"Garment {token} is already scanned for this order.",
                    order_id=order_id,
                    qr_code=token,
                    garment_id=garment.id,
                )
            garment.status = GarmentStatus.IN_PROGRESS
            garment.last_scanned_at = now
            self._garment_repo.save(garment)
            message = f"Garment {token} scanned in"
        else:
            source = locked[str(garment.order_item.order_id)]
            if not use_anyway:
                log.info("garment.cross_order_conflict", owning_order_id=str(source.id))
                raise self._conflict(order_id, token, source)
            self._move_garment(garment, source, order, item, now)
            message = f"Garment {token} moved from order {source.order_number}"

        order.scanned_count += 1
        order.add_domain_event(
            GarmentScanned(
                aggregate_id=order.id,
                garment_id=str(garment.id),
                qr_code=token,
                phase="intake",
                garment_status=garment.status,
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_audit_entry(order, audit.GarmentEvent(text=message))

        transitioned = False
        if order.intake_complete:
            self._orders.transition(order, OrderStatus.PROCESSING, reason="intake_complete")
            transitioned = True

        log.info(
            "garment.intake_scanned",
            garment_id=str(garment.id),
            scanned_count=order.scanned_count,
            total_expected_units=order.total_expected_units,
            order_transitioned=transitioned,
        )
        return ScanResult(garment=garment, order=order, order_transitioned=transitioned)

    # ------------------------------------------------------------------
    # Processing phase
    # ------------------------------------------------------------------

    @atomic_operation
    def reconcile_processing_scan(self, order_id: str, token: str) -> ScanResult:
        """Toggle a garment's completion while the order is being cleaned.

        Raises:
            InvalidToken: *token* is blank.
            OrderNotFound: order does not exist.
            InvalidOrderStatus: the order is not PROCESSING.
            UnknownGarment: no garment of this order carries *token*.
        """
        token = self._clean_token(token)
        order_id = str(order_id)
        log = logger.bind(order_id=order_id, qr_code=token)

        order = self._order_repo.get_for_update(order_id)
        if order is None:
            raise OrderNotFound(f"Order {order_id} not found.", order_id=order_id)
        self._require_status(order, OrderStatus.PROCESSING)

        garment = self._garment_repo.get_by_token(token, for_update=True)
        if garment is None or str(garment.order_item.order_id) != order_id:
            log.info("garment.unknown_scan")
            raise UnknownGarment(
                f"No garment {token} on this order.",
                order_id=order_id,
                qr_code=token,
            )

        now = timezone.now()
        if garment.status == GarmentStatus.COMPLETED:
            garment.status = GarmentStatus.IN_PROGRESS
            message = f"Garment {token} reopened"
        else:
            if garment.status == GarmentStatus.PENDING:
                order.scanned_count += 1
            garment.status = GarmentStatus.COMPLETED
            message = f"Garment {token} completed"
        garment.last_scanned_at = now
        self._garment_repo.save(garment)

        order.add_domain_event(
            GarmentScanned(
                aggregate_id=order.id,
                garment_id=str(garment.id),
                qr_code=token,
                phase="processing",
                garment_status=garment.status,
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_audit_entry(order, audit.GarmentEvent(text=message))

        transitioned = False
        if garment.status == GarmentStatus.COMPLETED and self._all_completed(order):
            self._orders.transition(order, OrderStatus.CLEANED, reason="all_garments_completed")
            transitioned = True

        log.info(
            "garment.processing_scanned",
            garment_id=str(garment.id),
            garment_status=garment.status,
            order_transitioned=transitioned,
        )
        return ScanResult(garment=garment, order=order, order_transitioned=transitioned)

    # ------------------------------------------------------------------
    # Label generation
    # ------------------------------------------------------------------

    @atomic_operation
    def generate_batch_tokens(self, order_item_id: str, count: int) -> List[Garment]:
        """Create *count* PENDING garments with fresh tokens for one item.

        All or nothing: if any token cannot be generated the whole batch
        is rolled back.

        Raises:
            InvalidQuantity: *count* is below 1 or above the batch limit.
            OrderItemNotFound: item does not exist.
            InvalidOrderStatus: the order is not PENDING.
            GenerationExhausted: a unique token could not be produced.
        """
        if (
            isinstance(count, bool)
            or not isinstance(count, int)
            or not 1 <= count <= self._batch_max_size
        ):
            raise InvalidQuantity(
                f"Batch size must be between 1 and {self._batch_max_size}.",
                order_item_id=order_item_id,
                count=count,
            )

        item = self._order_repo.get_item(str(order_item_id))
        if item is None:
            raise OrderItemNotFound(
                f"Order item {order_item_id} not found.", order_item_id=order_item_id
            )
        order = self._order_repo.get_for_update(str(item.order_id))
        if order is None:
            raise OrderNotFound(f"Order {item.order_id} not found.", order_id=item.order_id)
        self._require_status(order, OrderStatus.PENDING)

        log = logger.bind(order_id=str(order.id), order_item_id=str(item.id), count=count)
        tenant_hint = order.business.token_prefix
        offset = self._garment_repo.count_for_item(str(item.id))
        created: List[Garment] = []

        for index in range(1, count + 1):
            number = offset + index

            def claim(token: str, number: int = number) -> None:
                try:
                    garment = self._garment_repo.create(
                        {
                            "order_item": item,
                            "qr_code": token,
                            "description": f"{item.name} #{number}",
                            "status": GarmentStatus.PENDING,
                        }
                    )
                except IntegrityError as exc:
                    raise TokenCollision(token) from exc
                created.append(garment)

            self._tokens.generate(tenant_hint, item.name, number, claim=claim)

        order.add_domain_event(
            GarmentLabelsGenerated(
                aggregate_id=order.id, order_item_id=str(item.id), count=count
            )
        )
        self._order_repo.save(order)
        self._order_repo.add_audit_entry(
            order,
            audit.GarmentEvent(text=f"Garment labels generated: {item.name} x{count}"),
        )
        log.info("garment.batch_generated")
        return created

    # ------------------------------------------------------------------
    # Garment details
    # ------------------------------------------------------------------

    @atomic_operation
    def update_garment(self, token: str, dto: UpdateGarmentDTO) -> Garment:
        """Edit description, notes or image reference of a garment."""
        garment = self._garment_repo.get_by_token(self._clean_token(token), for_update=True)
        if garment is None:
            raise GarmentNotFound(f"Garment {token} not found.", qr_code=token)
        changes = dto.changes()
        for field, value in changes.items():
            setattr(garment, field, value)
        if changes:
            self._garment_repo.save(garment)
            logger.info("garment.updated", garment_id=str(garment.id), fields=sorted(changes))
        return garment

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_garment_by_token(self, token: str) -> Garment:
        garment = self._garment_repo.get_by_token(self._clean_token(token))
        if garment is None:
            raise GarmentNotFound(f"Garment {token} not found.", qr_code=token)
        return garment

    def list_garments(self, order_id: str) -> List[Garment]:
        if self._order_repo.get_by_id(str(order_id)) is None:
            raise OrderNotFound(f"Order {order_id} not found.", order_id=order_id)
        return self._garment_repo.list_for_order(str(order_id))

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _clean_token(token: str) -> str:
        cleaned = (token or "").strip()
        if not cleaned:
            raise InvalidToken("Scan token must not be blank.")
        return cleaned

    @staticmethod
    def _require_status(order: Order, status: str) -> None:
        if order.status != status:
            raise InvalidOrderStatus(
                f"Order {order.order_number} is {order.status}, expected {status}.",
                order_id=order.id,
                status=order.status,
            )

    @staticmethod
    def _conflict(order_id: str, token: str, source: Order) -> CrossOrderConflict:
        return CrossOrderConflict(
            f"Garment {token} belongs to order {source.order_number}.",
            order_id=order_id,
            qr_code=token,
            owning_order_id=source.id,
            owning_order_number=source.order_number,
        )

    def _target_item(self, order: Order, order_item_id: Optional[str]) -> OrderItem:
        items = self._order_repo.list_items(str(order.id))
        if not items:
            raise OrderItemNotFound(
                f"Order {order.order_number} has no items.", order_id=order.id
            )
        if order_item_id is None:
            return items[0]
        for item in items:
            if str(item.id) == str(order_item_id):
                return item
        raise OrderItemNotFound(
            f"Order item {order_item_id} is not part of order {order.order_number}.",
            order_id=order.id,
            order_item_id=order_item_id,
        )

    def _lock_token_owners(self, order_id: str, token: str) -> tuple[Dict[str, Order], Optional[Garment]]:
        """Lock the scanning order and the token's current owner.

        The owner is read before locking so both rows can be locked in id
        order; if the garment changed hands meanwhile, start over.
        """
        for _ in range(OWNER_LOCK_RETRIES):
            peek = self._garment_repo.get_by_token(token)
            order_ids = [order_id]
            if peek is not None:
                order_ids.append(str(peek.order_item.order_id))
            locked = self._order_repo.lock_many(order_ids)

            garment = self._garment_repo.get_by_token(token, for_update=True)
            if garment is None or str(garment.order_item.order_id) in locked:
                return locked, garment
            logger.info("garment.owner_changed", order_id=order_id, qr_code=token)

        raise PersistenceError(
            f"Ownership of garment {token} kept changing.", order_id=order_id, qr_code=token
        )

    def _move_garment(
        self,
        garment: Garment,
        source: Order,
        order: Order,
        item: OrderItem,
        now,
    ) -> None:
        if garment.status != GarmentStatus.PENDING:
            source.scanned_count -= 1
        garment.order_item = item
        garment.status = GarmentStatus.IN_PROGRESS
        garment.last_scanned_at = now
        self._garment_repo.save(garment)

        source.add_domain_event(
            GarmentReassociated(
                aggregate_id=source.id,
                garment_id=str(garment.id),
                qr_code=garment.qr_code,
                source_order_id=str(source.id),
            )
        )
        self._order_repo.save(source)
        self._order_repo.add_audit_entry(
            source,
            audit.GarmentEvent(
                text=f"Garment {garment.qr_code} moved to order {order.order_number}"
            ),
        )
        order.add_domain_event(
            GarmentReassociated(
                aggregate_id=order.id,
                garment_id=str(garment.id),
                qr_code=garment.qr_code,
                source_order_id=str(source.id),
            )
        )
        logger.info(
            "garment.reassociated",
            garment_id=str(garment.id),
            source_order_id=str(source.id),
            order_id=str(order.id),
        )

    def _all_completed(self, order: Order) -> bool:
        if order.total_expected_units <= 0:
            return False
        total = self._garment_repo.count_for_order(str(order.id))
        if total == 0:
            return False
        return self._garment_repo.count_for_order(
            str(order.id), exclude_status=GarmentStatus.COMPLETED
        ) == 0
