"""Order API views.

Exposes the order state machine, the quantity adjustment engine and the
garment registry's order-scoped operations via DRF ViewSets.  Domain
errors are not caught here: ``standard_exception_handler`` turns them into
the error envelope with the status code registered for their ``code``.
"""

from __future__ import annotations

from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.filters import OrderingFilter, SearchFilter
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.throttling import BaseThrottle
from rest_framework.viewsets import GenericViewSet

from modules.businesses.repositories.django_repository import BusinessDjangoRepository
from modules.catalog.repositories.django_repository import ServiceDjangoRepository
from modules.core.pagination import StandardResultsSetPagination
from modules.garments.repositories.django_repository import GarmentDjangoRepository
from modules.garments.serializers import (
    GarmentSerializer,
    GenerateTokensSerializer,
    IntakeScanSerializer,
    ProcessingScanSerializer,
    ScanResultSerializer,
)
from modules.garments.services import GarmentRegistry
from modules.orders.adjustments import QuantityAdjustmentService
from modules.orders.dtos import AuditEntryDTO, CreateOrderDTO, CreateOrderItemDTO
from modules.orders.filters import OrderFilter
from modules.orders.models import Order
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.serializers import (
    AdjustQuantitySerializer,
    AdjustServiceSerializer,
    CancelOrderSerializer,
    CreateOrderSerializer,
    OrderItemSerializer,
    OrderListSerializer,
    OrderSerializer,
    RackSerializer,
)
from modules.orders.services import OrderService

SCAN_ACTIONS = {"intake_scan", "processing_scan"}


def build_order_service() -> OrderService:
    return OrderService(
        order_repository=OrderDjangoRepository(),
        business_repository=BusinessDjangoRepository(),
        service_repository=ServiceDjangoRepository(),
    )


def build_garment_registry(order_service: OrderService) -> GarmentRegistry:
    return GarmentRegistry(
        garment_repository=GarmentDjangoRepository(),
        order_repository=OrderDjangoRepository(),
        order_service=order_service,
    )


class OrderViewSet(GenericViewSet):
    """ViewSet for Order operations.

    Uses ``OrderService`` with injected repositories (DIP).
    Does **not** extend ``ModelViewSet``: every write goes through the
    service layer.
    """

    queryset = Order.objects.all()
    filterset_class = OrderFilter
    search_fields = ["order_number", "customer__last_name", "customer__phone_number"]
    ordering_fields = ["created_at", "total_amount", "status"]
    ordering = ["-created_at", "-id"]
    filter_backends = [DjangoFilterBackend, SearchFilter, OrderingFilter]

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._service = build_order_service()
        self._adjustments = QuantityAdjustmentService(
            order_repository=OrderDjangoRepository(),
            order_service=self._service,
        )
        self._registry = build_garment_registry(self._service)

    def get_throttles(self) -> list[BaseThrottle]:
        """Scanner stations get their own, larger budget."""
        self.throttle_scope = "garment_scan" if self.action in SCAN_ACTIONS else None
        return super().get_throttles()

    # ------------------------------------------------------------------
    # Create / List / Retrieve
    # ------------------------------------------------------------------

    def create(self, request: Request) -> Response:
        """POST /api/v1/orders/"""
        create_serializer = CreateOrderSerializer(data=request.data)
        create_serializer.is_valid(raise_exception=True)

        data = create_serializer.validated_data
        dto = CreateOrderDTO(
            business_id=data["business_id"],
            customer_id=data["customer_id"],
            items=[CreateOrderItemDTO(**item) for item in data["items"]],
            payment_method=data["payment_method"],
            pickup_date=data.get("pickup_date"),
            customer_notes=data.get("customer_notes", ""),
        )
        order = self._service.create_order(dto)
        return Response(OrderSerializer(order).data, status=status.HTTP_201_CREATED)

    def get_queryset(self):
        return Order.objects.select_related("customer", "business")

    def list(self, request: Request) -> Response:
        """GET /api/v1/orders/

        Filtering (status, business, customer, date range, total range) is
        handled by ``OrderFilter``.  Results are paginated.
        """
        queryset = self.filter_queryset(self.get_queryset())

        paginator = StandardResultsSetPagination()
        page = paginator.paginate_queryset(queryset, request)
        serializer = OrderListSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    def retrieve(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/"""
        order = self._service.get_order(pk)
        return Response(OrderSerializer(order).data)

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"])
    def cancel(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/cancel/"""
        serializer = CancelOrderSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.cancel_order(pk, notes=serializer.validated_data["notes"])
        return Response(OrderSerializer(order).data)

    @action(detail=True, methods=["post"])
    def rack(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/rack/ (CLEANED → COMPLETED)."""
        serializer = RackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.assign_rack(pk, serializer.validated_data["rack_id"])
        return Response(self._with_rack(order))

    @action(detail=True, methods=["post"], url_path="reassign-rack")
    def reassign_rack(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/reassign-rack/"""
        serializer = RackSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        order = self._service.reassign_rack(pk, serializer.validated_data["rack_id"])
        return Response(self._with_rack(order))

    @action(detail=True, methods=["get"], url_path="audit-log")
    def audit_log(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/audit-log/

        Typed entries, the derived current rack and the legacy text rendering.
        """
        order = self._service.get_order(pk)
        entries = OrderDjangoRepository().list_audit_entries(str(order.id))
        return Response(
            {
                "order_id": str(order.id),
                "current_rack": self._service.current_rack(str(order.id)),
                "entries": [
                    AuditEntryDTO.from_entity(entry).model_dump(mode="json")
                    for entry in entries
                ],
                "text": self._service.render_audit_log(str(order.id)),
            }
        )

    # ------------------------------------------------------------------
    # Quantities
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="adjust-service")
    def adjust_service(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/adjust-service/"""
        serializer = AdjustServiceSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        items = self._adjustments.adjust_aggregate_quantity(
            pk,
            serializer.validated_data["service_name"],
            serializer.validated_data["total"],
        )
        return Response(
            {
                "order": OrderSerializer(self._service.get_order(pk)).data,
                "items": OrderItemSerializer(items, many=True).data,
            }
        )

    # ------------------------------------------------------------------
    # Garments
    # ------------------------------------------------------------------

    @action(detail=True, methods=["post"], url_path="scans/intake")
    def intake_scan(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/scans/intake/"""
        serializer = IntakeScanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        result = self._registry.reconcile_intake_scan(
            pk,
            data["token"],
            order_item_id=data.get("order_item_id"),
            use_anyway=data["use_anyway"],
        )
        return Response(ScanResultSerializer(result).data)

    @action(detail=True, methods=["post"], url_path="scans/processing")
    def processing_scan(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/orders/{pk}/scans/processing/"""
        serializer = ProcessingScanSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = self._registry.reconcile_processing_scan(pk, serializer.validated_data["token"])
        return Response(ScanResultSerializer(result).data)

    @action(detail=True, methods=["get"])
    def garments(self, request: Request, pk: str | None = None) -> Response:
        """GET /api/v1/orders/{pk}/garments/"""
        garments = self._registry.list_garments(pk)
        return Response(GarmentSerializer(garments, many=True).data)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _with_rack(self, order: Order) -> dict:
        data = dict(OrderSerializer(order).data)
        data["current_rack"] = self._service.current_rack(str(order.id))
        return data


class OrderItemViewSet(GenericViewSet):
    """Item-scoped operations: quantity adjustment and label generation."""

    queryset = Order.objects.none()

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        order_service = build_order_service()
        self._adjustments = QuantityAdjustmentService(
            order_repository=OrderDjangoRepository(),
            order_service=order_service,
        )
        self._registry = build_garment_registry(order_service)

    def get_throttles(self) -> list[BaseThrottle]:
        self.throttle_scope = "token_batch" if self.action == "tokens" else None
        return super().get_throttles()

    @action(detail=True, methods=["post"])
    def adjust(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/order-items/{pk}/adjust/"""
        serializer = AdjustQuantitySerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        item = self._adjustments.adjust_quantity(pk, serializer.validated_data["quantity"])
        return Response(OrderItemSerializer(item).data)

    @action(detail=True, methods=["post"])
    def tokens(self, request: Request, pk: str | None = None) -> Response:
        """POST /api/v1/order-items/{pk}/tokens/

        Generates pre-printed labels (PENDING garments) for the item.
        """
        serializer = GenerateTokensSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        garments = self._registry.generate_batch_tokens(
            pk, serializer.validated_data["count"]
        )
        return Response(
            GarmentSerializer(garments, many=True).data,
            status=status.HTTP_201_CREATED,
        )
