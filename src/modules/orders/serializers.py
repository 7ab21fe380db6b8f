"""Order DRF serializers for API input/output.

The serializer operates at the Interface layer (API Views).
Business logic lives in the Service Layer, which receives
Pydantic DTOs from ``dtos.py``.
"""

from __future__ import annotations

from rest_framework import serializers

from modules.catalog.models import ServiceCategory
from modules.orders.constants import PaymentMethod
from modules.orders.models import Order, OrderItem

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class CreateOrderItemSerializer(serializers.Serializer):
    """Validates a single line in an order creation request."""

    service_id = serializers.UUIDField(required=False, allow_null=True)
    name = serializers.CharField(required=False, allow_blank=True, max_length=255)
    category = serializers.ChoiceField(choices=ServiceCategory.choices, required=False)
    quantity = serializers.IntegerField(min_value=0)
    unit_price = serializers.DecimalField(
        max_digits=10, decimal_places=2, min_value=0, required=False
    )

    def validate(self, attrs):
        if not attrs.get("service_id") and not (attrs.get("name") or "").strip():
            raise serializers.ValidationError("Each item needs a service_id or a name.")
        return attrs


class CreateOrderSerializer(serializers.Serializer):
    """Validates the order creation request payload."""

    business_id = serializers.UUIDField()
    customer_id = serializers.UUIDField()
    items = CreateOrderItemSerializer(many=True, allow_empty=False)
    payment_method = serializers.ChoiceField(
        choices=PaymentMethod.choices, default=PaymentMethod.CASH
    )
    pickup_date = serializers.DateTimeField(required=False, allow_null=True)
    customer_notes = serializers.CharField(required=False, default="", allow_blank=True)


class CancelOrderSerializer(serializers.Serializer):
    notes = serializers.CharField(required=False, default="", allow_blank=True)


class RackSerializer(serializers.Serializer):
    rack_id = serializers.CharField(max_length=64)


class AdjustQuantitySerializer(serializers.Serializer):
    # Negative values reach the engine, which rejects them as invalid_quantity.
    quantity = serializers.IntegerField()


class AdjustServiceSerializer(serializers.Serializer):
    service_name = serializers.CharField(max_length=255)
    total = serializers.IntegerField()


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class OrderItemSerializer(serializers.ModelSerializer):
    """Read serializer for order items."""

    class Meta:
        model = OrderItem
        fields = [
            "id",
            "service_id",
            "name",
            "category",
            "quantity",
            "unit_price",
            "subtotal",
        ]
        read_only_fields = fields


class OrderSerializer(serializers.ModelSerializer):
    """Read serializer for orders with nested items and intake progress."""

    items = OrderItemSerializer(many=True, read_only=True)

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "business_id",
            "customer_id",
            "status",
            "total_amount",
            "payment_method",
            "pickup_date",
            "customer_notes",
            "total_expected_units",
            "scanned_count",
            "created_at",
            "updated_at",
            "items",
        ]
        read_only_fields = fields


class OrderListSerializer(serializers.ModelSerializer):
    """Lightweight serializer for order list (no nested relations)."""

    class Meta:
        model = Order
        fields = [
            "id",
            "order_number",
            "business_id",
            "customer_id",
            "status",
            "total_amount",
            "total_expected_units",
            "scanned_count",
            "created_at",
        ]
        read_only_fields = fields
