"""Garment DRF serializers for API input/output."""

from __future__ import annotations

from rest_framework import serializers

from modules.garments.models import Garment
from modules.orders.serializers import OrderListSerializer

# ---------------------------------------------------------------------------
# Input Serializers
# ---------------------------------------------------------------------------


class IntakeScanSerializer(serializers.Serializer):
    """Validates an intake scan from a counter station."""

    token = serializers.CharField(max_length=128)
    order_item_id = serializers.UUIDField(required=False, allow_null=True)
    use_anyway = serializers.BooleanField(default=False)


class ProcessingScanSerializer(serializers.Serializer):
    token = serializers.CharField(max_length=128)


class GenerateTokensSerializer(serializers.Serializer):
    # Range is checked by the registry against GARMENT_BATCH_MAX_SIZE.
    count = serializers.IntegerField()


class UpdateGarmentSerializer(serializers.Serializer):
    description = serializers.CharField(required=False, max_length=255, allow_blank=True)
    notes = serializers.CharField(required=False, allow_blank=True)
    image_ref = serializers.CharField(required=False, max_length=512, allow_blank=True)


# ---------------------------------------------------------------------------
# Output Serializers (Read)
# ---------------------------------------------------------------------------


class GarmentSerializer(serializers.ModelSerializer):
    """Read serializer for garments."""

    order_id = serializers.UUIDField(source="order_item.order_id", read_only=True)

    class Meta:
        model = Garment
        fields = [
            "id",
            "qr_code",
            "order_id",
            "order_item_id",
            "description",
            "status",
            "notes",
            "image_ref",
            "last_scanned_at",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ScanResultSerializer(serializers.Serializer):
    """Read serializer for ``ScanResult``."""

    garment = GarmentSerializer(read_only=True)
    order = OrderListSerializer(read_only=True)
    order_transitioned = serializers.BooleanField(read_only=True)
