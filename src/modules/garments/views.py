"""Garment API views: look-up and detail editing by scan token."""

from __future__ import annotations

from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.viewsets import GenericViewSet

from modules.garments.dtos import UpdateGarmentDTO
from modules.garments.models import Garment
from modules.garments.serializers import GarmentSerializer, UpdateGarmentSerializer
from modules.orders.views import build_garment_registry, build_order_service


class GarmentViewSet(GenericViewSet):
    """``/api/v1/garments/{qr_code}/``: read and edit one garment."""

    queryset = Garment.objects.all()
    lookup_field = "qr_code"
    lookup_value_regex = r"[^/]+"

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._registry = build_garment_registry(build_order_service())

    def retrieve(self, request: Request, qr_code: str | None = None) -> Response:
        """GET /api/v1/garments/{qr_code}/"""
        garment = self._registry.get_garment_by_token(qr_code)
        return Response(GarmentSerializer(garment).data)

    def partial_update(self, request: Request, qr_code: str | None = None) -> Response:
        """PATCH /api/v1/garments/{qr_code}/

        Only description, notes and image reference can change; the token
        and the status are owned by the scan flow.
        """
        serializer = UpdateGarmentSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        garment = self._registry.update_garment(
            qr_code, UpdateGarmentDTO(**serializer.validated_data)
        )
        return Response(GarmentSerializer(garment).data)
