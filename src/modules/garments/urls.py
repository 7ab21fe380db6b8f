"""Garment URL configuration."""

from __future__ import annotations

from rest_framework.routers import DefaultRouter

from modules.garments.views import GarmentViewSet

router = DefaultRouter(trailing_slash=True)
router.register("garments", GarmentViewSet, basename="garment")

urlpatterns = router.urls
