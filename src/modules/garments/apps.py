from django.apps import AppConfig


class GarmentsConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.garments"
    label = "garments"
