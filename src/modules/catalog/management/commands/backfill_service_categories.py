"""One-time classification of services created before categories existed.

Services whose category is still ``OTHER`` are classified from their name
and description (including legacy ``[CATEGORY:XXX]`` tags, which are
stripped from the description).  Order items copy the category of their
service, so they are updated in the same pass; items entered without a
catalog service are classified from their own name.
"""

from __future__ import annotations

from django.core.management.base import BaseCommand
from django.db import transaction

from modules.catalog.categories import infer_category, strip_category_tag
from modules.catalog.models import Service, ServiceCategory
from modules.orders.models import OrderItem


class Command(BaseCommand):
    help = "Classify uncategorised services (and their order items) from their names."

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report what would change without writing.",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        changed = 0

        with transaction.atomic():
            for service in Service.objects.filter(category=ServiceCategory.OTHER):
                category = infer_category(service.name, service.description)
                if category == ServiceCategory.OTHER:
                    continue
                changed += 1
                self.stdout.write(f"{service.name}: {category}")
                if dry_run:
                    continue
                service.category = category
                service.description = strip_category_tag(service.description)
                service.save(update_fields=["category", "description"])
                OrderItem.objects.filter(service=service).update(category=category)

            for item in OrderItem.objects.filter(
                service__isnull=True, category=ServiceCategory.OTHER
            ):
                category = infer_category(item.name)
                if category == ServiceCategory.OTHER:
                    continue
                changed += 1
                self.stdout.write(f"item {item.name}: {category}")
                if not dry_run:
                    item.category = category
                    item.save(update_fields=["category"])

        verb = "Would classify" if dry_run else "Classified"
        self.stdout.write(self.style.SUCCESS(f"{verb} {changed} service(s) and ad-hoc item(s)."))
