from __future__ import annotations

import random
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand

from modules.businesses.models import Business, Customer
from modules.catalog.models import Service, ServiceCategory
from modules.orders.constants import OrderStatus
from modules.orders.dtos import CreateOrderDTO, CreateOrderItemDTO
from modules.orders.views import build_garment_registry, build_order_service


class Command(BaseCommand):
    help = "Seed database with realistic development data."

    def handle(self, *args, **options):
        random.seed(42)
        self.stdout.write("Seeding development data...")

        users_created = self._seed_users()
        business = self._seed_business()
        customers = self._seed_customers(business)
        services = self._seed_services(business)
        orders_created = self._seed_orders(business, customers, services)

        self.stdout.write(
            self.style.SUCCESS(
                "Seed completed: "
                f"users={users_created}, "
                f"customers={len(customers)}, "
                f"services={len(services)}, "
                f"orders={orders_created}"
            )
        )

    def _seed_users(self) -> int:
        User = get_user_model()
        created = 0
        if not User.objects.filter(username="admin").exists():
            User.objects.create_superuser("admin", password="admin123")
            created += 1
        if not User.objects.filter(username="counter").exists():
            User.objects.create_user("counter", password="counter123")
            created += 1
        return created

    def _seed_business(self) -> Business:
        business, _ = Business.objects.get_or_create(
            name="Main Street Cleaners",
            phone_number="555-010-2000",
            defaults={"location": "12 Main Street"},
        )
        return business

    def _seed_customers(self, business: Business) -> list[Customer]:
        self.stdout.write("Creating customers...")
        customers: list[Customer] = []
        seed_customers = [
            ("Ana", "Souza", "555-101-0001"),
            ("Bruno", "Lima", "555-101-0002"),
            ("Carla", "Mendes", "555-101-0003"),
            ("Daniel", "Costa", "555-101-0004"),
            ("Helena", "Ferreira", "555-101-0005"),
        ]
        for first_name, last_name, phone in seed_customers:
            customer, _ = Customer.objects.get_or_create(
                business=business,
                phone_number=phone,
                defaults={"first_name": first_name, "last_name": last_name},
            )
            customers.append(customer)
        self.stdout.write(self.style.SUCCESS("Creating customers... Done!"))
        return customers

    def _seed_services(self, business: Business) -> list[Service]:
        self.stdout.write("Creating services...")
        services: list[Service] = []
        catalog = [
            ("Shirt - Laundered", ServiceCategory.LAUNDRY, Decimal("3.50")),
            ("Suit - Dry Cleaned", ServiceCategory.DRY_CLEANING, Decimal("14.00")),
            ("Dress - Dry Cleaned", ServiceCategory.DRY_CLEANING, Decimal("12.00")),
            ("Trousers - Hem", ServiceCategory.ALTERATIONS, Decimal("9.00")),
            ("Comforter", ServiceCategory.LAUNDRY, Decimal("25.00")),
        ]
        for name, category, price in catalog:
            service, _ = Service.objects.get_or_create(
                business=business,
                name=name,
                defaults={"category": category, "base_price": price},
            )
            services.append(service)
        self.stdout.write(self.style.SUCCESS("Creating services... Done!"))
        return services

    def _seed_orders(
        self, business: Business, customers: list[Customer], services: list[Service]
    ) -> int:
        """Create orders through the real use cases so the audit trail,
        counters and garments are consistent."""
        self.stdout.write("Creating orders...")
        order_service = build_order_service()
        registry = build_garment_registry(order_service)
        targets = [
            OrderStatus.PENDING,
            OrderStatus.PROCESSING,
            OrderStatus.CLEANED,
            OrderStatus.COMPLETED,
            OrderStatus.CANCELLED,
        ]

        for index, target in enumerate(targets * 2):
            lines = random.sample(services, k=random.randint(1, 2))
            order = order_service.create_order(
                CreateOrderDTO(
                    business_id=business.id,
                    customer_id=random.choice(customers).id,
                    items=[
                        CreateOrderItemDTO(service_id=s.id, quantity=random.randint(1, 3))
                        for s in lines
                    ],
                )
            )
            if target == OrderStatus.CANCELLED:
                order_service.cancel_order(str(order.id), notes="Customer changed plans")
                continue
            if target == OrderStatus.PENDING:
                continue

            tokens = [
                f"SEED-{order.order_number}-{n}" for n in range(order.total_expected_units)
            ]
            for token in tokens:
                registry.reconcile_intake_scan(str(order.id), token)
            if target == OrderStatus.PROCESSING:
                continue
            for token in tokens:
                registry.reconcile_processing_scan(str(order.id), token)
            if target == OrderStatus.COMPLETED:
                order_service.assign_rack(str(order.id), f"R{index}")

        self.stdout.write(self.style.SUCCESS("Creating orders... Done!"))
        return len(targets) * 2
