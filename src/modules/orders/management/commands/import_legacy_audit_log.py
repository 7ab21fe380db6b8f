"""Convert a legacy text audit log into typed audit entries.

Older orders kept their history as one newline-joined blob of
``[timestamp] text`` lines.  This command parses such a blob (from a file
or stdin) and appends the decoded events to the order's audit trail.
"""

from __future__ import annotations

import sys

from django.core.management.base import BaseCommand, CommandError

from modules.core.exceptions import DomainError
from modules.orders import audit
from modules.orders.repositories.django_repository import OrderDjangoRepository
from modules.orders.services import OrderService


class Command(BaseCommand):
    help = "Import a legacy text audit log into an order's typed audit trail."

    def add_arguments(self, parser):
        parser.add_argument("order_id", help="Order the log belongs to.")
        parser.add_argument(
            "--file",
            dest="path",
            help="Read the log from this file instead of stdin.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only show how each line would be decoded.",
        )

    def handle(self, *args, **options):
        if options["path"]:
            with open(options["path"], encoding="utf-8") as handle:
                blob = handle.read()
        else:
            blob = sys.stdin.read()

        if options["dry_run"]:
            for event in audit.parse_log(blob):
                self.stdout.write(f"{event.event_type}: {audit.render_line(event)}")
            return

        service = OrderService(order_repository=OrderDjangoRepository())
        try:
            entries = service.import_legacy_audit_log(options["order_id"], blob)
        except DomainError as exc:
            raise CommandError(f"{exc.code}: {exc.detail}") from exc

        rack = service.current_rack(options["order_id"])
        self.stdout.write(
            self.style.SUCCESS(
                f"Imported {len(entries)} entries; current rack: {rack}."
            )
        )
