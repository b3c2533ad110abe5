# payments/management/commands/dispatch_order_payment_events.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from payments.models import OrderPaymentEvent
from payments.services.order_notifier import dispatch_pending_events


class Command(BaseCommand):
    help = "Deliver pending order payment-status events to the configured notifier."

    def add_arguments(self, parser):
        parser.add_argument(
            "--limit",
            type=int,
            default=500,
            help="Maximum number of events to deliver in this run.",
        )
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Only report how many events are pending.",
        )

    def handle(self, *args, **options):
        pending = OrderPaymentEvent.objects.filter(
            status=OrderPaymentEvent.STATUS_PENDING
        ).count()
        self.stdout.write(f"Pending order payment events: {pending}")

        if options.get("dry_run"):
            self.stdout.write("DRY RUN: nothing delivered.")
            return

        result = dispatch_pending_events(limit=options["limit"])

        self.stdout.write(f"Delivered: {result['delivered']}")
        self.stdout.write(f"Failed:    {result['failed']}")
