# payments/management/commands/seed_payment_methods.py

from __future__ import annotations

from django.core.management.base import BaseCommand

from payments.services.method_registry import DEFAULT_METHODS, ensure_default_methods


class Command(BaseCommand):
    help = "Create any missing default payment method (existing rows are left untouched)."

    def handle(self, *args, **options):
        created = ensure_default_methods()

        self.stdout.write(
            self.style.SUCCESS(
                f"Payment methods: {created} created, "
                f"{len(DEFAULT_METHODS) - created} already present."
            )
        )
