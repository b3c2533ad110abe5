"""
Seed the default payment methods (cash, bank_transfer, credit, check, refund).
Existing rows are left untouched.
"""

from django.db import migrations

from payments.services.method_registry import DEFAULT_METHODS


def seed_methods(apps, schema_editor):
    PaymentMethod = apps.get_model("payments", "PaymentMethod")
    for method_defaults in DEFAULT_METHODS:
        defaults = {k: v for k, v in method_defaults.items() if k != "code"}
        PaymentMethod.objects.get_or_create(code=method_defaults["code"], defaults=defaults)


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
    ]

    operations = [
        migrations.RunPython(seed_methods, migrations.RunPython.noop),
    ]
