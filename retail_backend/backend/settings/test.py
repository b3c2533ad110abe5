# backend/settings/test.py
"""
PATH: backend/settings/test.py

TEST SETTINGS
- In-memory SQLite (select_for_update is a no-op there; locking is exercised on Postgres)
- Outbox events are dispatched explicitly by tests, never on commit
- Fast password hashing
"""

from __future__ import annotations

from .base import *  # noqa: F403

DEBUG = False

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

PASSWORD_HASHERS = ["django.contrib.auth.hashers.MD5PasswordHasher"]

ORDER_PAYMENT_NOTIFIER = "payments.services.order_notifier.log_notifier"
ORDER_PAYMENT_DISPATCH_ON_COMMIT = False

REST_FRAMEWORK = {
    **REST_FRAMEWORK,  # noqa: F405
    "DEFAULT_THROTTLE_CLASSES": (),
}
