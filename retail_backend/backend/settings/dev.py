# backend/settings/dev.py
"""
PATH: backend/settings/dev.py

LOCAL DEVELOPMENT SETTINGS
- SQLite by default (DATABASE_URL overrides)
- Ledger loggers at DEBUG unless LEDGER_LOG_LEVEL says otherwise
- Order payment events go to the log notifier right after commit
"""

from __future__ import annotations

from .base import *  # noqa: F403
from .base import LOGGING, env

DEBUG = True

ALLOWED_HOSTS = env.list("ALLOWED_HOSTS", default=["localhost", "127.0.0.1"])

CORS_ALLOWED_ORIGINS = env.list(
    "CORS_ALLOWED_ORIGINS", default=["http://localhost:5173"]
)
CSRF_TRUSTED_ORIGINS = env.list(
    "CSRF_TRUSTED_ORIGINS", default=["http://localhost:5173"]
)

LEDGER_LOG_LEVEL = env("LEDGER_LOG_LEVEL", default="DEBUG").strip().upper()
for _name in ("payments", "returns", "reconciliation"):
    LOGGING["loggers"][_name]["level"] = LEDGER_LOG_LEVEL

ORDER_PAYMENT_NOTIFIER = env(
    "ORDER_PAYMENT_NOTIFIER",
    default="payments.services.order_notifier.log_notifier",
)
ORDER_PAYMENT_DISPATCH_ON_COMMIT = True
