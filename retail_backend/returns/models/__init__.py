# returns/models/__init__.py

from .return_item import ReturnItem
from .sale_return import Return

__all__ = [
    "Return",
    "ReturnItem",
]
