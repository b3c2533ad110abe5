# core/services/sequences.py

"""
BUSINESS-KEY SEQUENCES

Generates human-readable numbers of the form:
    {KIND}-{YYYYMM}-{NNNN}      e.g. PAY-202610-0001, RET-202610-0042

Rules:
- Monotonic per month prefix, zero-padded to 4 digits (wider once it overflows).
- The counter row is locked for the rest of the caller's transaction.
- First use of a prefix seeds the counter from the highest suffix already stored
  on the target model, so numbers keep counting up over pre-existing data.
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.utils import timezone

from core.models import DocumentSequence

logger = logging.getLogger(__name__)

DEFAULT_PADDING = 4


def period_prefix(kind: str, on_date=None) -> str:
    day = on_date or timezone.localdate()
    return f"{kind}-{day.strftime('%Y%m')}"


def _parse_suffix(number: str) -> int:
    try:
        return int(str(number).rsplit("-", 1)[-1])
    except (TypeError, ValueError):
        return 0


def _max_existing_suffix(*, model, field: str, prefix: str) -> int:
    numbers = model.objects.filter(**{f"{field}__startswith": f"{prefix}-"}).values_list(
        field, flat=True
    )
    return max((_parse_suffix(n) for n in numbers), default=0)


@transaction.atomic
def next_document_number(
    *,
    kind: str,
    model,
    field: str,
    on_date=None,
    padding: int = DEFAULT_PADDING,
) -> str:
    prefix = period_prefix(kind, on_date)

    sequence = DocumentSequence.objects.select_for_update().filter(prefix=prefix).first()
    if sequence is None:
        seed = _max_existing_suffix(model=model, field=field, prefix=prefix)
        created, _ = DocumentSequence.objects.get_or_create(
            prefix=prefix,
            defaults={"current_number": seed},
        )
        sequence = DocumentSequence.objects.select_for_update().get(pk=created.pk)

    sequence.current_number += 1
    sequence.save(update_fields=["current_number", "updated_at"])

    number = f"{prefix}-{sequence.current_number:0{padding}d}"
    logger.debug("Issued document number", extra={"number": number})
    return number
