"""
Invoice numbering.

Numbers look like INV-202501-001: prefix, year and month of the invoice
date, then a per-(company, month) sequence padded to at least 3 digits.
The sequence lives in a Counter row that is locked with SELECT ... FOR UPDATE
and incremented inside the caller's transaction. If that transaction rolls
back after a later step fails, the increment is rolled back with it; if a
number was already committed and the document is lost later, the gap stays.
A value is never handed out twice.
"""
import logging

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from ..conf import get_setting
from ..models import Counter
from .locking import lock_conflicts

logger = logging.getLogger(__name__)


def format_invoice_number(year, month, sequence, prefix=None) -> str:
    # 3-digit minimum, widens past 999 (INV-202501-1000)
    prefix = prefix or get_setting("BOOKS_INVOICE_PREFIX")
    return f"{prefix}-{year:04d}{month:02d}-{sequence:03d}"


def get_or_create_counter(company, name, year, month) -> Counter:
    """
    Fetch the counter row for the period and lock it; create it with
    sequence=0 on the first document of the month.
    Must run inside transaction.atomic().
    """
    # get_or_create retries the SELECT when a concurrent INSERT wins
    # the unique constraint race
    counter, created = Counter.objects.select_for_update().get_or_create(
        company=company,
        name=name,
        year=year,
        month=month,
        defaults={"sequence": 0},
    )
    if created:
        logger.debug("Created %s counter for %s %04d-%02d",
                     name, company, year, month)
    return counter


def increment_counter(counter_id) -> int:
    """Atomic +1 on the row, returns the new value."""
    Counter.objects.filter(pk=counter_id).update(sequence=F("sequence") + 1)
    return Counter.objects.values_list("sequence", flat=True).get(pk=counter_id)


def next_sequence(company, year, month, name=None) -> int:
    name = name or get_setting("BOOKS_INVOICE_COUNTER_NAME")
    with lock_conflicts(f"{name} counter {year}-{month:02d}"):
        with transaction.atomic():
            counter = get_or_create_counter(company, name, year, month)
            return increment_counter(counter.pk)


def next_invoice_number(company, on_date=None) -> str:
    """
    Reserve the next invoice number for the month of `on_date`
    (defaults to today). Call it inside the transaction that inserts the
    invoice so the reservation and the invoice commit together.
    """
    on_date = on_date or timezone.localdate()
    sequence = next_sequence(company, on_date.year, on_date.month)
    number = format_invoice_number(on_date.year, on_date.month, sequence)
    logger.debug("Reserved invoice number %s for %s", number, company)
    return number
