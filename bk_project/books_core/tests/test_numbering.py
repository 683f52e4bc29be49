import datetime
import threading
from decimal import Decimal
from unittest import mock, skipUnless

import pytest
from django.core.exceptions import ValidationError
from django.db import OperationalError, connection, connections
from django.test import TestCase, TransactionTestCase, override_settings

from ..exceptions import ConcurrencyConflictError
from ..models import Company, Counter, Customer, Product
from ..services import (InvoiceDraft, LineDraft, create_invoice,
                        format_invoice_number, next_invoice_number)


def test_format_pads_to_three_digits():
    assert format_invoice_number(2025, 1, 1) == "INV-202501-001"
    assert format_invoice_number(2025, 12, 42) == "INV-202512-042"


def test_format_widens_past_999():
    assert format_invoice_number(2025, 1, 999) == "INV-202501-999"
    assert format_invoice_number(2025, 1, 1000) == "INV-202501-1000"


@override_settings(BOOKS_INVOICE_PREFIX="BILL")
def test_prefix_setting():
    assert format_invoice_number(2025, 3, 7) == "BILL-202503-007"


class NextInvoiceNumberTests(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name="Test Co")
        self.jan = datetime.date(2025, 1, 15)

    def test_sequence_per_month(self):
        self.assertEqual(next_invoice_number(self.company, self.jan), "INV-202501-001")
        self.assertEqual(next_invoice_number(self.company, self.jan), "INV-202501-002")
        # new month restarts at 1
        self.assertEqual(
            next_invoice_number(self.company, datetime.date(2025, 2, 1)),
            "INV-202502-001",
        )
        # back in January the sequence continues
        self.assertEqual(
            next_invoice_number(self.company, datetime.date(2025, 1, 31)),
            "INV-202501-003",
        )

    def test_companies_have_separate_sequences(self):
        other = Company.objects.create(name="Other Co")
        self.assertEqual(next_invoice_number(self.company, self.jan), "INV-202501-001")
        self.assertEqual(next_invoice_number(other, self.jan), "INV-202501-001")
        self.assertEqual(Counter.objects.count(), 2)

    def test_widens_after_999(self):
        Counter.objects.create(
            company=self.company, name="invoice", year=2025, month=1, sequence=999)
        self.assertEqual(next_invoice_number(self.company, self.jan), "INV-202501-1000")

    def test_numbers_are_unique(self):
        numbers = [next_invoice_number(self.company, self.jan) for _ in range(25)]
        self.assertEqual(len(set(numbers)), 25)
        self.assertEqual(numbers[-1], "INV-202501-025")

    def test_counter_cannot_go_back(self):
        next_invoice_number(self.company, self.jan)
        next_invoice_number(self.company, self.jan)
        counter = Counter.objects.get(company=self.company)
        counter.sequence = 1
        with self.assertRaises(ValidationError):
            counter.save()

    def test_lock_conflict_is_reported(self):
        locked = OperationalError("database is locked")
        with mock.patch(
            "books_core.services.numbering.get_or_create_counter",
            side_effect=locked,
        ):
            with self.assertRaises(ConcurrencyConflictError):
                next_invoice_number(self.company, self.jan)

    def test_other_database_errors_propagate(self):
        with mock.patch(
            "books_core.services.numbering.get_or_create_counter",
            side_effect=OperationalError("no such table: books_core_counter"),
        ):
            with self.assertRaises(OperationalError):
                next_invoice_number(self.company, self.jan)


@pytest.mark.django_db
def test_lock_conflict_leaves_no_invoice(company, customer, widget):
    draft = InvoiceDraft(
        customer_id=customer.pk,
        date=datetime.date(2025, 1, 15),
        status="issued",
        lines=(LineDraft(product_id=widget.pk, quantity=2),),
    )
    with mock.patch(
        "books_core.services.numbering.increment_counter",
        side_effect=OperationalError("database is locked"),
    ):
        with pytest.raises(ConcurrencyConflictError):
            create_invoice(company, draft)

    assert not company.invoices.exists()
    widget.refresh_from_db()
    assert widget.stock_qty == 20


class ConcurrentNumberingTests(TransactionTestCase):
    """Invoices created from parallel threads, each on its own connection."""

    workers = 8

    def setUp(self):
        self.company = Company.objects.create(name="Test Co")
        customer = Customer.objects.create(company=self.company, name="Acme Corp")
        self.product = Product.objects.create(
            company=self.company, sku="WID-1", name="Widget",
            unit_price=Decimal("10.00"), stock_qty=100)
        self.draft = InvoiceDraft(
            customer_id=customer.pk,
            date=datetime.date(2025, 1, 15),
            status="issued",
            lines=(LineDraft(product_id=self.product.pk, quantity=2),),
        )

    def create_with_retry(self, numbers, errors, start, attempts=10):
        try:
            start.wait()
            for _ in range(attempts):
                try:
                    invoice = create_invoice(self.company.pk, self.draft)
                except ConcurrencyConflictError:
                    # whole unit of work was rolled back, safe to repeat
                    continue
                numbers.append(invoice.invoice_number)
                return
            errors.append(f"gave up after {attempts} conflicts")
        except Exception as exc:
            errors.append(exc)
        finally:
            connections.close_all()

    @skipUnless(connection.features.has_select_for_update,
                "needs a database with row locks")
    def test_parallel_creation_gets_distinct_dense_numbers(self):
        numbers, errors = [], []
        start = threading.Barrier(self.workers)
        threads = [
            threading.Thread(target=self.create_with_retry,
                             args=(numbers, errors, start))
            for _ in range(self.workers)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        self.assertEqual(errors, [])
        self.assertEqual(len(numbers), self.workers)
        self.assertEqual(
            sorted(numbers),
            [format_invoice_number(2025, 1, seq) for seq in range(1, self.workers + 1)],
        )

        counter = Counter.objects.get(company=self.company)
        self.assertEqual(counter.sequence, self.workers)
        self.product.refresh_from_db()
        self.assertEqual(self.product.stock_qty, 100 - 2 * self.workers)
