import datetime
from decimal import Decimal

import pytest
from django.core.exceptions import ValidationError
from django.test import TestCase

from ..exceptions import NotFoundError
from ..models import Company, Customer, Expense, Product
from ..services import (InvoiceDraft, LineDraft, create_invoice, get_ledger,
                        query_raw_ledger_rows, record_expense, record_payment,
                        summarize_ledger)
from ..services.ledger import LedgerRow, with_running_balance

D = datetime.date
ZERO = Decimal("0.00")


class LedgerTests(TestCase):

    def setUp(self):
        self.company = Company.objects.create(name="Test Co")
        customer = Customer.objects.create(company=self.company, name="Acme Corp")
        product = Product.objects.create(
            company=self.company, sku="SVC", name="Service",
            unit_price=Decimal("100.00"), stock_qty=100)

        def invoice(day, status, unit_price=None):
            return create_invoice(self.company, InvoiceDraft(
                customer_id=customer.pk, date=day, status=status,
                lines=(LineDraft(product_id=product.pk, quantity=1,
                                 unit_price=unit_price),),
            ))

        self.issued = invoice(D(2025, 1, 5), "issued")
        record_expense(self.company, vendor="Landlord", category="Rent",
                       amount="25.00", date=D(2025, 1, 7))
        record_payment(self.company, self.issued.pk, "40.00",
                       payment_date=D(2025, 1, 10))
        # drafts are in the ledger too
        invoice(D(2025, 1, 12), "draft", unit_price=Decimal("30.00"))

        # outside the range
        invoice(D(2024, 12, 31), "draft")
        record_expense(self.company, vendor="Power Co", category="Utilities",
                       amount="9.99", date=D(2025, 2, 1))
        # another company on a day inside the range
        other = Company.objects.create(name="Other Co")
        Expense.objects.create(company=other, vendor="V", category="C",
                               amount=Decimal("500.00"), date=D(2025, 1, 8))

    def test_rows_and_running_balance(self):
        rows = get_ledger(self.company, D(2025, 1, 1), D(2025, 1, 31))

        self.assertEqual(
            [(r.date, r.account, r.debit, r.credit, r.balance) for r in rows],
            [
                (D(2025, 1, 5), "Sales Income", ZERO, Decimal("100.00"), Decimal("100.00")),
                (D(2025, 1, 7), "Expense: Rent - Landlord", Decimal("25.00"), ZERO, Decimal("75.00")),
                (D(2025, 1, 10), "Customer Payment", Decimal("40.00"), ZERO, Decimal("35.00")),
                (D(2025, 1, 12), "Sales Income", ZERO, Decimal("30.00"), Decimal("65.00")),
            ],
        )

    def test_closing_balance_is_credits_minus_debits(self):
        rows = get_ledger(self.company, "2025-01-01", "2025-01-31")
        summary = summarize_ledger(rows)
        self.assertEqual(summary.total_debit, Decimal("65.00"))
        self.assertEqual(summary.total_credit, Decimal("130.00"))
        self.assertEqual(summary.closing_balance, Decimal("65.00"))
        self.assertEqual(rows[-1].balance, summary.closing_balance)

        # each balance is the previous one plus the row's net
        balance = ZERO
        for row in rows:
            balance += row.credit - row.debit
            self.assertEqual(row.balance, balance)

    def test_bounds_are_inclusive(self):
        rows = get_ledger(self.company, D(2025, 1, 5), D(2025, 1, 5))
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0].source, "invoice")
        self.assertEqual(rows[0].source_id, self.issued.pk)

    def test_raw_rows_cover_all_sources(self):
        rows = query_raw_ledger_rows(self.company, D(2024, 12, 1), D(2025, 2, 28))
        self.assertEqual(
            sorted(r.source for r in rows),
            ["expense", "expense", "invoice", "invoice", "invoice", "payment"],
        )
        self.assertTrue(all(r.balance is None for r in rows))

    def test_empty_range(self):
        rows = get_ledger(self.company, D(2023, 1, 1), D(2023, 12, 31))
        self.assertEqual(rows, [])
        self.assertEqual(summarize_ledger(rows).closing_balance, ZERO)

    def test_reversed_range(self):
        with self.assertRaises(ValidationError):
            get_ledger(self.company, D(2025, 2, 1), D(2025, 1, 1))

    def test_rows_serialise_money_as_strings(self):
        row = get_ledger(self.company, D(2025, 1, 7), D(2025, 1, 7))[0]
        self.assertEqual(row.as_dict(), {
            "date": "2025-01-07",
            "account": "Expense: Rent - Landlord",
            "debit": "25.00",
            "credit": "0.00",
            "source": "expense",
            "source_id": row.source_id,
            "balance": "-25.00",
        })


def test_same_day_rows_order_by_source_id():
    day = D(2025, 1, 1)
    rows = with_running_balance([
        LedgerRow(day, "Expense: X - Y", Decimal("5.00"), ZERO, "expense", 7),
        LedgerRow(day, "Sales Income", ZERO, Decimal("20.00"), "invoice", 7),
        LedgerRow(day, "Customer Payment", Decimal("1.00"), ZERO, "payment", 3),
        LedgerRow(D(2024, 12, 31), "Sales Income", ZERO, Decimal("2.00"), "invoice", 99),
    ])
    assert [(r.source, r.source_id) for r in rows] == [
        ("invoice", 99), ("payment", 3), ("invoice", 7), ("expense", 7),
    ]
    assert [r.balance for r in rows] == [
        Decimal("2.00"), Decimal("1.00"), Decimal("21.00"), Decimal("16.00"),
    ]


@pytest.mark.django_db
def test_unknown_company():
    with pytest.raises(NotFoundError):
        get_ledger(424242, D(2025, 1, 1), D(2025, 1, 31))
