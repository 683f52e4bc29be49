import datetime
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.test import TestCase

from ..models import Company, Customer, Invoice, InvoiceLine, Payment, Product
from ..services import InvoiceDraft, LineDraft, create_invoice


class TenantIsolationTests(TestCase):

    def setUp(self):
        self.c1 = Company.objects.create(name="C1")
        self.c2 = Company.objects.create(name="C2")
        self.cust1 = Customer.objects.create(company=self.c1, name="Cust 1")
        self.cust2 = Customer.objects.create(company=self.c2, name="Cust 2")
        self.prod1 = Product.objects.create(
            company=self.c1, sku="P", name="Prod 1",
            unit_price=Decimal("5.00"), stock_qty=10)
        self.prod2 = Product.objects.create(
            company=self.c2, sku="P", name="Prod 2",
            unit_price=Decimal("7.00"), stock_qty=10)

        self.inv1 = create_invoice(self.c1, InvoiceDraft(
            customer_id=self.cust1.pk, date=datetime.date(2025, 1, 15),
            status="issued",
            lines=(LineDraft(product_id=self.prod1.pk, quantity=1),),
        ))

    def test_for_company_filters(self):
        self.assertEqual(list(Invoice.objects.for_company(self.c1)), [self.inv1])
        self.assertFalse(Invoice.objects.for_company(self.c2).exists())
        self.assertEqual(Customer.objects.for_company(self.c2).get(), self.cust2)

    def test_customer_names_unique_per_company(self):
        with self.assertRaises(ValidationError):
            Customer.objects.create(company=self.c1, name="Cust 1")
        Customer.objects.create(company=self.c2, name="Cust 1")

    def test_invoice_customer_from_other_company(self):
        invoice = Invoice(
            company=self.c1, customer=self.cust2, invoice_number="X-1",
            date=datetime.date(2025, 1, 15), due_date=datetime.date(2025, 1, 15),
        )
        with self.assertRaises(ValidationError):
            invoice.save()

    def test_line_product_from_other_company(self):
        line = InvoiceLine(invoice=self.inv1, product=self.prod2,
                           description="x", quantity=1, unit_price=Decimal("1.00"))
        with self.assertRaises(ValidationError):
            line.save()

    def test_payment_company_must_match_invoice(self):
        payment = Payment(company=self.c2, invoice=self.inv1, amount=Decimal("1.00"),
                          method="cash", payment_date=datetime.date(2025, 1, 15))
        with self.assertRaises(ValidationError):
            payment.save()
