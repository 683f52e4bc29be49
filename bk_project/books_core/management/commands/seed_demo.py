import datetime
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.management.base import BaseCommand, CommandError
from django.db import transaction

from books_core.models import Company, Customer, Product
from books_core.services import (InvoiceDraft, LineDraft, create_invoice,
                                 record_expense, record_payment)

User = get_user_model()


class Command(BaseCommand):
    help = (
        "Create a demo company with customers, products, invoices, "
        "a payment and expenses, all through the bookkeeping services."
    )

    # Define command-line arguments
    def add_arguments(self, parser):
        parser.add_argument(
            "--company",
            default="Demo Ltd",
            help="Name of the demo company (default: Demo Ltd)",
        )
        parser.add_argument(
            "--username", default="demo", help="Owner username for the demo company."
        )
        parser.add_argument(
            "--date",
            default=None,
            help="Invoice date YYYY-MM-DD (default: today)",
        )

    @transaction.atomic
    def handle(self, *args, **options):
        com_name = options["company"]
        try:
            day = (
                datetime.date.fromisoformat(options["date"])
                if options["date"] else datetime.date.today()
            )
        except ValueError:
            raise CommandError("--date must be YYYY-MM-DD")

        self.stdout.write(self.style.NOTICE(f"Seeding demo data for {com_name}..."))

        owner, _ = User.objects.get_or_create(username=options["username"])
        if Company.objects.filter(owner=owner).exists():
            raise CommandError(f"User {owner} already owns a company")
        company = Company.objects.create(name=com_name, owner=owner)

        acme = Customer.objects.create(company=company, name="Acme Corp")
        globex = Customer.objects.create(company=company, name="Globex")

        widget = Product.objects.create(
            company=company, sku="WID-1", name="Widget",
            unit_price=Decimal("10.00"), unit_cost=Decimal("4.00"), stock_qty=50,
        )
        gadget = Product.objects.create(
            company=company, sku="GAD-1", name="Gadget",
            unit_price=Decimal("50.00"), unit_cost=Decimal("30.00"), stock_qty=10,
        )

        first = create_invoice(company, InvoiceDraft(
            customer_id=acme.pk,
            date=day,
            status="issued",
            lines=(
                LineDraft(product_id=widget.pk, quantity=3, tax_rate=Decimal("10")),
                LineDraft(product_id=gadget.pk, quantity=1),
            ),
        ))
        record_payment(company, first.pk, first.total, method="bank", payment_date=day)

        second = create_invoice(company, InvoiceDraft(
            customer_id=globex.pk,
            date=day,
            status="issued",
            lines=(LineDraft(product_id=widget.pk, quantity=5),),
            notes="Net 30",
        ))
        create_invoice(company, InvoiceDraft(
            customer_id=globex.pk,
            date=day,
            lines=(LineDraft(product_id=gadget.pk, quantity=2),),
        ))

        record_expense(company, vendor="Landlord", category="Rent",
                       amount=Decimal("20.00"), date=day)
        record_expense(company, vendor="Power Co", category="Utilities",
                       amount=Decimal("5.50"), date=day)

        self.stdout.write(
            f"Company #{company.pk}: invoices {first.invoice_number} (paid), "
            f"{second.invoice_number} (issued) and one draft"
        )
        self.stdout.write(self.style.SUCCESS("Demo data seeded successfully!"))
