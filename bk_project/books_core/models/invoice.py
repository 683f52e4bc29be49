from decimal import Decimal

from django.core.exceptions import ValidationError
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models

from ..exceptions import InvalidTransitionError
from ..managers import InvoiceLineManager, InvoiceManager
from ..money import ZERO, compute_line, quantize_money
from .company import Company
from .customer import Customer
from .product import Product

INV_STATUS_CHOICES = [
    ("draft", "Draft"),
    ("issued", "Issued"),
    ("paid", "Paid"),
    ("cancelled", "Cancelled"),
]

# Current state → allowed next states
ALLOWED_TRANSITIONS = {
    "draft": ["issued", "cancelled"],
    "issued": ["paid", "cancelled"],
    "paid": [],
    "cancelled": [],
}

# Statuses whose lines count as sold stock
STOCK_CONSUMING_STATUSES = ("issued", "paid")

# Fixed once the invoice exists
IMMUTABLE_FIELDS = [
    "company_id", "customer_id", "invoice_number",
    "sub_total", "tax_total", "total",
]


class Invoice(models.Model):  # Represents a customer invoice

    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="invoices")
    # prevent deleting customer who has an invoice
    customer = models.ForeignKey(
        Customer, on_delete=models.PROTECT, related_name="invoices")

    # e.g. "INV-202501-001", unique within a company
    invoice_number = models.CharField(max_length=50)
    date = models.DateField()  # issue date
    due_date = models.DateField()

    status = models.CharField(
        max_length=10, choices=INV_STATUS_CHOICES, default="draft"
    )
    """ Workflow:
        draft = not yet finalized.
        issued = sent to the customer, stock deducted.
        paid = fully settled.
        cancelled = voided, stock restored if it had been deducted. """

    # Fixed at creation from the lines
    sub_total = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_total = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))

    notes = models.TextField(blank=True, default="")

    # True while the lines' quantities are deducted from product stock
    stock_applied = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    # Enforce tenant scoping + sum helpers
    objects = InvoiceManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "date"], name="inv_company_date_idx"),
            models.Index(fields=["company", "status"], name="inv_company_status_idx"),
            models.Index(fields=["company", "customer"], name="inv_company_customer_idx"),
        ]
        constraints = [
            # Within one company, each invoice number must be unique
            models.UniqueConstraint(
                fields=["company", "invoice_number"],
                name="uq_invoice_company_number"
            ),
        ]

    def __str__(self):
        return f"Inv {self.invoice_number or self.pk}"

    # ---------- money helpers ----------
    def amount_paid(self) -> Decimal:
        agg = self.payments.aggregate(total=models.Sum("amount"))
        return quantize_money(agg["total"] or ZERO)

    @property
    def outstanding_amount(self) -> Decimal:
        # overpayment caps at 0, not negative
        return max(self.total - self.amount_paid(), ZERO)

    # ---------- validation ----------
    def clean(self):
        if self.date and self.due_date and self.due_date < self.date:
            raise ValidationError("Due date cannot be before the invoice date")

        # Ensure customer chosen belongs to the same company
        if self.customer_id and self.company_id:
            if self.customer.company_id != self.company_id:
                raise ValidationError(
                    "Customer must belong to the same company.")

        # Header identity and totals are frozen after creation
        if self.pk:
            orig = Invoice.objects.get(pk=self.pk)
            changed_fields = [
                field for field in IMMUTABLE_FIELDS
                if getattr(orig, field) != getattr(self, field)
            ]
            if changed_fields:
                raise ValidationError(
                    f"Cannot modify {changed_fields} on an existing invoice."
                )
            if orig.status in ("paid", "cancelled") and (
                orig.date != self.date
                or orig.due_date != self.due_date
                or orig.notes != self.notes
            ):
                raise ValidationError(
                    f"Cannot edit a {orig.status} invoice.")

    def save(self, *args, **kwargs):
        self.full_clean()  # will trigger clean()
        return super().save(*args, **kwargs)

    def can_transition_to(self, new_status) -> bool:
        return new_status in ALLOWED_TRANSITIONS.get(self.status, [])

    def transition_to(self, new_status):
        """Change status only along ALLOWED_TRANSITIONS.
        Stock side effects live in services.invoicing."""
        if not self.can_transition_to(new_status):
            raise InvalidTransitionError(self.status, new_status)
        self.status = new_status
        self.save(update_fields=["status", "stock_applied", "updated_at"])


class InvoiceLine(models.Model):
    """
    One product entry on an invoice. Description and prices are a snapshot,
    later product price changes don't touch existing lines.
    """

    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    invoice = models.ForeignKey(
        Invoice, on_delete=models.CASCADE, related_name="lines")
    # Prevent deleting a product which has been invoiced
    product = models.ForeignKey(
        Product, on_delete=models.PROTECT, related_name="invoice_lines")

    # Ordering of lines as entered
    position = models.PositiveIntegerField(default=0)
    description = models.CharField(max_length=255)

    quantity = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    unit_price = models.DecimalField(max_digits=14, decimal_places=2)
    tax_rate = models.DecimalField(
        max_digits=5,
        decimal_places=2,
        default=Decimal("0.00"),
        validators=[MinValueValidator(0), MaxValueValidator(100)],
    )

    # Computed: quantity × unit_price, tax on it, and their sum
    line_subtotal = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    tax_amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    line_total = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))

    # Enforce tenant scoping + COGS helper
    objects = InvoiceLineManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "invoice"], name="invl_company_invoice_idx"),
            models.Index(fields=["company", "product"], name="invl_company_product_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(quantity__gte=1) & models.Q(unit_price__gte=0),
                name="invl_positive_qty_non_negative_price",
            ),
            models.CheckConstraint(
                condition=models.Q(tax_rate__gte=0) & models.Q(tax_rate__lte=100),
                name="invl_tax_rate_range",
            ),
        ]
        ordering = ("invoice", "position", "id")

    def __str__(self):
        return f"{self.description} x{self.quantity} = {self.line_total}"

    def compute_amounts(self):
        amounts = compute_line(self.quantity, self.unit_price, self.tax_rate)
        self.line_subtotal = amounts.subtotal
        self.tax_amount = amounts.tax
        self.line_total = amounts.total
        return amounts

    def clean(self):
        # Tenant safety: line, invoice and product share one company
        if self.company_id and self.invoice_id:
            if self.invoice.company_id != self.company_id:
                raise ValidationError(
                    "InvoiceLine.company must match Invoice.company")
        if self.company_id and self.product_id:
            if self.product.company_id != self.company_id:
                raise ValidationError(
                    "InvoiceLine.company must match Product.company")

    def save(self, *args, **kwargs):
        # Lines are created together with the invoice and never edited
        if not self._state.adding:
            raise ValidationError(
                "Invoice lines cannot be changed after the invoice is created")
        # copy company_id from the parent invoice if missing
        if not self.company_id and self.invoice_id:
            self.company_id = self.invoice.company_id
        # compute amounts always
        self.compute_amounts()
        self.full_clean()
        return super().save(*args, **kwargs)
