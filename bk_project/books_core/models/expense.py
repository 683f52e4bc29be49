from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ..managers import ExpenseManager
from .company import Company


# ---------- Expense ----------
# Stand-alone cost entry, not linked to invoices or products
class Expense(models.Model):
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="expenses")

    vendor = models.CharField(max_length=255)
    category = models.CharField(max_length=100)  # e.g. "Rent", "Utilities"
    amount = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    date = models.DateField()
    notes = models.TextField(blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping + sum helpers
    objects = ExpenseManager()

    class Meta:
        indexes = [models.Index(fields=["company", "date"], name="exp_company_date_idx")]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gte=0),
                name="expense_non_negative_amount",
            ),
        ]

    def __str__(self):
        return f"{self.date} {self.category} - {self.vendor}: {self.amount}"

    def clean(self):
        if self.amount is not None and self.amount < 0:
            raise ValidationError("Expense amount must be >= 0")
        if not (self.vendor or "").strip():
            raise ValidationError("Vendor is required")
        if not (self.category or "").strip():
            raise ValidationError("Category is required")

    def save(self, *args, **kwargs):
        self.full_clean()
        return super().save(*args, **kwargs)
