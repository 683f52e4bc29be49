from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .company import Company
from .invoice import Invoice


# ---------- Payment ----------
# Append-only: money received against one invoice
class Payment(models.Model):
    company = models.ForeignKey(Company, on_delete=models.CASCADE)
    # Prevent deleting an invoice that has received money
    invoice = models.ForeignKey(
        Invoice, on_delete=models.PROTECT, related_name="payments")

    amount = models.DecimalField(max_digits=14, decimal_places=2)
    method = models.CharField(max_length=50)  # "cash", "bank", "card", ...
    payment_date = models.DateField()
    reference = models.CharField(max_length=255, blank=True, default="")

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "payment_date"], name="pay_company_date_idx"),
            models.Index(fields=["company", "invoice"], name="pay_company_invoice_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=models.Q(amount__gt=0),
                name="payment_positive_amount",
            ),
        ]

    def __str__(self):
        return f"Payment {self.amount} → {self.invoice}"

    def clean(self):
        if self.amount is not None and self.amount <= 0:
            raise ValidationError("Payment amount must be > 0")
        # Prevent cross-company contamination
        if self.invoice_id and self.company_id:
            if self.invoice.company_id != self.company_id:
                raise ValidationError(
                    "Invoice must belong to the same company.")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ValidationError("Payments cannot be edited once recorded")
        if not self.company_id and self.invoice_id:
            self.company_id = self.invoice.company_id
        self.full_clean()
        return super().save(*args, **kwargs)
