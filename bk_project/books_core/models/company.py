from django.conf import settings
from django.db import models


# ---------- Tenant / Company ----------
class Company(models.Model):

    """Tenant. Owns customers, products, invoices and expenses."""
    name = models.CharField(max_length=255)

    # One user ↔ one company
    owner = models.OneToOneField(
        settings.AUTH_USER_MODEL,
        null=True,
        blank=True,
        # if user is deleted, company record stays
        on_delete=models.SET_NULL,
        related_name="company",
    )

    address = models.TextField(blank=True, default="")
    # GSTIN / VAT number printed on invoices
    tax_number = models.CharField(max_length=15, blank=True, default="")

    # Display only, there is no conversion between currencies
    currency_code = models.CharField(max_length=3, default="USD")
    timezone = models.CharField(max_length=50, default="UTC")

    # When False, invoices can never take a product below zero stock
    allow_negative_stock = models.BooleanField(default=False)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        verbose_name_plural = "companies"

    def __str__(self):
        return self.name
