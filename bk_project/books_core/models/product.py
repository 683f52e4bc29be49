from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db import models

from ..managers import TenantManager
from .company import Company


# ---------- Product ----------
class Product(models.Model):  # Something the company sells from stock

    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="products")

    # Stock Keeping Unit, unique per company
    sku = models.CharField(max_length=100)
    name = models.CharField(max_length=255)
    description = models.TextField(blank=True, default="")

    # Selling price (default unit price on new invoice lines)
    unit_price = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))
    # Cost basis, read live by the COGS report
    unit_cost = models.DecimalField(
        max_digits=14, decimal_places=2, default=Decimal("0.00"))

    # Whole units on hand. Only the stock ledger service changes it
    # after creation (under a row lock).
    stock_qty = models.IntegerField(default=0)

    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [models.Index(fields=["company", "name"], name="prod_company_name_idx")]
        constraints = [
            # Ensure each SKU is unique within a company
            models.UniqueConstraint(
                fields=["company", "sku"], name="uq_company_product_sku"
            ),
            models.CheckConstraint(
                condition=models.Q(unit_price__gte=0) & models.Q(unit_cost__gte=0),
                name="product_non_negative_prices",
            ),
        ]
        ordering = ("name",)

    def __str__(self):
        return f"{self.name} ({self.sku})"

    def clean(self):
        if self.unit_price is not None and self.unit_price < 0:
            raise ValidationError("Unit price must be >= 0")
        if self.unit_cost is not None and self.unit_cost < 0:
            raise ValidationError("Unit cost must be >= 0")
        if (
            self.stock_qty is not None
            and self.stock_qty < 0
            and self.company_id
            and not self.company.allow_negative_stock
        ):
            raise ValidationError(
                "Stock cannot be negative unless the company allows negative stock"
            )

    def save(self, *args, **kwargs):
        self.full_clean()  # run validations before saving
        return super().save(*args, **kwargs)
