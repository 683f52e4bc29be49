from decimal import Decimal

from django.db import models
from django.db.models import Sum

from .money import quantize_money, sum_money


# -----------------------------------------
# Enforce tenant scoping across all models
# that belong to a company
# -----------------------------------------
class TenantQuerySet(models.QuerySet):
    def for_company(self, company):  # company instance or pk
        return self.filter(company=company)

    # Inclusive on both ends, like SQL BETWEEN
    def dated_between(self, date_from, date_to, field="date"):
        return self.filter(**{
            f"{field}__gte": date_from,
            f"{field}__lte": date_to,
        })

    def sum_of(self, field) -> Decimal:
        # Sum() returns None on an empty set → fall back to 0
        total = self.aggregate(total=Sum(field))["total"] or Decimal("0")
        return quantize_money(total)


class TenantManager(models.Manager):
    queryset_class = TenantQuerySet

    # ensure every model gets the tenant queryset
    def get_queryset(self):
        return self.queryset_class(self.model, using=self._db)

    def for_company(self, company):
        return self.get_queryset().for_company(company)


# ---------- Invoices ----------
class InvoiceQuerySet(TenantQuerySet):
    def with_status(self, *statuses):
        return self.filter(status__in=statuses)


class InvoiceManager(TenantManager):
    queryset_class = InvoiceQuerySet

    def sum_by_status(self, company, status, date_from, date_to) -> Decimal:
        """Σ invoice.total for one status, dated within [date_from, date_to]."""
        return (
            self.for_company(company)
            .with_status(status)
            .dated_between(date_from, date_to)
            .sum_of("total")
        )


# ---------- Invoice lines ----------
class InvoiceLineManager(TenantManager):

    def sum_cogs(self, company, date_from, date_to) -> Decimal:
        """
        Σ qty × product.unit_cost over lines of paid invoices in range.
        Uses the product's *current* cost, not a snapshot at sale time.
        Multiplied in Python so no backend float arithmetic is involved.
        """
        rows = (
            self.for_company(company)
            .filter(
                invoice__status="paid",
                invoice__date__gte=date_from,
                invoice__date__lte=date_to,
            )
            .values_list("quantity", "product__unit_cost")
        )
        return sum_money(cost * qty for qty, cost in rows)


# ---------- Expenses ----------
class ExpenseManager(TenantManager):

    def sum_amount(self, company, date_from, date_to) -> Decimal:
        return (
            self.for_company(company)
            .dated_between(date_from, date_to)
            .sum_of("amount")
        )
