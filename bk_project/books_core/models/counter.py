from django.db import models

from .company import Company


# ---------- Counter ----------
class Counter(models.Model):
    """
    Durable per-period sequence used for document numbering.
    One row per (company, name, year, month); created lazily on the first
    document of a month and incremented under a row lock afterwards.
    Values are never handed out twice, gaps are allowed.
    """
    company = models.ForeignKey(
        Company, on_delete=models.CASCADE, related_name="counters")
    name = models.CharField(max_length=50)  # e.g. "invoice"
    year = models.PositiveIntegerField()
    month = models.PositiveSmallIntegerField()
    # Last value handed out, 0 = none yet
    sequence = models.PositiveIntegerField(default=0)

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["company", "name", "year", "month"],
                name="uq_counter_company_name_period",
            ),
            models.CheckConstraint(
                condition=models.Q(month__gte=1) & models.Q(month__lte=12),
                name="counter_valid_month",
            ),
        ]

    def __str__(self):
        return f"{self.name} {self.year}-{self.month:02d} #{self.sequence}"
