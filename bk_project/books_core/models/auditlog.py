from django.conf import settings
from django.db import models

from ..managers import TenantManager
from .company import Company


# ---------- Audit / Event log ----------
class AuditLog(models.Model):  # Traceability of every bookkeeping write
    company = models.ForeignKey(
        Company,
        null=True,
        blank=True,
        on_delete=models.SET_NULL,
    )
    # Nullable, automated actions (seed scripts) have no user
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        null=True, blank=True, on_delete=models.SET_NULL
    )
    # create, update, transition, payment, delete
    action = models.CharField(max_length=50)
    object_type = models.CharField(max_length=100)  # "Invoice", "Expense"
    object_id = models.CharField(max_length=100)
    # before/after details, JSON-safe values only (money as strings)
    changes = models.JSONField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    # Enforce tenant scoping
    objects = TenantManager()

    class Meta:
        indexes = [
            models.Index(fields=["company", "created_at"], name="audit_company_created_idx"),
        ]

    def __str__(self):
        return f"{self.action} {self.object_type}({self.object_id})"
