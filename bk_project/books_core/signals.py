from django.core.exceptions import ValidationError
from django.db.models.signals import pre_delete, pre_save
from django.dispatch import receiver

from .models import Counter, Invoice

""" Block deleting invoices that moved stock, cancel them instead so the
    stock comes back. Invoices with payments are PROTECTed by the FK. """


@receiver(pre_delete, sender=Invoice)
def prevent_delete_active_invoice(sender, instance, **kwargs):
    if instance.stock_applied:
        raise ValidationError(
            "Cannot delete an invoice whose stock was deducted; cancel it instead.")


""" A counter only moves forward, a lower value would hand out
    numbers that were already used. """


@receiver(pre_save, sender=Counter)
def prevent_counter_rewind(sender, instance, **kwargs):
    if not instance.pk:
        return
    current = (
        Counter.objects.filter(pk=instance.pk)
        .values_list("sequence", flat=True)
        .first()
    )
    if current is not None and instance.sequence < current:
        raise ValidationError(
            f"Counter {instance} cannot go back from {current} to {instance.sequence}")
