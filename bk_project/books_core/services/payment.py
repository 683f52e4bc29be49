import logging

from django.core.exceptions import ValidationError
from django.db import transaction
from django.utils import timezone

from ..models import Payment
from ..money import CENT, to_decimal, to_money_string
from .audit_helper import log_action
from .drafts import parse_date
from .invoicing import change_status
from .lookups import get_invoice, resolve_company

logger = logging.getLogger(__name__)


# ----------------------------
# Payment-related workflows
# ----------------------------
def record_payment(
    company,
    invoice_id,
    amount,
    *,
    method="cash",
    payment_date=None,
    reference="",
    user=None,
) -> Payment:
    """
    Apply money received to an issued invoice.
    Locks the invoice row during the operation; when cumulative payments
    reach the invoice total the invoice moves to paid in the same
    transaction.
    """
    amount = to_decimal(amount, "amount")
    if amount <= 0:
        raise ValidationError("Payment amount must be > 0")
    if amount != amount.quantize(CENT):
        raise ValidationError("Payment amount cannot have more than 2 decimal places")
    if not (method or "").strip():
        raise ValidationError("Payment method is required")
    payment_date = (
        parse_date(payment_date, "payment_date")
        if payment_date is not None
        else timezone.localdate()
    )

    company = resolve_company(company)
    # Everything inside either succeeds as one unit or rolls back
    with transaction.atomic():
        invoice = get_invoice(company, invoice_id, for_update=True)
        if invoice.status != "issued":
            raise ValidationError(
                f"Cannot record a payment against a {invoice.status} invoice")

        payment = Payment.objects.create(
            company=company,
            invoice=invoice,
            amount=amount,
            method=method.strip(),
            payment_date=payment_date,
            reference=reference or "",
        )
        log_action(
            action="payment",
            instance=invoice,
            user=user,
            changes={
                "payment_id": payment.pk,
                "amount": to_money_string(amount),
                "method": payment.method,
            },
        )

        paid = invoice.amount_paid()
        if paid >= invoice.total:
            change_status(invoice, "paid", user=user)

    logger.info("Recorded payment %s on %s (paid %s of %s)",
                amount, invoice.invoice_number, paid, invoice.total)
    return payment


def payments_for_invoice(company, invoice_id):
    company = resolve_company(company)
    invoice = get_invoice(company, invoice_id)
    return list(invoice.payments.order_by("-payment_date", "-id"))
