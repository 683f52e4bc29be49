"""
Invoice composer and lifecycle.

create_invoice() is the unit of work for a new invoice: number reservation,
header insert, line inserts and (for issued invoices) stock deduction all run
in one transaction.atomic() block. Any exception rolls back every one of
them, so there is never an invoice without lines, stock taken without an
invoice, or a counter bump for an invoice that doesn't exist.
"""
import datetime
import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from ..conf import get_setting
from ..exceptions import InvalidTransitionError, NotFoundError
from ..models import Invoice, InvoiceLine
from ..models.invoice import STOCK_CONSUMING_STATUSES
from ..money import compute_invoice_totals, to_money_string
from .audit_helper import log_action
from .drafts import InvoiceDraft, parse_date
from .lookups import get_customer, get_invoice, get_products, resolve_company
from .numbering import next_invoice_number
from .stock import deduct_stock, restore_stock

logger = logging.getLogger(__name__)

# Header fields that stay editable after creation
EDITABLE_FIELDS = ("date", "due_date", "notes")


def build_lines(company, draft: InvoiceDraft) -> list:
    """Unsaved InvoiceLine objects with amounts computed."""
    products = get_products(company, [line.product_id for line in draft.lines])
    lines = []
    for position, line_draft in enumerate(draft.lines, start=1):
        product = products[line_draft.product_id]
        unit_price = line_draft.unit_price
        if unit_price is None:
            unit_price = product.unit_price
        line = InvoiceLine(
            company=company,
            product=product,
            position=position,
            description=line_draft.description or product.name,
            quantity=line_draft.quantity,
            unit_price=unit_price,
            tax_rate=line_draft.tax_rate,
        )
        line.compute_amounts()
        lines.append(line)
    return lines


def insert_invoice(company, customer, draft, number, totals) -> Invoice:
    due_date = draft.due_date or (
        draft.date
        + datetime.timedelta(days=get_setting("BOOKS_DEFAULT_PAYMENT_TERMS_DAYS"))
    )
    return Invoice.objects.create(
        company=company,
        customer=customer,
        invoice_number=number,
        date=draft.date,
        due_date=due_date,
        status=draft.status,
        sub_total=totals.sub_total,
        tax_total=totals.tax_total,
        total=totals.total,
        notes=draft.notes,
        stock_applied=draft.status in STOCK_CONSUMING_STATUSES,
    )


def insert_invoice_lines(invoice, lines) -> list:
    for line in lines:
        line.invoice = invoice
        line.save()
    return lines


def create_invoice(company, draft, user=None) -> Invoice:
    """
    Validate → compute totals → reserve number → insert header →
    insert lines → deduct stock if the invoice starts issued (or paid).

    `draft` is an InvoiceDraft or a payload dict for InvoiceDraft.from_dict.
    Raises ValidationError, NotFoundError, InsufficientStockError or
    ConcurrencyConflictError; nothing is persisted when it raises.
    """
    if not isinstance(draft, InvoiceDraft):
        draft = InvoiceDraft.from_dict(draft)
    company = resolve_company(company)

    with transaction.atomic():
        customer = get_customer(company, draft.customer_id)
        lines = build_lines(company, draft)
        totals = compute_invoice_totals(
            line.compute_amounts() for line in lines)

        number = next_invoice_number(company, draft.date)
        invoice = insert_invoice(company, customer, draft, number, totals)
        insert_invoice_lines(invoice, lines)

        if invoice.stock_applied:
            deduct_stock(company, lines)

        log_action(
            action="create",
            instance=invoice,
            user=user,
            changes={
                "invoice_number": number,
                "status": invoice.status,
                "sub_total": to_money_string(totals.sub_total),
                "tax_total": to_money_string(totals.tax_total),
                "total": to_money_string(totals.total),
                "lines": len(lines),
            },
        )

    logger.info("Created invoice %s for %s (status=%s, total=%s)",
                number, company, invoice.status, totals.total)
    return invoice


# ----------------------------------------------
# Invoice status update workflows
# ----------------------------------------------
def change_status(invoice: Invoice, new_status, user=None) -> Invoice:
    """
    Move an invoice along the lifecycle and keep stock in step:
    entering issued/paid for the first time deducts the lines' quantities,
    cancelling an invoice whose stock was deducted puts them back.
    The caller must hold a lock on the invoice row.
    """
    old_status = invoice.status
    if old_status == new_status:
        return invoice
    if not invoice.can_transition_to(new_status):
        raise InvalidTransitionError(old_status, new_status)

    with transaction.atomic():
        lines = list(invoice.lines.all())
        if new_status in STOCK_CONSUMING_STATUSES and not invoice.stock_applied:
            deduct_stock(invoice.company, lines)
            invoice.stock_applied = True
        elif new_status == "cancelled" and invoice.stock_applied:
            restore_stock(invoice.company, lines)
            invoice.stock_applied = False

        invoice.transition_to(new_status)

        log_action(
            action="transition",
            instance=invoice,
            user=user,
            changes={"from": old_status, "to": new_status},
        )

    logger.info("Invoice %s: %s → %s", invoice.invoice_number,
                old_status, new_status)
    return invoice


def update_invoice(company, invoice_id, user=None, **changes) -> Invoice:
    """
    Partial header update. Only date, due_date, notes and status can change;
    lines, number and totals are fixed at creation.
    """
    unknown = set(changes) - set(EDITABLE_FIELDS) - {"status"}
    if unknown:
        if unknown & {"lines", "items"}:
            raise ValidationError(
                "Invoice lines cannot be edited after the invoice is created")
        raise ValidationError(f"Fields {sorted(unknown)} cannot be updated")

    company = resolve_company(company)
    with transaction.atomic():
        invoice = get_invoice(company, invoice_id, for_update=True)

        edited = {}
        for field in EDITABLE_FIELDS:
            if field not in changes:
                continue
            value = changes[field]
            if field in ("date", "due_date"):
                value = parse_date(value, field)
            else:
                value = value or ""
            if getattr(invoice, field) != value:
                edited[field] = value
                setattr(invoice, field, value)

        if edited:
            # model clean() blocks edits on paid/cancelled invoices
            invoice.save(update_fields=[*edited, "updated_at"])
            log_action(
                action="update",
                instance=invoice,
                user=user,
                changes={k: str(v) for k, v in edited.items()},
            )

        new_status = changes.get("status")
        if new_status and new_status != invoice.status:
            change_status(invoice, new_status, user=user)

    return invoice


def issue_invoice(company, invoice_id, user=None) -> Invoice:
    """draft → issued (deducts stock)."""
    return update_invoice(company, invoice_id, user=user, status="issued")


def cancel_invoice(company, invoice_id, user=None) -> Invoice:
    """draft/issued → cancelled (restores stock if it was deducted)."""
    return update_invoice(company, invoice_id, user=user, status="cancelled")


def get_invoice_with_lines(company, invoice_id) -> Invoice:
    company = resolve_company(company)
    try:
        return (
            Invoice.objects.for_company(company)
            .select_related("customer")
            .prefetch_related("lines__product", "payments")
            .get(pk=invoice_id)
        )
    except (Invoice.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Invoice", invoice_id)
