import logging

from django.core.exceptions import ValidationError
from django.db import transaction

from ..models import Expense
from ..money import to_decimal, to_money_string
from .audit_helper import log_action
from .drafts import parse_date
from .lookups import get_expense, resolve_company

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("vendor", "category", "amount", "date", "notes")


def _clean_value(field, value):
    if field == "amount":
        return to_decimal(value, "amount")
    if field == "date":
        return parse_date(value, "date")
    return (value or "").strip()


def record_expense(company, *, vendor, category, amount, date, notes="", user=None) -> Expense:
    company = resolve_company(company)
    with transaction.atomic():
        # model full_clean() rejects blank vendor/category and bad amounts
        expense = Expense.objects.create(
            company=company,
            vendor=_clean_value("vendor", vendor),
            category=_clean_value("category", category),
            amount=_clean_value("amount", amount),
            date=_clean_value("date", date),
            notes=_clean_value("notes", notes),
        )
        log_action(
            action="create",
            instance=expense,
            user=user,
            changes={"amount": to_money_string(expense.amount),
                     "category": expense.category},
        )
    logger.info("Recorded expense %s (%s) for %s",
                expense.amount, expense.category, company)
    return expense


def update_expense(company, expense_id, user=None, **changes) -> Expense:
    unknown = set(changes) - set(EDITABLE_FIELDS)
    if unknown:
        raise ValidationError(f"Fields {sorted(unknown)} cannot be updated")

    company = resolve_company(company)
    with transaction.atomic():
        expense = get_expense(company, expense_id)
        for field, value in changes.items():
            setattr(expense, field, _clean_value(field, value))
        expense.save()
        log_action(
            action="update",
            instance=expense,
            user=user,
            changes={k: str(getattr(expense, k)) for k in changes},
        )
    return expense


def delete_expense(company, expense_id, user=None):
    company = resolve_company(company)
    with transaction.atomic():
        expense = get_expense(company, expense_id)
        log_action(
            action="delete",
            instance=expense,
            user=user,
            changes={"amount": to_money_string(expense.amount)},
        )
        expense.delete()
