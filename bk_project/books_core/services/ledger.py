"""
Ledger reconstructor.

Rebuilds a single chronological list of debits and credits for a company
from three source tables, on every call (nothing is cached or stored):

    invoices  → credit invoice.total   account "Sales Income"
    payments  → debit  payment.amount  account "Customer Payment"
    expenses  → debit  expense.amount  account "Expense: {category} - {vendor}"

Rows are ordered by date, then source row id. The running balance is the
prefix sum of (credit - debit) in that order, so the last row's balance
always equals total credits minus total debits.
"""
from dataclasses import asdict, dataclass, replace
from datetime import date as date_type
from decimal import Decimal
from typing import Optional

from ..models import Expense, Invoice, Payment
from ..money import ZERO, quantize_money, sum_money, to_money_string
from .lookups import resolve_company
from .reports import validate_range

SALES_INCOME = "Sales Income"
CUSTOMER_PAYMENT = "Customer Payment"

# Tie-break for rows of different tables sharing date and id
SOURCE_ORDER = {"invoice": 0, "payment": 1, "expense": 2}


def expense_account(category, vendor) -> str:
    return f"Expense: {category} - {vendor}"


@dataclass(frozen=True)
class LedgerRow:
    date: date_type
    account: str
    debit: Decimal
    credit: Decimal
    source: str
    source_id: int
    balance: Optional[Decimal] = None

    @property
    def net(self) -> Decimal:
        return self.credit - self.debit

    def sort_key(self):
        return (self.date, self.source_id, SOURCE_ORDER[self.source])

    def as_dict(self) -> dict:
        data = asdict(self)
        data["date"] = self.date.isoformat()
        for key in ("debit", "credit", "balance"):
            data[key] = to_money_string(data[key]) if data[key] is not None else None
        return data


@dataclass(frozen=True)
class LedgerSummary:
    total_debit: Decimal
    total_credit: Decimal
    closing_balance: Decimal

    def as_dict(self) -> dict:
        return {k: to_money_string(v) for k, v in asdict(self).items()}


def query_raw_ledger_rows(company, date_from, date_to) -> list:
    """Unordered rows from the three sources, no balance yet."""
    company = resolve_company(company)
    date_from, date_to = validate_range(date_from, date_to)
    rows = []

    invoices = (
        Invoice.objects.for_company(company)
        .dated_between(date_from, date_to)
        .values_list("id", "date", "total")
    )
    for pk, day, total in invoices:
        rows.append(LedgerRow(
            date=day, account=SALES_INCOME, debit=ZERO,
            credit=quantize_money(total), source="invoice", source_id=pk,
        ))

    # payments are scoped through their invoice's company
    payments = (
        Payment.objects.filter(invoice__company=company)
        .dated_between(date_from, date_to, field="payment_date")
        .values_list("id", "payment_date", "amount")
    )
    for pk, day, amount in payments:
        rows.append(LedgerRow(
            date=day, account=CUSTOMER_PAYMENT, debit=quantize_money(amount),
            credit=ZERO, source="payment", source_id=pk,
        ))

    expenses = (
        Expense.objects.for_company(company)
        .dated_between(date_from, date_to)
        .values_list("id", "date", "amount", "category", "vendor")
    )
    for pk, day, amount, category, vendor in expenses:
        rows.append(LedgerRow(
            date=day, account=expense_account(category, vendor),
            debit=quantize_money(amount), credit=ZERO,
            source="expense", source_id=pk,
        ))

    return rows


def with_running_balance(rows) -> list:
    """Sort rows and attach the prefix-sum balance to each one."""
    balance = ZERO
    ordered = []
    for row in sorted(rows, key=LedgerRow.sort_key):
        balance += row.net
        ordered.append(replace(row, balance=balance))
    return ordered


def get_ledger(company, date_from, date_to) -> list:
    """[LedgerRow(date, account, debit, credit, balance), ...] for the range."""
    return with_running_balance(query_raw_ledger_rows(company, date_from, date_to))


def summarize_ledger(rows) -> LedgerSummary:
    rows = list(rows)
    total_debit = sum_money(row.debit for row in rows)
    total_credit = sum_money(row.credit for row in rows)
    return LedgerSummary(
        total_debit=total_debit,
        total_credit=total_credit,
        closing_balance=total_credit - total_debit,
    )
