"""
P&L aggregator and dashboard metrics.

Both are computed straight from the invoice, invoice line and expense
tables. They are independent of the ledger reconstructor, so the two views
can disagree (e.g. COGS reads the product's current unit cost, not the cost
at the time of sale).
"""
import datetime
from dataclasses import asdict, dataclass
from decimal import Decimal

from django.core.exceptions import ValidationError
from django.db.models import Sum
from django.utils import timezone

from ..conf import get_setting
from ..models import Expense, Invoice, InvoiceLine, Payment
from ..money import ZERO, percent_of, quantize_money, to_money_string
from .drafts import parse_date
from .lookups import resolve_company


def validate_range(date_from, date_to):
    date_from = parse_date(date_from, "from")
    date_to = parse_date(date_to, "to")
    if date_from > date_to:
        raise ValidationError("Report start date must be on or before the end date")
    return date_from, date_to


def default_range(today=None, days=None):
    """The last `days` days up to today (dashboard default)."""
    today = today or timezone.localdate()
    days = get_setting("BOOKS_DASHBOARD_WINDOW_DAYS") if days is None else days
    return today - datetime.timedelta(days=days), today


@dataclass(frozen=True)
class ProfitLoss:
    revenue: Decimal
    cogs: Decimal
    expenses: Decimal
    gross_profit: Decimal
    net_profit: Decimal

    @property
    def gross_margin_percent(self) -> Decimal:
        # 0 when there is no revenue
        return percent_of(self.gross_profit, self.revenue)

    @property
    def net_margin_percent(self) -> Decimal:
        return percent_of(self.net_profit, self.revenue)

    def as_dict(self) -> dict:
        data = {k: to_money_string(v) for k, v in asdict(self).items()}
        data["gross_margin_percent"] = to_money_string(self.gross_margin_percent)
        data["net_margin_percent"] = to_money_string(self.net_margin_percent)
        return data


@dataclass(frozen=True)
class DashboardMetrics:
    revenue: Decimal
    outstanding: Decimal
    expenses: Decimal
    profit: Decimal

    def as_dict(self) -> dict:
        return {k: to_money_string(v) for k, v in asdict(self).items()}


def get_profit_loss(company, date_from, date_to) -> ProfitLoss:
    """
    revenue      = Σ total of paid invoices dated in range
    cogs         = Σ qty × current unit cost over those invoices' lines
    expenses     = Σ expense amounts dated in range
    gross_profit = revenue - cogs
    net_profit   = gross_profit - expenses
    Every figure is 0.00 when nothing matches.
    """
    company = resolve_company(company)
    date_from, date_to = validate_range(date_from, date_to)

    revenue = Invoice.objects.sum_by_status(company, "paid", date_from, date_to)
    cogs = InvoiceLine.objects.sum_cogs(company, date_from, date_to)
    expenses = Expense.objects.sum_amount(company, date_from, date_to)
    gross_profit = revenue - cogs

    return ProfitLoss(
        revenue=revenue,
        cogs=cogs,
        expenses=expenses,
        gross_profit=gross_profit,
        net_profit=gross_profit - expenses,
    )


def outstanding_receivables(company) -> Decimal:
    """
    What customers still owe on issued invoices, whatever their date:
    Σ issued totals − Σ payments already applied to them.
    """
    company = resolve_company(company)
    issued = Invoice.objects.for_company(company).with_status("issued")
    billed = issued.sum_of("total")
    received = (
        Payment.objects.filter(invoice__in=issued)
        .aggregate(total=Sum("amount"))["total"] or ZERO
    )
    return max(billed - quantize_money(received), ZERO)


def get_dashboard_metrics(company, date_from=None, date_to=None) -> DashboardMetrics:
    company = resolve_company(company)
    if date_from is None or date_to is None:
        default_from, default_to = default_range()
        date_from = date_from or default_from
        date_to = date_to or default_to
    date_from, date_to = validate_range(date_from, date_to)

    revenue = Invoice.objects.sum_by_status(company, "paid", date_from, date_to)
    expenses = Expense.objects.sum_amount(company, date_from, date_to)
    return DashboardMetrics(
        revenue=revenue,
        outstanding=outstanding_receivables(company),
        expenses=expenses,
        profit=revenue - expenses,
    )
