from django.core.exceptions import ValidationError
from django.core.management.base import BaseCommand, CommandError

from books_core.exceptions import NotFoundError
from books_core.services import get_ledger, get_profit_loss, summarize_ledger


class Command(BaseCommand):
    help = "Print the profit & loss statement (and optionally the ledger) for a date range."

    def add_arguments(self, parser):
        parser.add_argument("--company", type=int, required=True, help="Company id")
        parser.add_argument("--from", dest="date_from", required=True,
                            help="Start date YYYY-MM-DD (inclusive)")
        parser.add_argument("--to", dest="date_to", required=True,
                            help="End date YYYY-MM-DD (inclusive)")
        parser.add_argument("--ledger", action="store_true",
                            help="Also print the transaction ledger")

    def handle(self, *args, **options):
        company = options["company"]
        date_from, date_to = options["date_from"], options["date_to"]
        try:
            pnl = get_profit_loss(company, date_from, date_to)
            rows = get_ledger(company, date_from, date_to) if options["ledger"] else None
        except (NotFoundError, ValidationError) as exc:
            raise CommandError(str(exc))

        self.stdout.write(self.style.MIGRATE_HEADING(
            f"Profit & Loss {date_from} → {date_to}"))
        figures = pnl.as_dict()
        for label, key in (
            ("Revenue", "revenue"),
            ("Cost of goods sold", "cogs"),
            ("Gross profit", "gross_profit"),
            ("Expenses", "expenses"),
            ("Net profit", "net_profit"),
        ):
            self.stdout.write(f"{label:<22}{figures[key]:>14}")
        self.stdout.write(f"{'Gross margin %':<22}{figures['gross_margin_percent']:>14}")
        self.stdout.write(f"{'Net margin %':<22}{figures['net_margin_percent']:>14}")

        if rows is None:
            return

        self.stdout.write("")
        self.stdout.write(self.style.MIGRATE_HEADING("Ledger"))
        for row in rows:
            data = row.as_dict()
            self.stdout.write(
                f"{data['date']}  {data['account']:<40}"
                f"{data['debit']:>12}{data['credit']:>12}{data['balance']:>12}"
            )
        summary = summarize_ledger(rows).as_dict()
        self.stdout.write(
            f"{'Totals':<52}{summary['total_debit']:>12}"
            f"{summary['total_credit']:>12}{summary['closing_balance']:>12}"
        )
