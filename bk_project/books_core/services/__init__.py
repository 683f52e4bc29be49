from .drafts import InvoiceDraft, LineDraft
from .expense import delete_expense, record_expense, update_expense
from .invoicing import (cancel_invoice, change_status, create_invoice,
                        get_invoice_with_lines, issue_invoice, update_invoice)
from .ledger import get_ledger, query_raw_ledger_rows, summarize_ledger
from .numbering import format_invoice_number, next_invoice_number
from .payment import payments_for_invoice, record_payment
from .reports import (get_dashboard_metrics, get_profit_loss,
                      outstanding_receivables)
from .stock import deduct_stock, low_stock_products, restore_stock
