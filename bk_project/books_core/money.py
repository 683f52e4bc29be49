from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.core.exceptions import ValidationError

# Every stored money column has 2 fraction digits
CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


def to_decimal(value, field="amount") -> Decimal:
    """
    Coerce user input to Decimal without passing through float.
    Floats are converted via str() so 0.1 stays 0.1 (not 0.1000000000000000055).
    """
    if isinstance(value, bool) or value is None:
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, Decimal):
        result = value
    else:
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError):
            raise ValidationError(f"{field} is not a valid number: {value!r}")
    # NaN and Infinity parse but break every comparison and quantize
    if not result.is_finite():
        raise ValidationError(f"{field} must be a finite number")
    return result


def quantize_money(value) -> Decimal:
    """Round to cents using round-half-up (2.675 -> 2.68)."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def sum_money(values) -> Decimal:
    # start=ZERO so an empty iterable still yields Decimal("0.00")
    return quantize_money(sum(values, ZERO))


def to_money_string(value) -> str:
    """Money leaves the core as a fixed 2-decimal string, never a float."""
    return format(quantize_money(value if value is not None else ZERO), "f")


def percent_of(part, whole) -> Decimal:
    """part / whole * 100, or 0 when whole is 0 (no NaN at the boundary)."""
    whole = to_decimal(whole)
    if whole == 0:
        return ZERO
    return quantize_money(to_decimal(part) / whole * HUNDRED)


@dataclass(frozen=True)
class LineAmounts:
    # Computed money for one invoice line
    subtotal: Decimal
    tax: Decimal
    total: Decimal


def validate_line_inputs(quantity, unit_price, tax_rate):
    """
    Check and normalise the three inputs of a line.
    Returns (quantity:int, unit_price:Decimal, tax_rate:Decimal).
    """
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a whole number")
    if quantity < 0:
        raise ValidationError("Quantity must be >= 0")

    unit_price = to_decimal(unit_price, "unit_price")
    if unit_price < 0:
        raise ValidationError("Unit price must be >= 0")
    if unit_price != unit_price.quantize(CENT):
        raise ValidationError("Unit price cannot have more than 2 decimal places")

    tax_rate = to_decimal(tax_rate, "tax_rate")
    if tax_rate < 0 or tax_rate > HUNDRED:
        raise ValidationError("Tax rate must be between 0 and 100")
    if tax_rate != tax_rate.quantize(CENT):
        raise ValidationError("Tax rate cannot have more than 2 decimal places")

    return quantity, unit_price, tax_rate


def compute_line(quantity, unit_price, tax_rate=ZERO) -> LineAmounts:
    """
    subtotal = qty x unit_price
    tax      = subtotal x tax_rate / 100, rounded half-up to cents
    total    = subtotal + tax

    Tax is rounded once per line, so subtotal + tax is already exact in cents
    and the line total equals round(subtotal + raw tax).
    """
    quantity, unit_price, tax_rate = validate_line_inputs(
        quantity, unit_price, tax_rate)

    subtotal = quantize_money(unit_price * quantity)
    tax = quantize_money(subtotal * tax_rate / HUNDRED)
    return LineAmounts(subtotal=subtotal, tax=tax, total=subtotal + tax)


@dataclass(frozen=True)
class InvoiceAmounts:
    sub_total: Decimal
    tax_total: Decimal
    total: Decimal


def compute_invoice_totals(lines) -> InvoiceAmounts:
    """
    Aggregate already-rounded line amounts.
    total is the literal sum of line totals, so it always equals
    sub_total + tax_total (no penny drift from re-rounding).
    """
    lines = list(lines)
    return InvoiceAmounts(
        sub_total=sum_money(line.subtotal for line in lines),
        tax_total=sum_money(line.tax for line in lines),
        total=sum_money(line.total for line in lines),
    )
