"""
Typed input records for the invoice composer.

Field checks run once, when the record is built at the system boundary;
the composer can trust everything it receives.
"""
import datetime
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from django.core.exceptions import ValidationError

from ..money import ZERO, to_decimal, validate_line_inputs

# A new invoice can start in any state except cancelled
CREATABLE_STATUSES = ("draft", "issued", "paid")


def parse_date(value, field_name="date") -> datetime.date:
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            # "2025-01-15T10:30:00" is a timestamp, keep its date part
            if "T" in text:
                return datetime.datetime.fromisoformat(text).date()
            return datetime.date.fromisoformat(text)
        except ValueError:
            pass
    raise ValidationError(f"{field_name} must be a date (YYYY-MM-DD), got {value!r}")


def parse_quantity(value) -> int:
    # "3" and 3.0 are fine, 2.5 is not
    if isinstance(value, bool):
        raise ValidationError("Quantity must be a whole number")
    if isinstance(value, int):
        return value
    number = to_decimal(value, "quantity")
    if number != number.to_integral_value():
        raise ValidationError("Quantity must be a whole number")
    return int(number)


@dataclass(frozen=True)
class LineDraft:
    product_id: int
    quantity: int
    # None → the product's current selling price
    unit_price: Optional[Decimal] = None
    tax_rate: Decimal = ZERO
    # Blank → the product's name
    description: str = ""

    def __post_init__(self):
        if self.product_id in (None, ""):
            raise ValidationError("Each line needs a product")
        qty = parse_quantity(self.quantity)
        if qty < 1:
            raise ValidationError("Quantity must be at least 1")
        price = ZERO if self.unit_price is None else self.unit_price
        qty, price, rate = validate_line_inputs(qty, price, self.tax_rate)
        description = (self.description or "").strip()
        if len(description) > 255:
            raise ValidationError("Line description is limited to 255 characters")

        # frozen dataclass: normalise through object.__setattr__
        object.__setattr__(self, "quantity", qty)
        if self.unit_price is not None:
            object.__setattr__(self, "unit_price", price)
        object.__setattr__(self, "tax_rate", rate)
        object.__setattr__(self, "description", description)

    @classmethod
    def from_dict(cls, data):
        if not isinstance(data, dict):
            raise ValidationError("Each line must be an object")
        product_id = data.get("product_id", data.get("productId"))
        unit_price = data.get("unit_price", data.get("unitPrice"))
        tax_rate = data.get("tax_rate", data.get("taxRate"))
        return cls(
            product_id=product_id,
            quantity=data.get("quantity", data.get("qty")),
            unit_price=unit_price,
            tax_rate=ZERO if tax_rate in (None, "") else tax_rate,
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class InvoiceDraft:
    customer_id: int
    date: datetime.date
    lines: tuple = field(default_factory=tuple)
    # None → date + company payment terms
    due_date: Optional[datetime.date] = None
    status: str = "draft"
    notes: str = ""

    def __post_init__(self):
        if self.customer_id in (None, ""):
            raise ValidationError("Customer is required")

        invoice_date = parse_date(self.date, "date")
        due_date = None
        if self.due_date is not None:
            due_date = parse_date(self.due_date, "due_date")
            if due_date < invoice_date:
                raise ValidationError("Due date cannot be before the invoice date")

        if self.status not in CREATABLE_STATUSES:
            raise ValidationError(
                f"New invoices must be one of {CREATABLE_STATUSES}, got {self.status!r}")

        lines = tuple(
            line if isinstance(line, LineDraft) else LineDraft.from_dict(line)
            for line in (self.lines or ())
        )
        if not lines:
            raise ValidationError("An invoice needs at least one line")

        object.__setattr__(self, "date", invoice_date)
        object.__setattr__(self, "due_date", due_date)
        object.__setattr__(self, "lines", lines)
        object.__setattr__(self, "notes", self.notes or "")

    @classmethod
    def from_dict(cls, data):
        """Build from a request-style payload (camelCase keys accepted)."""
        if not isinstance(data, dict):
            raise ValidationError("Invoice payload must be an object")
        items = data.get("lines", data.get("items"))
        if items is None:
            items = ()
        elif not isinstance(items, (list, tuple)):
            raise ValidationError("lines must be a list")
        return cls(
            customer_id=data.get("customer_id", data.get("customerId")),
            date=data.get("date"),
            lines=tuple(items),
            due_date=data.get("due_date", data.get("dueDate")),
            status=data.get("status") or "draft",
            notes=data.get("notes") or "",
        )
