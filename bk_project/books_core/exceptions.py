from django.core.exceptions import ValidationError


class BooksError(Exception):
    """Base class for bookkeeping errors that are not field validation."""
    pass


class NotFoundError(BooksError):
    """Raised when a referenced company/customer/product/invoice does not exist."""

    def __init__(self, object_type, object_id):
        self.object_type = object_type
        self.object_id = object_id
        super().__init__(f"{object_type} {object_id} does not exist")


class InsufficientStockError(BooksError):
    """Raised when a stock deduction would take a product below zero."""

    def __init__(self, product, requested, available):
        self.product = product
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for {product}: requested {requested}, "
            f"available {available} (short by {self.shortfall})"
        )

    @property
    def shortfall(self):
        return self.requested - self.available


class ConcurrencyConflictError(BooksError):
    """Raised when a counter or product row lock cannot be taken.
    The whole operation was rolled back and can be retried."""
    pass


class InvalidTransitionError(ValidationError):
    """Raised for a status change the invoice lifecycle does not allow."""

    def __init__(self, current, requested):
        self.current = current
        self.requested = requested
        super().__init__(f"Cannot go from {current} to {requested}")
