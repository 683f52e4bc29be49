from .auditlog import AuditLog
from .company import Company
from .counter import Counter
from .customer import Customer
from .expense import Expense
from .invoice import Invoice, InvoiceLine
from .payment import Payment
from .product import Product
