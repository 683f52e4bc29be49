from ..exceptions import NotFoundError
from ..models import Company, Customer, Expense, Invoice, Product


def resolve_company(company) -> Company:
    """Accept a Company or its pk."""
    if isinstance(company, Company):
        return company
    try:
        return Company.objects.get(pk=company)
    except (Company.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Company", company)


def get_customer(company, customer_id) -> Customer:
    try:
        return Customer.objects.for_company(company).get(pk=customer_id)
    except (Customer.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Customer", customer_id)


def get_product(company, product_id) -> Product:
    try:
        return Product.objects.for_company(company).get(pk=product_id)
    except (Product.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Product", product_id)


def get_products(company, product_ids) -> dict:
    """Fetch several products at once → {pk: Product}; every id must exist."""
    wanted = set(product_ids)
    found = {
        p.pk: p for p in Product.objects.for_company(company).filter(pk__in=wanted)
    }
    missing = sorted(wanted - set(found), key=str)
    if missing:
        raise NotFoundError("Product", missing[0])
    return found


def get_invoice(company, invoice_id, *, for_update=False) -> Invoice:
    qs = Invoice.objects.for_company(company)
    if for_update:
        # Lock the row until the enclosing transaction finishes
        qs = qs.select_for_update()
    try:
        return qs.get(pk=invoice_id)
    except (Invoice.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Invoice", invoice_id)


def get_expense(company, expense_id) -> Expense:
    try:
        return Expense.objects.for_company(company).get(pk=expense_id)
    except (Expense.DoesNotExist, ValueError, TypeError):
        raise NotFoundError("Expense", expense_id)
