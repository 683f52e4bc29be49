from decimal import Decimal

import pytest

from books_core.models import Company, Customer, Product


@pytest.fixture
def company(db):
    return Company.objects.create(name="Test Co")


@pytest.fixture
def customer(company):
    return Customer.objects.create(company=company, name="Acme Corp")


@pytest.fixture
def widget(company):
    return Product.objects.create(
        company=company,
        sku="WID-1",
        name="Widget",
        unit_price=Decimal("10.00"),
        unit_cost=Decimal("4.00"),
        stock_qty=20,
    )


@pytest.fixture
def gadget(company):
    return Product.objects.create(
        company=company,
        sku="GAD-1",
        name="Gadget",
        unit_price=Decimal("50.00"),
        unit_cost=Decimal("30.00"),
        stock_qty=5,
    )
