from decimal import Decimal
from unittest import mock

import pytest
from django.core.exceptions import ValidationError
from django.test import override_settings

from ..exceptions import InsufficientStockError, NotFoundError
from ..models import Company, Product
from ..services import deduct_stock, low_stock_products, restore_stock


@pytest.mark.django_db
def test_deduct_and_restore(company, widget, gadget):
    levels = deduct_stock(company, [(widget.pk, 5), (gadget.pk, 5)])
    assert levels == {widget.pk: 15, gadget.pk: 0}

    restore_stock(company, [(widget.pk, 5)])
    widget.refresh_from_db()
    gadget.refresh_from_db()
    assert widget.stock_qty == 20
    assert gadget.stock_qty == 0


@pytest.mark.django_db
def test_rejection_writes_nothing(company, widget, gadget):
    # widget would be fine on its own, gadget is short
    with pytest.raises(InsufficientStockError) as excinfo:
        deduct_stock(company, [(widget.pk, 3), (gadget.pk, 6)])

    assert excinfo.value.product == gadget
    assert "short by 1" in str(excinfo.value)
    widget.refresh_from_db()
    gadget.refresh_from_db()
    assert widget.stock_qty == 20
    assert gadget.stock_qty == 5


@pytest.mark.django_db
def test_rejection_is_logged(company, gadget):
    with mock.patch("books_core.services.stock.logger") as logger:
        with pytest.raises(InsufficientStockError):
            deduct_stock(company, [(gadget.pk, 9)])
    logger.warning.assert_called_once()
    logger.info.assert_not_called()


@pytest.mark.django_db
def test_unknown_product(company, widget):
    other = Company.objects.create(name="Other Co")
    foreign = Product.objects.create(company=other, sku="X", name="X", stock_qty=5)
    with pytest.raises(NotFoundError):
        deduct_stock(company, [(widget.pk, 1), (foreign.pk, 1)])


@pytest.mark.django_db
def test_empty_lines_are_a_no_op(company):
    assert deduct_stock(company, []) == {}
    assert restore_stock(company, []) == {}


@pytest.mark.django_db
def test_negative_stock_needs_company_opt_in(company):
    with pytest.raises(ValidationError):
        Product.objects.create(company=company, sku="N", name="Neg", stock_qty=-1)

    company.allow_negative_stock = True
    company.save()
    product = Product.objects.create(company=company, sku="N", name="Neg", stock_qty=-1)
    assert product.stock_qty == -1


@pytest.mark.django_db
def test_low_stock(company, widget, gadget):
    Product.objects.create(company=company, sku="A", name="Anvil", stock_qty=0)
    Product.objects.create(company=company, sku="B", name="Bolt", stock_qty=5)

    names = [p.name for p in low_stock_products(company)]
    # lowest stock first, then by name
    assert names == ["Anvil", "Bolt", "Gadget"]

    assert [p.name for p in low_stock_products(company, threshold=0)] == ["Anvil"]
    with override_settings(BOOKS_LOW_STOCK_THRESHOLD=20):
        assert len(low_stock_products(company)) == 4


@pytest.mark.django_db
def test_sku_unique_per_company(company, widget):
    with pytest.raises(ValidationError):
        Product.objects.create(company=company, sku="WID-1", name="Copy")
    other = Company.objects.create(name="Other Co")
    Product.objects.create(company=other, sku="WID-1", name="Widget",
                           unit_price=Decimal("1.00"))
