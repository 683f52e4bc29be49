import logging
from collections import OrderedDict

from django.db import transaction

from ..conf import get_setting
from ..exceptions import InsufficientStockError, NotFoundError
from ..models import Product
from .locking import lock_conflicts

logger = logging.getLogger(__name__)


# ----------------------------
# Stock ledger workflows
# ----------------------------
def quantities_by_product(lines) -> "OrderedDict[int, int]":
    """
    Collapse lines into {product_id: total qty}.
    `lines` holds InvoiceLine objects or (product_id, qty) pairs; two lines
    for the same product are checked against stock as one request.
    """
    totals = OrderedDict()
    for line in lines:
        if isinstance(line, tuple):
            product_id, qty = line
        else:
            product_id, qty = line.product_id, line.quantity
        totals[product_id] = totals.get(product_id, 0) + qty
    return totals


def lock_products(company, product_ids) -> dict:
    """
    SELECT ... FOR UPDATE the product rows, in pk order so two invoices
    touching the same products never deadlock on each other.
    """
    ids = sorted(set(product_ids))
    with lock_conflicts(f"products {ids}"):
        locked = {
            p.pk: p
            for p in Product.objects.select_for_update()
            .filter(company=company, pk__in=ids)
            .order_by("pk")
        }
    for pid in ids:
        if pid not in locked:
            raise NotFoundError("Product", pid)
    return locked


def update_product_stock(product_id, new_qty):
    # Plain UPDATE, the caller holds the row lock and did the checks
    Product.objects.filter(pk=product_id).update(stock_qty=new_qty)


def deduct_stock(company, lines) -> dict:
    """
    Take the lines' quantities out of stock.

    Every product is checked before anything is written: if one would go
    below zero and the company doesn't allow negative stock, raise
    InsufficientStockError and leave all stock untouched.
    Returns {product_id: new stock_qty}.
    """
    wanted = quantities_by_product(lines)
    if not wanted:
        return {}

    with transaction.atomic():
        products = lock_products(company, wanted.keys())

        new_levels = {}
        for product_id, qty in wanted.items():
            product = products[product_id]
            remaining = product.stock_qty - qty
            if remaining < 0 and not company.allow_negative_stock:
                logger.warning(
                    "Rejected stock deduction for %s: requested %s, available %s",
                    product, qty, product.stock_qty,
                )
                raise InsufficientStockError(product, qty, product.stock_qty)
            new_levels[product_id] = remaining

        for product_id, remaining in new_levels.items():
            update_product_stock(product_id, remaining)

    logger.info("Deducted stock for %s product(s) of %s", len(new_levels), company)
    return new_levels


def restore_stock(company, lines) -> dict:
    """Put the lines' quantities back (invoice cancelled)."""
    returned = quantities_by_product(lines)
    if not returned:
        return {}

    with transaction.atomic():
        products = lock_products(company, returned.keys())
        new_levels = {
            product_id: products[product_id].stock_qty + qty
            for product_id, qty in returned.items()
        }
        for product_id, level in new_levels.items():
            update_product_stock(product_id, level)

    logger.info("Restored stock for %s product(s) of %s", len(new_levels), company)
    return new_levels


def low_stock_products(company, threshold=None):
    """Products at or below the threshold, lowest stock first."""
    if threshold is None:
        threshold = get_setting("BOOKS_LOW_STOCK_THRESHOLD")
    return list(
        Product.objects.for_company(company)
        .filter(stock_qty__lte=threshold)
        .order_by("stock_qty", "name")
    )
