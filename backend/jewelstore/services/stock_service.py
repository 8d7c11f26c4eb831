# Overview: Read access to tagged stock items: filtered listing and scanner lookup.

from __future__ import annotations

from sqlalchemy import func, or_

from ..models import Product, StockItem
from .identifier_service import validate_barcode, validate_tag_id
from .tenant_service import NotFoundError, scoped_query

STOCK_STATUSES = ("AVAILABLE", "RESERVED", "SOLD")


class StockLookupError(Exception):
    """Raised when a scanned value is neither a tag id nor a stock barcode."""
    pass


def list_stock(
    shop_id: int,
    *,
    status: str | None = None,
    product_id: int | None = None,
    purchase_order_id: int | None = None,
    metal_type: str | None = None,
    purity: str | None = None,
    search: str | None = None,
):
    """Filtered query of a shop's stock items, newest first (caller paginates)."""
    query = scoped_query(StockItem, shop_id).join(Product, StockItem.product_id == Product.id)
    if status:
        query = query.filter(StockItem.status == status)
    if product_id is not None:
        query = query.filter(StockItem.product_id == product_id)
    if purchase_order_id is not None:
        query = query.filter(StockItem.purchase_order_id == purchase_order_id)
    if metal_type:
        query = query.filter(Product.metal_type == metal_type)
    if purity:
        query = query.filter(Product.purity == purity)
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(StockItem.tag_id).like(like),
            func.lower(StockItem.barcode).like(like),
            func.lower(StockItem.huid).like(like),
            func.lower(Product.name).like(like),
        ))
    return query.order_by(StockItem.id.desc())


def find_by_identifier(shop_id: int, identifier: str) -> StockItem:
    """One piece by tag id or barcode (scanners send either)."""
    identifier = (identifier or "").strip().upper()
    if validate_tag_id(identifier):
        column = StockItem.tag_id
    elif validate_barcode(identifier):
        column = StockItem.barcode
    else:
        raise StockLookupError(f"'{identifier}' is not a tag id or stock barcode")

    item = scoped_query(StockItem, shop_id).filter(column == identifier).first()
    if item is None:
        raise NotFoundError("StockItem")
    return item
