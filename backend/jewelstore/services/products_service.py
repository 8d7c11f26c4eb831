# backend/jewelstore/services/products_service.py
"""
Products Service

MULTI-TENANT: every operation takes the caller's shop_id; products of other
shops are never listed and raise TenantAccessError when addressed by id.

New products are priced from the shop's current rate for their metal and
purity when one exists. Editing a pricing input (weights, wastage, charges,
metal, purity) reprices the product the same way.
"""
from __future__ import annotations

from flask import current_app
from sqlalchemy import func, or_

from ..extensions import db
from ..models import Product, StockItem, Supplier
from ..time_utils import utcnow
from ..validation import ConflictError
from . import audit_service
from .identifier_service import tag_prefix
from .pricing import price_for_product
from .rate_service import get_current_rate
from .tenant_service import get_owned, scoped_query

PRODUCT_MUTABLE_FIELDS = {
    "name", "description", "metal_type", "purity", "gross_weight", "net_weight",
    "wastage_percent", "making_charges", "stone_weight", "stone_value",
    "stone_description", "barcode", "huid", "tag_number", "hallmark_number",
    "bis_compliant", "collection_name", "design", "size", "supplier_id",
    "reorder_level", "is_active", "is_custom_order", "price_override",
    "price_override_reason",
}

PRICING_FIELDS = {
    "metal_type", "purity", "net_weight", "wastage_percent", "making_charges", "stone_value",
}


class ProductError(Exception):
    """Raised for product business rule violations."""
    pass


def apply_product_patch(p: Product, patch: dict) -> None:
    for k, v in patch.items():
        if k not in PRODUCT_MUTABLE_FIELDS:
            continue
        setattr(p, k, v)


def _check_barcode_unique(shop_id: int, barcode: str | None, exclude_id: int | None = None) -> None:
    if not barcode:
        return
    query = db.session.query(Product.id).filter(Product.shop_id == shop_id, Product.barcode == barcode)
    if exclude_id is not None:
        query = query.filter(Product.id != exclude_id)
    if query.first() is not None:
        raise ConflictError(f"Barcode {barcode} already exists in this shop")


def _check_supplier(shop_id: int, supplier_id: int | None) -> None:
    if supplier_id is not None:
        get_owned(Supplier, supplier_id, shop_id)


def _check_weights(product: Product) -> None:
    if product.net_weight is not None and product.gross_weight is not None:
        if product.net_weight > product.gross_weight:
            raise ProductError("netWeight cannot exceed grossWeight")


def _reprice(product: Product) -> bool:
    rate = get_current_rate(product.shop_id, product.metal_type, product.purity)
    if rate is None:
        return False
    product.calculated_price = price_for_product(product, rate).total_price
    product.rate_used_id = rate.id
    product.last_price_update = utcnow()
    return True


def list_products(
    shop_id: int,
    *,
    search: str | None = None,
    metal_type: str | None = None,
    purity: str | None = None,
    collection_name: str | None = None,
    supplier_id: int | None = None,
    is_active: bool | None = None,
):
    """Filtered, name-ordered query of a shop's products (caller paginates)."""
    query = scoped_query(Product, shop_id)
    if search:
        like = f"%{search.lower()}%"
        query = query.filter(or_(
            func.lower(Product.name).like(like),
            func.lower(Product.barcode).like(like),
            func.lower(Product.huid).like(like),
            func.lower(Product.design).like(like),
        ))
    if metal_type:
        query = query.filter(Product.metal_type == metal_type)
    if purity:
        query = query.filter(Product.purity == purity)
    if collection_name:
        query = query.filter(func.lower(Product.collection_name).contains(collection_name.lower()))
    if supplier_id is not None:
        query = query.filter(Product.supplier_id == supplier_id)
    if is_active is not None:
        query = query.filter(Product.is_active.is_(is_active))
    return query.order_by(Product.name.asc(), Product.id.asc())


def get_product(shop_id: int, product_id: int) -> Product:
    return get_owned(Product, product_id, shop_id)


def create_product(*, shop_id: int, patch: dict, user_id: int | None = None) -> Product:
    """
    Create product using a validated patch dict.

    Raises ConflictError on a duplicate barcode in the shop.
    """
    _check_barcode_unique(shop_id, patch.get("barcode"))
    _check_supplier(shop_id, patch.get("supplier_id"))

    product = Product(shop_id=shop_id)
    apply_product_patch(product, patch)
    _check_weights(product)
    _reprice(product)

    db.session.add(product)
    db.session.flush()
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="CREATE",
        module="PRODUCTS",
        entity_type="Product",
        entity_id=product.id,
        after=product.to_dict(),
    )
    db.session.commit()
    current_app.logger.info("Product created: shop=%s id=%s", shop_id, product.id)
    return product


def _check_tag_prefix_change(product: Product, patch: dict) -> None:
    """Barcodes embed the product id and the tag counter, so a product with
    stock may not move to another tag prefix."""
    new_prefix = tag_prefix(
        patch.get("metal_type", product.metal_type),
        patch.get("purity", product.purity),
    )
    if new_prefix == tag_prefix(product.metal_type, product.purity):
        return
    has_stock = db.session.query(StockItem.id).filter_by(
        shop_id=product.shop_id, product_id=product.id
    ).first()
    if has_stock:
        raise ProductError("Metal type and purity cannot change once stock has been received")


def update_product(*, shop_id: int, product_id: int, patch: dict, user_id: int | None = None) -> Product:
    product = get_owned(Product, product_id, shop_id)
    before = product.to_dict()

    if "barcode" in patch:
        _check_barcode_unique(shop_id, patch["barcode"], exclude_id=product.id)
    if "supplier_id" in patch:
        _check_supplier(shop_id, patch["supplier_id"])
    if {"metal_type", "purity"} & set(patch):
        _check_tag_prefix_change(product, patch)

    apply_product_patch(product, patch)
    _check_weights(product)

    if PRICING_FIELDS & set(patch):
        _reprice(product)

    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="UPDATE",
        module="PRODUCTS",
        entity_type="Product",
        entity_id=product.id,
        before=before,
        after=product.to_dict(),
    )
    db.session.commit()
    return product


def delete_product(*, shop_id: int, product_id: int, user_id: int | None = None) -> None:
    """Soft delete: the row stays for stock and invoice history."""
    product = get_owned(Product, product_id, shop_id)
    product.deleted_at = utcnow()
    product.is_active = False
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="DELETE",
        module="PRODUCTS",
        entity_type="Product",
        entity_id=product.id,
    )
    db.session.commit()
