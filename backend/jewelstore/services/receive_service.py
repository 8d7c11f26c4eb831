# Overview: Stock receipt against purchase orders; creates tagged stock items.

"""
Stock Receipt Service

Receiving turns purchase-order quantities into physical StockItems, one per
unit, each with its own tag ID and barcode.

RULES:
- quantityToReceive must be > 0 and <= the line's pending quantity
- the PO item must be on this PO and match the given product
- receiptDetails[i] describes unit i; receiptDetails[0] is the default
- PO status becomes DELIVERED when every line is fully received, otherwise
  PARTIAL once anything is received

The whole receipt is one transaction: tag counters, stock items, received
quantities, PO status and the audit row commit or roll back together.
"""

from __future__ import annotations

from flask import current_app

from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderItem, StockItem
from ..money import ZERO, round_money, to_decimal
from ..time_utils import utcnow
from . import audit_service
from .concurrency import lock_for_update, run_with_retry
from .identifier_service import generate_identifiers
from .pricing import price_for_product
from .purchase_order_service import (
    RECEIVABLE_STATUSES,
    STATUS_DELIVERED,
    STATUS_PARTIAL,
)
from .rate_service import get_current_rate
from .tenant_service import NotFoundError, ensure_shop_access, get_owned


class ReceiveValidationError(Exception):
    """Raised when receipt data fails validation."""
    pass


def _load_po(shop_id: int, purchase_order_id: int) -> PurchaseOrder:
    po = lock_for_update(
        db.session.query(PurchaseOrder).filter(PurchaseOrder.id == purchase_order_id)
    ).first()
    if po is None or po.deleted_at is not None:
        raise NotFoundError("PurchaseOrder", purchase_order_id)
    ensure_shop_access(po, shop_id)
    return po


def _default_selling_price(shop_id: int, product: Product):
    if product.price_override is not None:
        return product.price_override
    rate = get_current_rate(shop_id, product.metal_type, product.purity)
    if rate is None:
        return ZERO
    return price_for_product(product, rate).total_price


def _validate_detail(detail: dict, index: int) -> None:
    if not isinstance(detail, dict):
        raise ReceiveValidationError(f"receiptDetails[{index}] must be an object")
    if detail.get("purchaseCost") is None:
        raise ReceiveValidationError(f"receiptDetails[{index}].purchaseCost is required")
    try:
        cost = to_decimal(detail["purchaseCost"])
    except ValueError:
        raise ReceiveValidationError(f"receiptDetails[{index}].purchaseCost must be a number")
    if cost < 0:
        raise ReceiveValidationError(f"receiptDetails[{index}].purchaseCost must be >= 0")
    if detail.get("sellingPrice") is not None:
        try:
            selling = to_decimal(detail["sellingPrice"])
        except ValueError:
            raise ReceiveValidationError(f"receiptDetails[{index}].sellingPrice must be a number")
        if selling < 0:
            raise ReceiveValidationError(f"receiptDetails[{index}].sellingPrice must be >= 0")


def receive_stock(
    *,
    shop_id: int,
    purchase_order_id: int,
    items: list[dict],
    received_by: str | None = None,
    single_product_mode: bool = False,
    user_id: int | None = None,
) -> dict:
    """
    Receive units against a purchase order.

    items: [{"purchaseOrderItemId", "productId", "quantityToReceive",
             "receiptDetails": [{"purchaseCost", "sellingPrice"?, "huid"?}]}]

    Returns the updated PO, the created stock items and a count summary.
    """
    if not items:
        raise ReceiveValidationError("Items to receive are required")
    if single_product_mode and len(items) != 1:
        raise ReceiveValidationError("Single product mode requires exactly one item")

    def _op() -> dict:
        po = _load_po(shop_id, purchase_order_id)
        if po.status not in RECEIVABLE_STATUSES:
            raise ReceiveValidationError(f"Cannot receive stock on a {po.status} purchase order")

        po_items = {item.id: item for item in po.items}
        now = utcnow()
        created: list[StockItem] = []

        for entry in items:
            if not isinstance(entry, dict):
                raise ReceiveValidationError("Each item must be an object")
            po_item_id = entry.get("purchaseOrderItemId")
            product_id = entry.get("productId")
            quantity = entry.get("quantityToReceive")
            details = entry.get("receiptDetails") or []

            if not isinstance(quantity, int) or isinstance(quantity, bool) or quantity <= 0:
                raise ReceiveValidationError(f"Invalid quantity for item {product_id}")

            po_item: PurchaseOrderItem | None = po_items.get(po_item_id)
            if po_item is None:
                raise NotFoundError("PurchaseOrderItem", po_item_id)

            product = get_owned(Product, product_id, shop_id)
            if po_item.product_id != product.id:
                raise ReceiveValidationError(
                    f"Product {product.id} does not match purchase order item {po_item.id}"
                )

            pending = po_item.pending_quantity
            if quantity > pending:
                raise ReceiveValidationError(
                    f"Cannot receive {quantity} items for {product.name}. Only {pending} pending."
                )

            if not details:
                raise ReceiveValidationError(f"receiptDetails are required for item {po_item.id}")
            for i, detail in enumerate(details):
                _validate_detail(detail, i)

            default_price = None
            identifiers = generate_identifiers(shop_id=shop_id, product=product, count=quantity)

            for i, (tag_id, barcode) in enumerate(identifiers):
                detail = details[i] if i < len(details) else details[0]
                if detail.get("sellingPrice") is not None:
                    selling_price = round_money(detail["sellingPrice"])
                else:
                    if default_price is None:
                        default_price = _default_selling_price(shop_id, product)
                    selling_price = round_money(default_price)

                stock_item = StockItem(
                    shop_id=shop_id,
                    product_id=product.id,
                    tag_id=tag_id,
                    barcode=barcode,
                    huid=(detail.get("huid") or None),
                    purchase_cost=round_money(detail["purchaseCost"]),
                    selling_price=selling_price,
                    status="AVAILABLE",
                    purchase_order_id=po.id,
                    purchase_date=now,
                )
                db.session.add(stock_item)
                created.append(stock_item)

            po_item.received_quantity = (po_item.received_quantity or 0) + quantity

        if all(item.received_quantity >= item.quantity for item in po.items):
            po.status = STATUS_DELIVERED
            po.actual_delivery_date = now
        elif any(item.received_quantity for item in po.items):
            po.status = STATUS_PARTIAL

        db.session.flush()
        audit_service.record(
            shop_id=shop_id,
            user_id=user_id,
            action="CREATE",
            module="STOCK",
            entity_type="PurchaseOrder",
            entity_id=po.id,
            after={
                "purchaseOrderId": po.id,
                "itemsReceived": len(items),
                "totalQuantity": len(created),
                "receivedBy": received_by,
            },
        )
        db.session.commit()

        return {
            "purchaseOrder": po.to_dict(),
            "stockItems": [s.to_dict() for s in created],
            "stockItemsCreated": len(created),
            "processedItems": len(items),
        }

    result = run_with_retry(_op)
    current_app.logger.info(
        "Stock received: shop=%s po=%s units=%s", shop_id, purchase_order_id, result["stockItemsCreated"]
    )
    return result


def get_items_to_receive(shop_id: int, purchase_order_id: int) -> list[dict]:
    """Lines of a PO that still have units pending."""
    po = get_owned(PurchaseOrder, purchase_order_id, shop_id)
    return [
        {
            "purchaseOrderItemId": item.id,
            "productId": item.product_id,
            "productName": item.product.name if item.product else None,
            "metalType": item.product.metal_type if item.product else None,
            "purity": item.product.purity if item.product else None,
            "orderedQuantity": item.quantity,
            "receivedQuantity": item.received_quantity,
            "pendingQuantity": item.pending_quantity,
            "unitPrice": float(item.unit_price),
        }
        for item in po.items
        if item.pending_quantity > 0
    ]
