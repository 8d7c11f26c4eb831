# Overview: Service-layer operations for purchase orders; encapsulates business logic and database work.

"""
Purchase Order Service

LIFECYCLE:
1. PENDING: Created, nothing sent or received
2. CONFIRMED: Supplier confirmed
3. PARTIAL: Some units received (set by stock receipt)
4. DELIVERED: Every unit received (set by stock receipt)
5. CANCELLED: Abandoned before anything was received
6. CLOSED: Finished by hand, e.g. short-shipped orders

total_amount = sum(quantity * unit_price) - discount_amount

PAYMENTS: paid_amount never exceeds total_amount. Each payment writes one
EXPENSE / PURCHASE cash-book row linked to the order.
"""

from __future__ import annotations

from datetime import datetime

from flask import current_app

from ..extensions import db
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier
from ..money import ZERO, round_money, round_weight, to_decimal
from ..time_utils import utcnow
from . import audit_service, transaction_service
from .concurrency import run_with_retry
from .document_service import DOC_PURCHASE_ORDER, next_document_number
from .payment_service import PAYMENT_METHODS, payment_status_for
from .tenant_service import get_owned, scoped_query


STATUS_PENDING = "PENDING"
STATUS_CONFIRMED = "CONFIRMED"
STATUS_PARTIAL = "PARTIAL"
STATUS_DELIVERED = "DELIVERED"
STATUS_CANCELLED = "CANCELLED"
STATUS_CLOSED = "CLOSED"

PO_STATUSES = (
    STATUS_PENDING, STATUS_CONFIRMED, STATUS_PARTIAL,
    STATUS_DELIVERED, STATUS_CANCELLED, STATUS_CLOSED,
)

# Statuses a user may set by hand, keyed by current status
MANUAL_TRANSITIONS = {
    STATUS_PENDING: {STATUS_CONFIRMED, STATUS_CANCELLED},
    STATUS_CONFIRMED: {STATUS_CANCELLED, STATUS_CLOSED},
    STATUS_PARTIAL: {STATUS_CLOSED},
    STATUS_DELIVERED: {STATUS_CLOSED},
    STATUS_CANCELLED: set(),
    STATUS_CLOSED: set(),
}

RECEIVABLE_STATUSES = {STATUS_PENDING, STATUS_CONFIRMED, STATUS_PARTIAL}


class PurchaseOrderError(Exception):
    """Raised for purchase order business rule violations."""
    pass


def create_purchase_order(
    *,
    shop_id: int,
    supplier_id: int,
    items: list[dict],
    order_date: datetime | None = None,
    expected_delivery_date: datetime | None = None,
    payment_method: str | None = None,
    discount_amount=None,
    reference_number: str | None = None,
    notes: str | None = None,
    user_id: int | None = None,
) -> PurchaseOrder:
    """
    Create a PO with its lines.

    items: [{"product_id", "quantity", "unit_price", "expected_weight"?}], already
    type-checked by the route. Every product must belong to the shop.
    """
    if not items:
        raise PurchaseOrderError("At least one item is required")

    get_owned(Supplier, supplier_id, shop_id)

    def _op() -> PurchaseOrder:
        po = PurchaseOrder(
            shop_id=shop_id,
            supplier_id=supplier_id,
            order_number=next_document_number(shop_id=shop_id, document_type=DOC_PURCHASE_ORDER),
            order_date=order_date or utcnow(),
            expected_delivery_date=expected_delivery_date,
            payment_method=payment_method,
            reference_number=reference_number,
            notes=notes,
            status=STATUS_PENDING,
            paid_amount=ZERO,
        )

        subtotal = ZERO
        for raw in items:
            product = get_owned(Product, raw["product_id"], shop_id)
            quantity = raw["quantity"]
            unit_price = round_money(raw["unit_price"])
            if quantity <= 0:
                raise PurchaseOrderError(f"Quantity for product {product.id} must be > 0")
            if unit_price < 0:
                raise PurchaseOrderError(f"Unit price for product {product.id} must be >= 0")
            po.items.append(PurchaseOrderItem(
                product_id=product.id,
                quantity=quantity,
                unit_price=unit_price,
                expected_weight=round_weight(raw["expected_weight"]) if raw.get("expected_weight") is not None else None,
                received_quantity=0,
            ))
            subtotal += unit_price * quantity

        discount = round_money(to_decimal(discount_amount))
        if discount < 0:
            raise PurchaseOrderError("discountAmount must be >= 0")
        if discount > subtotal:
            raise PurchaseOrderError("discountAmount cannot exceed the order subtotal")
        po.discount_amount = discount
        po.total_amount = round_money(subtotal - discount)
        po.payment_status = payment_status_for(po.total_amount, ZERO)

        db.session.add(po)
        db.session.flush()
        audit_service.record(
            shop_id=shop_id,
            user_id=user_id,
            action="CREATE",
            module="PURCHASE_ORDERS",
            entity_type="PurchaseOrder",
            entity_id=po.id,
            after={"orderNumber": po.order_number, "totalAmount": str(po.total_amount), "items": len(po.items)},
        )
        db.session.commit()
        return po

    po = run_with_retry(_op)
    current_app.logger.info("Purchase order created: shop=%s number=%s", shop_id, po.order_number)
    return po


def get_purchase_order(shop_id: int, purchase_order_id: int) -> PurchaseOrder:
    return get_owned(PurchaseOrder, purchase_order_id, shop_id)


def list_purchase_orders(shop_id: int, *, status: str | None = None, supplier_id: int | None = None,
                         search: str | None = None):
    query = scoped_query(PurchaseOrder, shop_id)
    if status:
        query = query.filter(PurchaseOrder.status == status)
    if supplier_id is not None:
        query = query.filter(PurchaseOrder.supplier_id == supplier_id)
    if search:
        query = query.filter(PurchaseOrder.order_number.contains(search))
    return query.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())


def list_pending_orders(shop_id: int) -> list[PurchaseOrder]:
    """Orders that can still receive stock, oldest first."""
    return (
        scoped_query(PurchaseOrder, shop_id)
        .filter(PurchaseOrder.status.in_(RECEIVABLE_STATUSES))
        .order_by(PurchaseOrder.order_date.asc(), PurchaseOrder.id.asc())
        .all()
    )


def update_status(*, shop_id: int, purchase_order_id: int, status: str, user_id: int | None = None) -> PurchaseOrder:
    po = get_owned(PurchaseOrder, purchase_order_id, shop_id)
    if status not in PO_STATUSES:
        raise PurchaseOrderError(f"Unknown status: {status}")
    if status not in MANUAL_TRANSITIONS.get(po.status, set()):
        raise PurchaseOrderError(f"Cannot change status from {po.status} to {status}")
    if status == STATUS_CANCELLED and any(item.received_quantity for item in po.items):
        raise PurchaseOrderError("Cannot cancel a purchase order with received stock")
    if status == STATUS_CANCELLED and to_decimal(po.paid_amount) > ZERO:
        raise PurchaseOrderError("Cannot cancel a purchase order with recorded payments")

    before = po.status
    po.status = status
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="UPDATE",
        module="PURCHASE_ORDERS",
        entity_type="PurchaseOrder",
        entity_id=po.id,
        before={"status": before},
        after={"status": status},
    )
    db.session.commit()
    return po


def delete_purchase_order(*, shop_id: int, purchase_order_id: int, user_id: int | None = None) -> None:
    """Soft delete; only orders with nothing received."""
    po = get_owned(PurchaseOrder, purchase_order_id, shop_id)
    if any(item.received_quantity for item in po.items):
        raise PurchaseOrderError("Cannot delete a purchase order with received stock")
    po.deleted_at = utcnow()
    audit_service.record(
        shop_id=shop_id,
        user_id=user_id,
        action="DELETE",
        module="PURCHASE_ORDERS",
        entity_type="PurchaseOrder",
        entity_id=po.id,
    )
    db.session.commit()


def record_payment(
    *,
    shop_id: int,
    purchase_order_id: int,
    amount,
    payment_method: str,
    reference_number: str | None = None,
    notes: str | None = None,
    payment_date: datetime | None = None,
    user_id: int | None = None,
) -> PurchaseOrder:
    """Pay the supplier against a PO and book the expense."""
    amount = round_money(to_decimal(amount))
    if amount <= ZERO:
        raise PurchaseOrderError("Payment amount must be greater than 0")
    if payment_method not in PAYMENT_METHODS:
        raise PurchaseOrderError(f"paymentMethod must be one of {', '.join(PAYMENT_METHODS)}")

    def _op() -> PurchaseOrder:
        po = get_owned(PurchaseOrder, purchase_order_id, shop_id, lock=True)
        if po.status == STATUS_CANCELLED:
            raise PurchaseOrderError("Cannot record payment for a cancelled purchase order")

        paid = to_decimal(po.paid_amount)
        total = to_decimal(po.total_amount)
        if paid >= total:
            raise PurchaseOrderError("Purchase order is already fully paid")
        pending = total - paid
        if amount > pending:
            raise PurchaseOrderError(f"Payment amount ({amount}) exceeds pending amount ({pending})")

        before = {"paidAmount": str(po.paid_amount), "paymentStatus": po.payment_status}
        po.paid_amount = round_money(paid + amount)
        po.payment_status = payment_status_for(total, po.paid_amount)

        transaction_service.add_entry(
            shop_id=shop_id,
            transaction_date=payment_date,
            transaction_type="EXPENSE",
            amount=amount,
            payment_mode=payment_method,
            category="PURCHASE",
            description=notes or f"Payment for {po.order_number}",
            reference_number=reference_number or po.order_number,
            purchase_order_id=po.id,
        )
        audit_service.record(
            shop_id=shop_id,
            user_id=user_id,
            action="PAYMENT",
            module="PURCHASE_ORDERS",
            entity_type="PurchaseOrder",
            entity_id=po.id,
            before=before,
            after={"paidAmount": str(po.paid_amount), "paymentStatus": po.payment_status},
        )
        db.session.commit()
        return po

    po = run_with_retry(_op)
    current_app.logger.info(
        "Purchase order payment: shop=%s number=%s amount=%s status=%s",
        shop_id, po.order_number, amount, po.payment_status,
    )
    return po
